"""
Neural scoring of session plans.

A numpy feed-forward network maps the 7-dimensional plan/request feature
vector to a success prediction; the scorer turns that into advisory
layer, phase and structure hints.
"""

from .network import Activation, FeedForwardNetwork, NetworkConfig, OptimizerType
from .scorer import (
    ActivationOptimization,
    ActivityEnrichment,
    AddPhase,
    DurationExtension,
    DurationReduction,
    LayerHintType,
    LayerOptimization,
    ModifyPhase,
    NeuralOptimization,
    NeuralScorer,
    PhaseHintType,
    RemovePhase,
    ReorderPhases,
    StructureHintType,
    StructureOptimization,
)

__all__ = [
    # Network
    "Activation",
    "FeedForwardNetwork",
    "NetworkConfig",
    "OptimizerType",
    # Scorer
    "NeuralScorer",
    "NeuralOptimization",
    # Suggestions
    "LayerHintType",
    "LayerOptimization",
    "PhaseHintType",
    "ActivationOptimization",
    "DurationReduction",
    "DurationExtension",
    "ActivityEnrichment",
    "StructureHintType",
    "StructureOptimization",
    "AddPhase",
    "RemovePhase",
    "ModifyPhase",
    "ReorderPhases",
]
