"""
Evolutionary search over session plans.

This package holds the fitness evaluator, the plan variation operators and
the genetic optimizer that ties them together.
"""

from .fitness import FitnessBreakdown, FitnessWeights, PlanFitnessEvaluator
from .plan_mutator import MutationConfig, PlanMutator
from .genetic_optimizer import (
    EvolutionResult,
    GenerationStats,
    GeneticConfig,
    GeneticPlanOptimizer,
    Population,
    optimize_plan,
)

__all__ = [
    # Fitness
    "FitnessBreakdown",
    "FitnessWeights",
    "PlanFitnessEvaluator",
    # Operators
    "MutationConfig",
    "PlanMutator",
    # Genetic Optimizer
    "EvolutionResult",
    "GenerationStats",
    "GeneticConfig",
    "GeneticPlanOptimizer",
    "Population",
    "optimize_plan",
]
