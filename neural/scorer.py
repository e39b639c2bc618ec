"""
Neural Plan Scorer
==================

Maps a plan/request feature vector through a small feed-forward network and
turns the result into advisory optimization hints:

- layer hints: tuning suggestions for the scorer network itself
- phase hints: per-phase duration / activity adjustments
- structure hints: add, remove, modify or reorder a phase

The scorer never edits the plan; callers decide what to apply.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from core.structured_log import jlog
from evolution.fitness import IDEAL_ACTIVITIES_PER_PHASE, IDEAL_PHASE_COUNT
from planning.features import FEATURE_NAMES, extract_features
from planning.models import GenerationRequest, Phase, PhaseType, Plan

from .network import Activation, FeedForwardNetwork, NetworkConfig

logger = logging.getLogger(__name__)

# Share of units that must be dead/saturated before a layer hint is emitted
LAYER_HINT_THRESHOLD = 0.5
# Phase duration band around the ideal share of the target
PHASE_BAND_LOW = 0.75
PHASE_BAND_HIGH = 1.25
MAX_PHASES = 8


# ============================================================================
# Suggestion types
# ============================================================================

class LayerHintType(Enum):
    PRUNE_DEAD_UNITS = "prune_dead_units"
    REDUCE_SATURATION = "reduce_saturation"
    WIDEN_LAYER = "widen_layer"


class PhaseHintType(Enum):
    SHORTEN_PHASE = "shorten_phase"
    EXTEND_PHASE = "extend_phase"
    ENRICH_ACTIVITIES = "enrich_activities"


class StructureHintType(Enum):
    ADD_PHASE = "add_phase"
    REMOVE_PHASE = "remove_phase"
    MODIFY_PHASE = "modify_phase"
    REORDER_PHASES = "reorder_phases"


@dataclass
class LayerOptimization:
    """Tuning hint for one network layer."""
    layer: int
    hint: LayerHintType
    impact: float
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'layer': self.layer,
            'hint': self.hint.value,
            'impact': self.impact,
            'confidence': self.confidence,
        }


@dataclass
class DurationReduction:
    hint: ClassVar[PhaseHintType] = PhaseHintType.SHORTEN_PHASE
    delta_minutes: float = 0.0


@dataclass
class DurationExtension:
    hint: ClassVar[PhaseHintType] = PhaseHintType.EXTEND_PHASE
    delta_minutes: float = 0.0


@dataclass
class ActivityEnrichment:
    hint: ClassVar[PhaseHintType] = PhaseHintType.ENRICH_ACTIVITIES
    target_activities: int = IDEAL_ACTIVITIES_PER_PHASE


PhaseParameters = Union[DurationReduction, DurationExtension, ActivityEnrichment]


@dataclass
class ActivationOptimization:
    """Per-phase parameter hint."""
    phase_id: str
    parameters: PhaseParameters
    expected_improvement: float
    confidence: float

    @property
    def hint(self) -> PhaseHintType:
        return self.parameters.hint

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phase_id': self.phase_id,
            'hint': self.hint.value,
            'parameters': dict(vars(self.parameters)),
            'expected_improvement': self.expected_improvement,
            'confidence': self.confidence,
        }


@dataclass
class AddPhase:
    kind: ClassVar[StructureHintType] = StructureHintType.ADD_PHASE
    phase_type: PhaseType = PhaseType.PRACTICE
    duration: float = 15.0
    after_phase: Optional[str] = None


@dataclass
class RemovePhase:
    kind: ClassVar[StructureHintType] = StructureHintType.REMOVE_PHASE
    phase_id: str = ""


@dataclass
class ModifyPhase:
    kind: ClassVar[StructureHintType] = StructureHintType.MODIFY_PHASE
    phase_id: str = ""
    add_activities: int = 1


@dataclass
class ReorderPhases:
    kind: ClassVar[StructureHintType] = StructureHintType.REORDER_PHASES
    order: List[str] = field(default_factory=list)


StructureModification = Union[AddPhase, RemovePhase, ModifyPhase, ReorderPhases]


@dataclass
class StructureOptimization:
    """Whole-structure hint."""
    target: str
    modification: StructureModification
    impact: float
    confidence: float

    @property
    def kind(self) -> StructureHintType:
        return self.modification.kind

    def to_dict(self) -> Dict[str, Any]:
        params = {
            k: (v.value if isinstance(v, Enum) else v)
            for k, v in vars(self.modification).items()
        }
        return {
            'type': self.kind.value,
            'target': self.target,
            'modification': params,
            'impact': self.impact,
            'confidence': self.confidence,
        }


@dataclass
class NeuralOptimization:
    """Result of scoring one plan."""
    prediction: float
    confidence: float
    layer_optimizations: List[LayerOptimization] = field(default_factory=list)
    activation_optimizations: List[ActivationOptimization] = field(default_factory=list)
    structure_optimizations: List[StructureOptimization] = field(default_factory=list)

    @property
    def suggestions(self) -> List[Union[LayerOptimization, ActivationOptimization, StructureOptimization]]:
        return [
            *self.layer_optimizations,
            *self.activation_optimizations,
            *self.structure_optimizations,
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'prediction': self.prediction,
            'confidence': self.confidence,
            'layer_optimizations': [o.to_dict() for o in self.layer_optimizations],
            'activation_optimizations': [o.to_dict() for o in self.activation_optimizations],
            'structure_optimizations': [o.to_dict() for o in self.structure_optimizations],
        }


# ============================================================================
# Scorer
# ============================================================================

class NeuralScorer:
    """
    Scores plans with a feed-forward network and emits structural hints.

    Usage:
        scorer = NeuralScorer(NetworkConfig(activation="sigmoid"), rng=np.random.default_rng(1))
        result = scorer.score(plan, request)
        plan_prediction = result.prediction
    """

    def __init__(
        self,
        config: Optional[NetworkConfig] = None,
        rng: Optional[np.random.Generator] = None,
        network: Optional[FeedForwardNetwork] = None,
    ):
        self.network = network or FeedForwardNetwork(config, rng)
        self.config = self.network.config

    def predict(self, features: np.ndarray) -> np.ndarray:
        """Raw network output for a feature vector (or batch)."""
        return self.network.predict(features)

    def train(
        self,
        features: Union[np.ndarray, pd.DataFrame],
        labels: Optional[Union[np.ndarray, pd.Series]] = None,
        label_column: str = "success",
    ) -> List[float]:
        """
        Retrain the network on externally supplied history.

        Args:
            features: (n, 7) array, or a DataFrame holding the FEATURE_NAMES
                columns (and the label column when `labels` is omitted)
            labels: Targets in [0, 1]
            label_column: DataFrame column used when `labels` is None

        Returns:
            Per-epoch training loss
        """
        if isinstance(features, pd.DataFrame):
            if labels is None:
                labels = features[label_column].to_numpy(dtype=float)
            features = features[list(FEATURE_NAMES)].to_numpy(dtype=float)
        losses = self.network.train(np.asarray(features, dtype=float), np.asarray(labels, dtype=float))
        if losses:
            logger.info(f"Neural scorer retrained: {len(losses)} epochs, final mse={losses[-1]:.6f}")
        return losses

    def score(self, plan: Plan, request: GenerationRequest) -> NeuralOptimization:
        """Score a plan and generate advisory suggestions."""
        features = extract_features(plan, request)
        pre, acts = self.network.forward(features)
        outputs = acts[-1][0]

        prediction = float(np.clip(outputs[0], 0.0, 1.0))
        confidence = float(np.clip(np.mean(outputs), 0.0, 1.0))

        result = NeuralOptimization(
            prediction=prediction,
            confidence=confidence,
            layer_optimizations=self._layer_optimizations(acts, confidence),
            activation_optimizations=self._activation_optimizations(plan, request, prediction, confidence),
            structure_optimizations=self._structure_optimizations(plan, prediction, confidence),
        )
        jlog(
            "neural_score",
            level="DEBUG",
            plan_id=plan.id,
            prediction=round(prediction, 6),
            suggestions=len(result.suggestions),
        )
        return result

    def _layer_optimizations(self, acts: List[np.ndarray], confidence: float) -> List[LayerOptimization]:
        hints: List[LayerOptimization] = []
        kind = self.config.activation
        hidden = acts[1:-1]

        for layer, a in enumerate(hidden, start=1):
            units = a[0]
            if kind is Activation.RELU:
                inactive = float(np.mean(units <= 0.0))
                hint = LayerHintType.PRUNE_DEAD_UNITS
            elif kind is Activation.SIGMOID:
                inactive = float(np.mean((units < 0.02) | (units > 0.98)))
                hint = LayerHintType.REDUCE_SATURATION
            else:
                inactive = float(np.mean(np.abs(units) > 0.98))
                hint = LayerHintType.REDUCE_SATURATION

            if inactive >= LAYER_HINT_THRESHOLD:
                hints.append(LayerOptimization(layer, hint, impact=0.1 * inactive, confidence=confidence))
            elif len(units) < self.config.input_size:
                hints.append(LayerOptimization(
                    layer, LayerHintType.WIDEN_LAYER,
                    impact=0.05 * (1 - len(units) / self.config.input_size),
                    confidence=confidence,
                ))
        return hints

    def _activation_optimizations(
        self,
        plan: Plan,
        request: GenerationRequest,
        prediction: float,
        confidence: float,
    ) -> List[ActivationOptimization]:
        phases = plan.structure.phases
        if not phases:
            return []

        headroom = 1.0 - prediction
        share = 1.0 / len(phases)
        target = request.target if request.target > 0 else plan.estimated_duration
        ideal = target / len(phases)
        hints: List[ActivationOptimization] = []

        for phase in phases:
            # No duration hints without a positive per-phase target
            if ideal > 0 and phase.phase_type is not PhaseType.BREAK:
                if phase.duration > PHASE_BAND_HIGH * ideal:
                    hints.append(ActivationOptimization(
                        phase.id, DurationReduction(delta_minutes=round(ideal - phase.duration, 1)),
                        expected_improvement=headroom * share * min(1.0, phase.duration / ideal - 1),
                        confidence=confidence,
                    ))
                elif phase.duration < PHASE_BAND_LOW * ideal:
                    hints.append(ActivationOptimization(
                        phase.id, DurationExtension(delta_minutes=round(ideal - phase.duration, 1)),
                        expected_improvement=headroom * share * (1 - phase.duration / ideal),
                        confidence=confidence,
                    ))
            missing = IDEAL_ACTIVITIES_PER_PHASE - len(phase.activities)
            if missing > 0 and phase.phase_type is not PhaseType.BREAK:
                hints.append(ActivationOptimization(
                    phase.id, ActivityEnrichment(),
                    expected_improvement=headroom * share * missing / IDEAL_ACTIVITIES_PER_PHASE,
                    confidence=confidence,
                ))
        return hints

    def _structure_optimizations(
        self,
        plan: Plan,
        prediction: float,
        confidence: float,
    ) -> List[StructureOptimization]:
        phases = plan.structure.phases
        if not phases:
            return []

        headroom = 1.0 - prediction
        hints: List[StructureOptimization] = []
        count = len(phases)

        if count < IDEAL_PHASE_COUNT:
            hints.append(StructureOptimization(
                target=plan.id,
                modification=AddPhase(after_phase=phases[-1].id),
                impact=headroom * (IDEAL_PHASE_COUNT - count) / IDEAL_PHASE_COUNT,
                confidence=confidence,
            ))
        elif count > MAX_PHASES:
            shortest = min(phases, key=lambda p: p.duration)
            hints.append(StructureOptimization(
                target=shortest.id,
                modification=RemovePhase(phase_id=shortest.id),
                impact=headroom * (count - MAX_PHASES) / count,
                confidence=confidence,
            ))

        sparse = min(phases, key=lambda p: len(p.activities))
        if len(sparse.activities) < IDEAL_ACTIVITIES_PER_PHASE and sparse.phase_type is not PhaseType.BREAK:
            hints.append(StructureOptimization(
                target=sparse.id,
                modification=ModifyPhase(
                    phase_id=sparse.id,
                    add_activities=IDEAL_ACTIVITIES_PER_PHASE - len(sparse.activities),
                ),
                impact=headroom * 0.5 / count,
                confidence=confidence,
            ))

        order = _preferred_order(phases)
        if order != [p.id for p in phases]:
            hints.append(StructureOptimization(
                target=plan.id,
                modification=ReorderPhases(order=order),
                impact=headroom * 0.1,
                confidence=confidence,
            ))
        return hints


def _preferred_order(phases: List[Phase]) -> List[str]:
    """Warm-ups first, assessments last, no break at either end; stable otherwise."""
    def rank(p: Phase) -> int:
        if p.phase_type is PhaseType.WARMUP:
            return 0
        if p.phase_type is PhaseType.ASSESSMENT:
            return 2
        return 1

    ordered = sorted(phases, key=rank)
    if len(ordered) > 2:
        # Move edge breaks inward
        if ordered[0].phase_type is PhaseType.BREAK:
            ordered.insert(1, ordered.pop(0))
        if ordered[-1].phase_type is PhaseType.BREAK:
            ordered.insert(len(ordered) - 2, ordered.pop())
    return [p.id for p in ordered]
