"""
Plan Fitness Evaluation
=======================

Scores a plan against a generation request as a weighted sum of six
independent sub-scores, each in [0, 1]:

    fitness = sum(weight_i * subscore_i), clamped to [0, 1]

The evaluator is a pure function of (plan, request): no caching, no
randomness, no mutation of its inputs. The genetic optimizer relies on
that to evaluate a generation concurrently and to replay runs exactly.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Dict

from planning.models import GenerationRequest, Plan

logger = logging.getLogger(__name__)

IDEAL_PHASE_COUNT = 6
IDEAL_ACTIVITIES_PER_PHASE = 3
ADAPTATION_SATURATION = 10
NEUTRAL_SCORE = 0.5


@dataclass(frozen=True)
class FitnessWeights:
    """
    Sub-score weights. Callers keep the sum at 1.0; the evaluator only clamps.
    """
    success_probability: float = 0.3
    time_efficiency: float = 0.2
    resource_optimization: float = 0.15
    user_preference: float = 0.2
    learning_effectiveness: float = 0.1
    adaptability: float = 0.05

    @property
    def total(self) -> float:
        return sum(asdict(self).values())

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class FitnessBreakdown:
    """Individual sub-scores, useful for reporting."""
    success_probability: float
    time_efficiency: float
    resource_optimization: float
    user_preference: float
    learning_effectiveness: float
    adaptability: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def time_efficiency(plan: Plan, request: GenerationRequest) -> float:
    """How close the plan's duration lands to the target duration."""
    target = request.target
    if target <= 0:
        return 0.0
    difference = abs(plan.estimated_duration - target)
    return max(0.0, 1.0 - difference / target)


def resource_optimization(plan: Plan, request: GenerationRequest) -> float:
    """Share of required resources the context can cover. 0 when nothing is required."""
    required = len(plan.required_resources)
    if required == 0:
        return 0.0
    available = len(request.context.tools)
    return max(0.0, 1.0 - max(0, required - available) / required)


def user_preference(plan: Plan, request: GenerationRequest) -> float:
    """Average of duration closeness and difficulty match; 0.5 without preferences."""
    prefs = request.preferences
    if prefs is None:
        return NEUTRAL_SCORE

    score = 0.0
    factors = 0

    if prefs.preferred_duration is not None and prefs.preferred_duration > 0:
        match = 1.0 - abs(plan.estimated_duration - prefs.preferred_duration) / prefs.preferred_duration
        score += max(0.0, match)
        factors += 1

    if prefs.difficulty is not None:
        score += 1.0 if plan.difficulty == prefs.difficulty else 0.5
        factors += 1

    return score / factors if factors else NEUTRAL_SCORE


def learning_effectiveness(plan: Plan) -> float:
    """Average of phase-count score and mean activity richness."""
    phases = plan.structure.phases
    if not phases:
        return 0.0
    phase_score = min(1.0, len(phases) / IDEAL_PHASE_COUNT)
    activity_score = sum(
        min(1.0, len(p.activities) / IDEAL_ACTIVITIES_PER_PHASE) for p in phases
    ) / len(phases)
    return (phase_score + activity_score) / 2


def adaptability(plan: Plan) -> float:
    s = plan.structure
    return min(1.0, (len(s.breakpoints) + len(s.adaptation_rules)) / ADAPTATION_SATURATION)


class PlanFitnessEvaluator:
    """
    Weighted multi-objective fitness for session plans.

    Usage:
        evaluator = PlanFitnessEvaluator()
        fitness = evaluator.evaluate(plan, request)   # float in [0, 1]
    """

    def __init__(self, weights: FitnessWeights | None = None):
        self.weights = weights or FitnessWeights()
        if abs(self.weights.total - 1.0) > 1e-6:
            logger.warning(
                f"Fitness weights sum to {self.weights.total:.4f}, not 1.0; "
                f"fitness is clamped to [0, 1]"
            )

    def breakdown(self, plan: Plan, request: GenerationRequest) -> FitnessBreakdown:
        """Compute every sub-score without combining them."""
        return FitnessBreakdown(
            success_probability=plan.success_prediction,
            time_efficiency=time_efficiency(plan, request),
            resource_optimization=resource_optimization(plan, request),
            user_preference=user_preference(plan, request),
            learning_effectiveness=learning_effectiveness(plan),
            adaptability=adaptability(plan),
        )

    def evaluate(self, plan: Plan, request: GenerationRequest) -> float:
        """Return the weighted fitness of `plan` for `request`, in [0, 1]."""
        parts = self.breakdown(plan, request)
        w = self.weights
        fitness = (
            parts.success_probability * w.success_probability
            + parts.time_efficiency * w.time_efficiency
            + parts.resource_optimization * w.resource_optimization
            + parts.user_preference * w.user_preference
            + parts.learning_effectiveness * w.learning_effectiveness
            + parts.adaptability * w.adaptability
        )
        if not math.isfinite(fitness):
            logger.warning(f"Non-finite fitness for plan {plan.id}; scoring it 0")
            return 0.0
        return max(0.0, min(1.0, fitness))

    __call__ = evaluate
