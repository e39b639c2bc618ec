"""
Plan Mutator
============

Variation operators for session plans: numeric perturbation of the plan
and phase durations, one-step difficulty shifts, and single-point crossover
on the phase sequence.

Every operator returns new plans (via `Plan.clone()`) and draws all of its
randomness from the injected `numpy.random.Generator`, so a seeded run
replays exactly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from planning.models import (
    MAX_PHASE_DURATION,
    MAX_PLAN_DURATION,
    MIN_PHASE_DURATION,
    MIN_PLAN_DURATION,
    Phase,
    Plan,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MutationConfig:
    """Per-gene trigger probabilities and perturbation strengths."""
    # Used when seeding the initial population
    variant_duration_strength: float = 0.2
    # Used by mutate()
    duration_probability: float = 0.3
    duration_strength: float = 0.15
    phase_pass_probability: float = 0.4
    phase_probability: float = 0.2
    phase_strength: float = 0.2
    difficulty_probability: float = 0.2
    # Crossover: chance of also exchanging estimated durations
    duration_swap_probability: float = 0.5


class PlanMutator:
    """
    Creates plan variants through mutation and crossover.
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        config: Optional[MutationConfig] = None,
    ):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.config = config or MutationConfig()

    def mutate_number(self, value: float, rate: float, min_val: float, max_val: float) -> float:
        """Perturb `value` by up to +/- rate*value and clamp into [min_val, max_val]."""
        change = value * rate * (self.rng.random() - 0.5) * 2
        return float(max(min_val, min(max_val, value + change)))

    def mutate_phases(self, phases: List[Phase]) -> List[Phase]:
        """Perturb each phase duration with probability `phase_probability`."""
        mutated = [p.copy() for p in phases]
        for phase in mutated:
            if self.rng.random() < self.config.phase_probability:
                phase.duration = self.mutate_number(
                    phase.duration,
                    self.config.phase_strength,
                    MIN_PHASE_DURATION,
                    MAX_PHASE_DURATION,
                )
        return mutated

    def shift_difficulty(self, plan: Plan) -> None:
        step = 1 if self.rng.random() > 0.5 else -1
        plan.difficulty = plan.difficulty.shift(step)

    @staticmethod
    def clamp_durations(plan: Plan) -> Plan:
        """Pull the plan and every phase into their duration bounds, in place."""
        plan.estimated_duration = float(
            max(MIN_PLAN_DURATION, min(MAX_PLAN_DURATION, plan.estimated_duration))
        )
        for phase in plan.structure.phases:
            phase.duration = float(max(MIN_PHASE_DURATION, min(MAX_PHASE_DURATION, phase.duration)))
        return plan

    def variant(self, base: Plan) -> Plan:
        """Structural + numeric variant of `base`, used to seed a population."""
        cfg = self.config
        variant = base.clone()
        variant.estimated_duration = self.mutate_number(
            base.estimated_duration, cfg.variant_duration_strength,
            MIN_PLAN_DURATION, MAX_PLAN_DURATION,
        )
        variant.structure.phases = self.mutate_phases(base.structure.phases)
        if self.rng.random() < cfg.difficulty_probability:
            self.shift_difficulty(variant)
        return self.clamp_durations(variant)

    def mutate(self, plan: Plan) -> Plan:
        """Return a mutated copy; each gene fires with its own probability."""
        cfg = self.config
        mutated = plan.clone()

        if self.rng.random() < cfg.duration_probability:
            mutated.estimated_duration = self.mutate_number(
                plan.estimated_duration, cfg.duration_strength,
                MIN_PLAN_DURATION, MAX_PLAN_DURATION,
            )

        if self.rng.random() < cfg.phase_pass_probability:
            mutated.structure.phases = self.mutate_phases(plan.structure.phases)

        if self.rng.random() < cfg.difficulty_probability:
            self.shift_difficulty(mutated)

        # Genes that did not fire still have to land inside the bounds
        return self.clamp_durations(mutated)

    def crossover(self, parent1: Plan, parent2: Plan) -> Tuple[Plan, Plan]:
        """
        Single-point crossover on the phase sequence.

        The cut point is drawn from [0, min(len1, len2)), so both children
        keep at least one phase from the other parent's tail.
        """
        child1 = parent1.clone()
        child2 = parent2.clone()

        shortest = min(len(parent1.structure.phases), len(parent2.structure.phases))
        point = int(self.rng.integers(0, shortest))

        tail1 = child1.structure.phases[point:]
        tail2 = child2.structure.phases[point:]
        child1.structure.phases = child1.structure.phases[:point] + tail2
        child2.structure.phases = child2.structure.phases[:point] + tail1

        if self.rng.random() < self.config.duration_swap_probability:
            child1.estimated_duration = parent2.estimated_duration
            child2.estimated_duration = parent1.estimated_duration

        return child1, child2
