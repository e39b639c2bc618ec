"""
Plan Optimizer Facade
=====================

Wires the three strategies together from validated settings:

- GeneticPlanOptimizer: searches for a higher-fitness variant of the plan
- NeuralScorer: predicts success and emits advisory hints
- RLActionSelector: proposes discrete edits from learned action values

The strategies stay independent; the facade only sequences them and, when a
Q-table path is configured, checkpoints the table after each selection.

Usage:
    from optimization import PlanOptimizer

    optimizer = PlanOptimizer.from_settings()
    report = optimizer.run(plan, request, history=records)
    report.optimized_plan
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from config.settings_schema import OptimizerSettings, load_validated_settings
from core.structured_log import jlog
from evolution.fitness import PlanFitnessEvaluator
from evolution.genetic_optimizer import EvolutionResult, GeneticPlanOptimizer
from neural.scorer import NeuralOptimization, NeuralScorer
from planning.models import GenerationRequest, Plan
from reinforcement.actions import ReinforcementAction
from reinforcement.q_table import QTable
from reinforcement.selector import HistoricalRecord, RLActionSelector
from reinforcement.store import QTableStore

logger = logging.getLogger(__name__)


@dataclass
class OptimizationReport:
    """Outcome of one full optimization pass."""
    original_plan: Plan
    optimized_plan: Plan
    evolution: EvolutionResult
    neural: NeuralOptimization
    actions: List[ReinforcementAction] = field(default_factory=list)

    @property
    def improvement(self) -> float:
        return self.evolution.improvement

    def to_dict(self) -> Dict[str, Any]:
        return {
            'original_plan': self.original_plan.to_dict(),
            'optimized_plan': self.optimized_plan.to_dict(),
            'evolution': self.evolution.to_dict(),
            'neural': self.neural.to_dict(),
            'actions': [a.to_dict() for a in self.actions],
        }


class PlanOptimizer:
    """Runs the genetic, neural and reinforcement strategies on one plan."""

    def __init__(
        self,
        genetic: GeneticPlanOptimizer,
        scorer: NeuralScorer,
        selector: RLActionSelector,
        store: Optional[QTableStore] = None,
    ):
        self.genetic = genetic
        self.scorer = scorer
        self.selector = selector
        self.store = store

    @classmethod
    def from_settings(
        cls,
        settings: Optional[OptimizerSettings] = None,
        seed: Optional[int] = None,
    ) -> "PlanOptimizer":
        """
        Build every strategy from settings.

        Args:
            settings: Validated settings; loaded from the config file when None
            seed: Overrides both the genetic and the neural seed

        Raises:
            ConfigurationError: If the settings are invalid
            PersistenceError: If a configured Q-table checkpoint cannot be read
        """
        settings = settings or load_validated_settings()

        genetic_seed = seed if seed is not None else settings.genetic.seed
        neural_seed = seed if seed is not None else settings.neural.seed

        genetic = GeneticPlanOptimizer(
            config=settings.genetic_config(),
            evaluator=PlanFitnessEvaluator(settings.fitness_weights_config()),
            rng=np.random.default_rng(genetic_seed),
        )
        scorer = NeuralScorer(settings.network_config(), rng=np.random.default_rng(neural_seed))

        rl = settings.reinforcement
        store = QTableStore(rl.qtable_path) if rl.qtable_path else None
        if store is not None:
            table = store.load(rl.learning_rate, rl.discount_factor)
        else:
            table = QTable(learning_rate=rl.learning_rate, discount_factor=rl.discount_factor)
        selector = RLActionSelector(table, settings.selector_config())

        return cls(genetic, scorer, selector, store)

    def optimize(self, plan: Plan, request: GenerationRequest) -> Plan:
        return self.genetic.optimize(plan, request)

    def score(self, plan: Plan, request: GenerationRequest) -> NeuralOptimization:
        return self.scorer.score(plan, request)

    def select_actions(
        self,
        plan: Plan,
        history: Iterable[HistoricalRecord] = (),
    ) -> List[ReinforcementAction]:
        actions = self.selector.select_actions(plan, history)
        if self.store is not None:
            self.store.save(self.selector.q_table)
        return actions

    def run(
        self,
        plan: Plan,
        request: GenerationRequest,
        history: Iterable[HistoricalRecord] = (),
        refresh_prediction: bool = False,
    ) -> OptimizationReport:
        """
        Evolve the plan, then score and propose actions for the result.

        Args:
            plan: Base plan; never modified
            request: Request the plan is evaluated against
            history: Historical (state, action, reward) records for the selector
            refresh_prediction: Write the scorer's prediction into the plan's
                success_prediction before the genetic search

        Raises:
            PlanValidationError: if the plan has no phases or bad durations
        """
        plan.validate()
        base = plan
        if refresh_prediction:
            base = plan.clone()
            base.success_prediction = self.scorer.score(plan, request).prediction

        evolution = self.genetic.evolve(base, request)
        optimized = evolution.best_plan
        neural = self.scorer.score(optimized, request)
        actions = self.select_actions(optimized, history)

        report = OptimizationReport(
            original_plan=plan,
            optimized_plan=optimized,
            evolution=evolution,
            neural=neural,
            actions=actions,
        )

        logger.info(
            f"Optimized plan {plan.id}: fitness {evolution.base_fitness:.4f} -> "
            f"{evolution.best_fitness:.4f}, {len(actions)} actions proposed"
        )
        jlog(
            "plan_optimization_complete",
            plan_id=plan.id,
            best_fitness=round(evolution.best_fitness, 6),
            improvement=round(evolution.improvement, 6),
            prediction=round(neural.prediction, 6),
            actions=[a.action.value for a in actions],
        )
        return report
