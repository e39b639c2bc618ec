"""
Genetic Optimizer for Session Plans
===================================

Evolves a population of plan variants toward higher fitness using
tournament selection, single-point phase crossover, mutation and elitism.

Slot 0 of the initial population is always the base plan and the best
individuals of each generation are carried into the next, so the result
is never worse than the input and the per-generation best fitness never
decreases.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from core.exceptions import ConfigurationError
from core.structured_log import jlog
from planning.models import GenerationRequest, Plan

from .fitness import PlanFitnessEvaluator
from .plan_mutator import MutationConfig, PlanMutator

logger = logging.getLogger(__name__)


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


@dataclass
class GeneticConfig:
    """Genetic search configuration."""
    population_size: int = 20
    generations: int = 10
    mutation_rate: float = 0.1
    crossover_rate: float = 0.7
    elitism_rate: float = 0.1
    tournament_fraction: float = 0.1
    convergence_threshold: float = 0.01
    parallel: bool = False
    max_workers: int = 4

    def validate(self) -> "GeneticConfig":
        if self.population_size < 1:
            raise ConfigurationError(
                "population_size must be >= 1",
                context={'population_size': self.population_size},
            )
        if self.generations < 0:
            raise ConfigurationError(
                "generations must be >= 0",
                context={'generations': self.generations},
            )
        for name in ('mutation_rate', 'crossover_rate', 'elitism_rate', 'tournament_fraction'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1]", context={name: value})
        return self

    @property
    def tournament_size(self) -> int:
        return max(2, round_half_up(self.population_size * self.tournament_fraction))

    @property
    def elite_count(self) -> int:
        # At least one elite keeps the best-so-far alive across generations
        count = round_half_up(self.population_size * self.elitism_rate)
        return min(self.population_size, max(1, count))


@dataclass
class GenerationStats:
    """Fitness summary of one evaluated generation."""
    generation: int
    best_fitness: float
    average_fitness: float
    worst_fitness: float
    spread: float
    diversity_index: float

    def to_dict(self) -> Dict[str, float]:
        return {
            'generation': self.generation,
            'best_fitness': self.best_fitness,
            'average_fitness': self.average_fitness,
            'worst_fitness': self.worst_fitness,
            'spread': self.spread,
            'diversity_index': self.diversity_index,
        }


@dataclass
class Population:
    """A population of plans and (once evaluated) their fitness."""
    plans: List[Plan] = field(default_factory=list)
    fitness: List[float] = field(default_factory=list)
    generation: int = 0

    @property
    def evaluated(self) -> bool:
        return len(self.fitness) == len(self.plans) and bool(self.plans)

    def ranked(self) -> List[Tuple[Plan, float]]:
        """Plans paired with fitness, best first (stable for ties)."""
        order = sorted(range(len(self.plans)), key=lambda i: -self.fitness[i])
        return [(self.plans[i], self.fitness[i]) for i in order]

    def get_best(self) -> Tuple[Plan, float]:
        best = int(np.argmax(self.fitness))
        return self.plans[best], self.fitness[best]

    def get_stats(self) -> GenerationStats:
        scores = np.asarray(self.fitness, dtype=float)
        best = float(scores.max())
        avg = float(scores.mean())
        signatures = {_signature(p) for p in self.plans}
        return GenerationStats(
            generation=self.generation,
            best_fitness=best,
            average_fitness=avg,
            worst_fitness=float(scores.min()),
            spread=best - avg,
            diversity_index=len(signatures) / len(self.plans),
        )


def _signature(plan: Plan) -> Tuple:
    """Genotype fingerprint used for the diversity index."""
    return (
        round(plan.estimated_duration, 3),
        plan.difficulty.value,
        tuple(round(p.duration, 3) for p in plan.structure.phases),
    )


@dataclass
class EvolutionResult:
    """Outcome of one optimization run."""
    best_plan: Plan
    best_fitness: float
    base_fitness: float
    generations_run: int
    converged: bool
    history: List[GenerationStats] = field(default_factory=list)

    @property
    def improvement(self) -> float:
        return self.best_fitness - self.base_fitness

    def to_dict(self) -> Dict:
        return {
            'best_plan': self.best_plan.to_dict(),
            'best_fitness': self.best_fitness,
            'base_fitness': self.base_fitness,
            'improvement': self.improvement,
            'generations_run': self.generations_run,
            'converged': self.converged,
            'history': [s.to_dict() for s in self.history],
        }


class GeneticPlanOptimizer:
    """
    Genetic algorithm optimizer for session plans.

    Usage:
        optimizer = GeneticPlanOptimizer(GeneticConfig(population_size=20), rng=np.random.default_rng(7))
        best = optimizer.optimize(base_plan, request)
        history = optimizer.get_convergence_history()
    """

    def __init__(
        self,
        config: Optional[GeneticConfig] = None,
        evaluator: Optional[PlanFitnessEvaluator] = None,
        rng: Optional[np.random.Generator] = None,
        mutation_config: Optional[MutationConfig] = None,
    ):
        """
        Initialize the genetic optimizer.

        Args:
            config: Population size, generation budget and operator rates
            evaluator: Fitness function (defaults to standard weights)
            rng: Random source for every stochastic step; seed it for replay
            mutation_config: Per-gene mutation probabilities
        """
        self.config = (config or GeneticConfig()).validate()
        self.evaluator = evaluator or PlanFitnessEvaluator()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.mutator = PlanMutator(self.rng, mutation_config)

        self.population: Optional[Population] = None
        self.history: List[GenerationStats] = []
        self.last_result: Optional[EvolutionResult] = None

        logger.info(
            f"GeneticPlanOptimizer initialized with population_size={self.config.population_size}, "
            f"generations={self.config.generations}"
        )

    def _initialize_population(self, base_plan: Plan) -> Population:
        """Slot 0 is the base plan itself; the rest are variants of it."""
        plans = [base_plan]
        for _ in range(1, self.config.population_size):
            plans.append(self.mutator.variant(base_plan))
        return Population(plans=plans, generation=0)

    def _evaluate_population(self, population: Population, request: GenerationRequest) -> Population:
        """Score every plan. Evaluations are independent; order is preserved."""
        if self.config.parallel and len(population.plans) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                population.fitness = list(executor.map(
                    lambda plan: self.evaluator.evaluate(plan, request),
                    population.plans,
                ))
        else:
            population.fitness = [self.evaluator.evaluate(p, request) for p in population.plans]
        return population

    def _tournament_select(self, population: Population) -> Plan:
        """Sample a tournament uniformly (with replacement) and keep its fittest entrant."""
        entrants = self.rng.integers(0, len(population.plans), size=self.config.tournament_size)
        best = max(entrants, key=lambda i: population.fitness[i])
        return population.plans[int(best)]

    def _selection(self, population: Population) -> List[Plan]:
        return [self._tournament_select(population) for _ in range(self.config.population_size)]

    def _reproduce(self, parents: List[Plan]) -> List[Plan]:
        """Pairwise crossover and mutation of the selected parents."""
        size = self.config.population_size
        children: List[Plan] = []

        for i in range(0, size, 2):
            parent1 = parents[i % len(parents)]
            parent2 = parents[(i + 1) % len(parents)]

            if self.rng.random() < self.config.crossover_rate:
                child1, child2 = self.mutator.crossover(parent1, parent2)
            else:
                child1, child2 = parent1, parent2

            if self.rng.random() < self.config.mutation_rate:
                child1 = self.mutator.mutate(child1)
            if self.rng.random() < self.config.mutation_rate:
                child2 = self.mutator.mutate(child2)

            children.append(child1)
            if len(children) < size:
                children.append(child2)

        return children

    def _apply_elitism(self, population: Population, children: List[Plan]) -> List[Plan]:
        """Overwrite the tail of `children` with the previous generation's best plans."""
        ranked = population.ranked()
        for i in range(self.config.elite_count):
            children[len(children) - 1 - i] = ranked[i][0].clone()
        return children

    def _has_converged(self, stats: GenerationStats) -> bool:
        return stats.spread < self.config.convergence_threshold

    def optimize(self, base_plan: Plan, request: GenerationRequest) -> Plan:
        """
        Run the genetic search and return the best plan found.

        Raises:
            PlanValidationError: if the base plan has no phases or bad durations
        """
        return self.evolve(base_plan, request).best_plan

    def evolve(self, base_plan: Plan, request: GenerationRequest) -> EvolutionResult:
        """
        Run the genetic search and return the full result with history.

        Raises:
            PlanValidationError: if the base plan has no phases or bad durations
        """
        base_plan.validate()
        base_fitness = self.evaluator.evaluate(base_plan, request)

        self.history = []
        self.population = self._initialize_population(base_plan)

        if self.config.generations == 0:
            self.last_result = EvolutionResult(
                best_plan=base_plan,
                best_fitness=base_fitness,
                base_fitness=base_fitness,
                generations_run=0,
                converged=False,
            )
            return self.last_result

        logger.info(f"Starting evolution for {self.config.generations} generations")

        converged = False
        generations_run = 0
        for gen in range(self.config.generations):
            population = self._evaluate_population(self.population, request)
            stats = population.get_stats()
            self.history.append(stats)
            generations_run = gen + 1

            logger.debug(
                f"Gen {gen}: best={stats.best_fitness:.4f}, avg={stats.average_fitness:.4f}, "
                f"diversity={stats.diversity_index:.2f}"
            )

            parents = self._selection(population)
            children = self._reproduce(parents)
            children = self._apply_elitism(population, children)
            self.population = Population(plans=children, generation=gen + 1)

            if self._has_converged(stats):
                converged = True
                logger.info(f"Genetic algorithm converged at generation {gen}")
                break

        final = self._evaluate_population(self.population, request)
        final_stats = final.get_stats()
        self.history.append(final_stats)
        best_plan, best_fitness = final.get_best()

        self.last_result = EvolutionResult(
            best_plan=best_plan,
            best_fitness=best_fitness,
            base_fitness=base_fitness,
            generations_run=generations_run,
            converged=converged,
            history=list(self.history),
        )

        logger.info(
            f"Evolution complete. Best fitness: {best_fitness:.4f} "
            f"(base {base_fitness:.4f}, {generations_run} generations)"
        )
        jlog(
            "ga_run_complete",
            plan_id=base_plan.id,
            best_fitness=round(best_fitness, 6),
            base_fitness=round(base_fitness, 6),
            generations=generations_run,
            converged=converged,
        )
        return self.last_result

    def get_convergence_history(self) -> Dict[str, List[float]]:
        """Get the fitness history over evaluated generations."""
        return {
            'best': [s.best_fitness for s in self.history],
            'avg': [s.average_fitness for s in self.history],
        }


def optimize_plan(
    base_plan: Plan,
    request: GenerationRequest,
    config: Optional[GeneticConfig] = None,
    evaluator: Optional[PlanFitnessEvaluator] = None,
    seed: Optional[int] = None,
) -> Plan:
    """
    Convenience function: build an optimizer and return the best plan.

    Args:
        base_plan: Plan to improve (always part of the initial population)
        request: Request the plan is evaluated against
        config: Genetic configuration
        evaluator: Fitness evaluator
        seed: Seed for the random source

    Returns:
        Highest-fitness plan of the final generation
    """
    optimizer = GeneticPlanOptimizer(
        config=config,
        evaluator=evaluator,
        rng=np.random.default_rng(seed),
    )
    return optimizer.optimize(base_plan, request)
