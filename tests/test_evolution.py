"""
Tests for the Evolution Module.

Tests the genetic plan optimizer, the plan mutator and the population
bookkeeping.
"""
import numpy as np
import pytest

from core.exceptions import ConfigurationError, PlanValidationError
from evolution import (
    GeneticConfig,
    GeneticPlanOptimizer,
    MutationConfig,
    PlanFitnessEvaluator,
    PlanMutator,
    Population,
    optimize_plan,
)
from evolution.genetic_optimizer import round_half_up
from planning.models import (
    MAX_PHASE_DURATION,
    MAX_PLAN_DURATION,
    MIN_PHASE_DURATION,
    MIN_PLAN_DURATION,
    Difficulty,
    Plan,
    PlanStructure,
)

from tests.fixtures.plans import make_plan, make_request


class TestGeneticConfig:
    """Tests for GeneticConfig derived sizes and validation."""

    def test_defaults(self):
        config = GeneticConfig()
        assert config.population_size == 20
        assert config.tournament_size == 2
        assert config.elite_count == 2

    def test_half_up_rounding(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1
        assert round_half_up(0.49) == 0

    def test_at_least_one_elite(self):
        """A zero elitism rate still carries the best plan forward."""
        assert GeneticConfig(elitism_rate=0.0).elite_count == 1

    def test_tournament_at_least_two(self):
        assert GeneticConfig(population_size=5, tournament_fraction=0.0).tournament_size == 2

    def test_invalid_population_rejected(self):
        with pytest.raises(ConfigurationError):
            GeneticPlanOptimizer(GeneticConfig(population_size=0))

    def test_invalid_rate_rejected(self):
        with pytest.raises(ConfigurationError):
            GeneticConfig(mutation_rate=1.5).validate()


class TestPlanMutator:
    """Tests for mutation and crossover operators."""

    def test_mutate_number_stays_in_bounds(self, rng):
        mutator = PlanMutator(rng)
        for _ in range(200):
            value = mutator.mutate_number(58.0, 0.5, 5.0, 60.0)
            assert 5.0 <= value <= 60.0

    def test_mutate_respects_bounds(self, rng):
        """Mutated durations stay inside the plan and phase bounds."""
        config = MutationConfig(duration_probability=1.0, phase_pass_probability=1.0,
                                phase_probability=1.0)
        mutator = PlanMutator(rng, config)
        plan = make_plan(duration=235.0, phase_durations=(58.0, 6.0, 30.0))

        for _ in range(100):
            plan = mutator.mutate(plan)
            assert MIN_PLAN_DURATION <= plan.estimated_duration <= MAX_PLAN_DURATION
            for phase in plan.structure.phases:
                assert MIN_PHASE_DURATION <= phase.duration <= MAX_PHASE_DURATION

    def test_mutate_clamps_genes_that_did_not_fire(self, rng):
        """Out-of-range durations are pulled into bounds even when no gene fires."""
        config = MutationConfig(duration_probability=0.0, phase_pass_probability=0.0,
                                difficulty_probability=0.0)
        plan = make_plan(duration=300.0, phase_durations=(90.0, 20.0, 2.0))

        mutated = PlanMutator(rng, config).mutate(plan)

        assert mutated.estimated_duration == MAX_PLAN_DURATION
        assert [p.duration for p in mutated.structure.phases] == [MAX_PHASE_DURATION, 20.0, MIN_PHASE_DURATION]
        assert plan.estimated_duration == 300.0

    def test_mutate_clamps_with_default_probabilities(self):
        """Every child of an out-of-range plan lands inside the bounds."""
        mutator = PlanMutator(np.random.default_rng(0))
        plan = make_plan(duration=10.0, phase_durations=(90.0, 20.0, 20.0))

        for _ in range(200):
            child = mutator.mutate(plan)
            assert MIN_PLAN_DURATION <= child.estimated_duration <= MAX_PLAN_DURATION
            assert all(MIN_PHASE_DURATION <= p.duration <= MAX_PHASE_DURATION
                       for p in child.structure.phases)

    def test_variant_clamps_phases(self, rng):
        config = MutationConfig(phase_probability=0.0, difficulty_probability=0.0)
        plan = make_plan(duration=60.0, phase_durations=(75.0, 1.0))

        variant = PlanMutator(rng, config).variant(plan)

        assert [p.duration for p in variant.structure.phases] == [MAX_PHASE_DURATION, MIN_PHASE_DURATION]

    def test_mutate_returns_copy(self, base_plan, rng):
        config = MutationConfig(duration_probability=1.0, phase_pass_probability=1.0,
                                phase_probability=1.0, difficulty_probability=1.0)
        before = base_plan.to_dict()
        PlanMutator(rng, config).mutate(base_plan)
        assert base_plan.to_dict() == before

    def test_difficulty_shift_is_one_step(self, rng):
        config = MutationConfig(difficulty_probability=1.0)
        mutator = PlanMutator(rng, config)
        plan = make_plan(difficulty=Difficulty.INTERMEDIATE)
        for _ in range(20):
            shifted = mutator.mutate(plan)
            assert abs(shifted.difficulty.rank - plan.difficulty.rank) <= 1

    def test_crossover_keeps_phases_non_empty(self, rng):
        """Children always receive at least one phase."""
        mutator = PlanMutator(rng)
        a = make_plan(phase_durations=(10.0,), plan_id="a")
        b = make_plan(phase_durations=(15.0, 25.0, 35.0), plan_id="b")

        for _ in range(50):
            c1, c2 = mutator.crossover(a, b)
            assert len(c1.structure.phases) >= 1
            assert len(c2.structure.phases) >= 1
            assert len(c1.structure.phases) + len(c2.structure.phases) == 4

    def test_crossover_swaps_tails(self):
        """With a one-phase parent the cut is at 0, so whole phase lists swap."""
        mutator = PlanMutator(np.random.default_rng(0), MutationConfig(duration_swap_probability=0.0))
        a = make_plan(duration=60.0, phase_durations=(10.0,), plan_id="a")
        b = make_plan(duration=90.0, phase_durations=(15.0, 25.0), plan_id="b")

        c1, c2 = mutator.crossover(a, b)

        assert [p.duration for p in c1.structure.phases] == [15.0, 25.0]
        assert [p.duration for p in c2.structure.phases] == [10.0]
        assert c1.estimated_duration == 60.0

    def test_crossover_duration_swap(self):
        mutator = PlanMutator(np.random.default_rng(0), MutationConfig(duration_swap_probability=1.0))
        a = make_plan(duration=60.0, plan_id="a")
        b = make_plan(duration=90.0, plan_id="b")

        c1, c2 = mutator.crossover(a, b)

        assert (c1.estimated_duration, c2.estimated_duration) == (90.0, 60.0)

    def test_crossover_does_not_touch_parents(self, rng):
        a = make_plan(plan_id="a")
        b = make_plan(phase_durations=(5.0, 6.0, 7.0), plan_id="b")
        before = (a.to_dict(), b.to_dict())
        c1, _ = PlanMutator(rng).crossover(a, b)
        c1.structure.phases[0].duration = 55.0
        assert (a.to_dict(), b.to_dict()) == before


class TestPopulation:
    """Tests for Population ranking and stats."""

    def test_stats(self, base_plan):
        other = make_plan(duration=90.0)
        population = Population(plans=[base_plan, other, base_plan.clone()], fitness=[0.5, 0.8, 0.2])

        stats = population.get_stats()

        assert stats.best_fitness == 0.8
        assert stats.worst_fitness == 0.2
        assert stats.average_fitness == pytest.approx(0.5)
        assert stats.spread == pytest.approx(0.3)
        assert stats.diversity_index == pytest.approx(2 / 3)

    def test_ranked_best_first(self, base_plan):
        other = make_plan(duration=90.0)
        population = Population(plans=[base_plan, other], fitness=[0.1, 0.9])
        assert population.ranked()[0][0] is other
        assert population.get_best() == (other, 0.9)


class TestGeneticPlanOptimizer:
    """Tests for GeneticPlanOptimizer."""

    def test_zero_generations_returns_base_plan(self, base_plan, request_60):
        """No generations run means the base plan comes back unchanged."""
        optimizer = GeneticPlanOptimizer(GeneticConfig(generations=0), rng=np.random.default_rng(1))
        before = base_plan.to_dict()

        result = optimizer.optimize(base_plan, request_60)

        assert result is base_plan
        assert result.to_dict() == before
        assert optimizer.get_convergence_history() == {'best': [], 'avg': []}

    def test_empty_plan_rejected(self, request_60):
        empty = Plan(id="empty", estimated_duration=60.0, difficulty=Difficulty.BEGINNER,
                     structure=PlanStructure())
        with pytest.raises(PlanValidationError):
            GeneticPlanOptimizer(rng=np.random.default_rng(1)).optimize(empty, request_60)

    def test_never_worse_than_base(self, request_60):
        """The returned plan's fitness is at least the base plan's."""
        evaluator = PlanFitnessEvaluator()
        for seed in range(5):
            base = make_plan(duration=150.0, phase_durations=(40.0, 50.0), difficulty=Difficulty.ADVANCED)
            optimizer = GeneticPlanOptimizer(
                GeneticConfig(population_size=10, generations=5),
                evaluator=evaluator,
                rng=np.random.default_rng(seed),
            )
            best = optimizer.optimize(base, request_60)
            assert evaluator(best, request_60) >= evaluator(base, request_60) - 1e-12

    def test_best_fitness_is_monotonic(self, request_60):
        """Per-generation best fitness never decreases."""
        optimizer = GeneticPlanOptimizer(
            GeneticConfig(population_size=12, generations=8, convergence_threshold=0.0,
                          mutation_rate=0.9),
            rng=np.random.default_rng(3),
        )
        optimizer.optimize(make_plan(duration=200.0), request_60)

        best = optimizer.get_convergence_history()['best']
        assert len(best) == 9
        assert all(b2 >= b1 - 1e-12 for b1, b2 in zip(best, best[1:]))

    def test_seeded_runs_replay(self, base_plan, request_60):
        """The same seed reproduces the same plan."""
        config = GeneticConfig(population_size=8, generations=4, convergence_threshold=0.0)
        r1 = GeneticPlanOptimizer(config, rng=np.random.default_rng(11)).optimize(base_plan, request_60)
        r2 = GeneticPlanOptimizer(config, rng=np.random.default_rng(11)).optimize(base_plan, request_60)
        assert r1.to_dict() == r2.to_dict()

    def test_base_plan_not_mutated(self, base_plan, request_60):
        before = base_plan.to_dict()
        GeneticPlanOptimizer(GeneticConfig(population_size=6, generations=3),
                             rng=np.random.default_rng(5)).optimize(base_plan, request_60)
        assert base_plan.to_dict() == before

    def test_population_size_one(self, base_plan, request_60):
        """A population of one is just the base plan carried by elitism."""
        optimizer = GeneticPlanOptimizer(GeneticConfig(population_size=1, generations=3),
                                         rng=np.random.default_rng(2))
        result = optimizer.evolve(base_plan, request_60)
        assert result.best_fitness == pytest.approx(result.base_fitness)

    def test_convergence_stops_early(self, base_plan, request_60):
        """A generous threshold stops after the first generation."""
        optimizer = GeneticPlanOptimizer(
            GeneticConfig(population_size=6, generations=10, convergence_threshold=1.0),
            rng=np.random.default_rng(4),
        )
        result = optimizer.evolve(base_plan, request_60)
        assert result.converged
        assert result.generations_run == 1

    def test_parallel_matches_sequential(self, base_plan, request_60):
        """Thread-pool evaluation changes nothing about the outcome."""
        seq = GeneticConfig(population_size=10, generations=4, convergence_threshold=0.0)
        par = GeneticConfig(population_size=10, generations=4, convergence_threshold=0.0,
                            parallel=True, max_workers=3)
        r1 = GeneticPlanOptimizer(seq, rng=np.random.default_rng(9)).evolve(base_plan, request_60)
        r2 = GeneticPlanOptimizer(par, rng=np.random.default_rng(9)).evolve(base_plan, request_60)
        assert r1.best_fitness == r2.best_fitness
        assert r1.best_plan.to_dict() == r2.best_plan.to_dict()

    def test_result_to_dict(self, base_plan):
        result = GeneticPlanOptimizer(GeneticConfig(population_size=4, generations=2),
                                      rng=np.random.default_rng(6)).evolve(base_plan, make_request(90.0))
        data = result.to_dict()
        assert data['improvement'] == pytest.approx(result.best_fitness - result.base_fitness)
        assert len(data['history']) == len(result.history)

    def test_optimize_plan_convenience(self, base_plan, request_60):
        best = optimize_plan(base_plan, request_60, GeneticConfig(population_size=6, generations=2), seed=1)
        assert best.structure.phases
