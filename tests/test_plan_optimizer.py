"""
Tests for the PlanOptimizer facade and the optimize_plan command line script.
"""
import json
import sys
from pathlib import Path

import pytest

from config.settings_schema import OptimizerSettings
from core.exceptions import PlanValidationError
from core.structured_log import read_recent_logs
from evolution import PlanFitnessEvaluator
from optimization import OptimizationReport, PlanOptimizer
from planning.features import encode_state
from planning.models import Difficulty, Plan, PlanStructure
from reinforcement import ActionType, QTableStore

from tests.fixtures.plans import make_history

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "scripts"))


def small_settings(**reinforcement):
    return OptimizerSettings(
        genetic={"population_size": 8, "generations": 3, "seed": 1},
        neural={"hidden_layers": [6], "seed": 2},
        reinforcement=reinforcement,
    )


class TestPlanOptimizer:
    """Tests for PlanOptimizer."""

    def test_run_produces_report(self, base_plan, request_60, temp_logs_dir):
        history = make_history(base_plan, ActionType.ADD_BREAK, [1.0] * 20)
        optimizer = PlanOptimizer.from_settings(small_settings())

        report = optimizer.run(base_plan, request_60, history=history)

        assert isinstance(report, OptimizationReport)
        assert report.original_plan is base_plan
        assert report.evolution.best_fitness >= report.evolution.base_fitness
        assert 0.0 <= report.neural.prediction <= 1.0
        assert report.improvement == pytest.approx(
            report.evolution.best_fitness - report.evolution.base_fitness
        )
        events = [e['event'] for e in read_recent_logs(50)]
        assert 'ga_run_complete' in events
        assert 'plan_optimization_complete' in events

    def test_actions_follow_optimized_plan(self, base_plan, request_60):
        """Actions are proposed for the optimized plan's state."""
        optimizer = PlanOptimizer.from_settings(small_settings())
        report = optimizer.run(base_plan, request_60)
        assert encode_state(report.optimized_plan) in optimizer.selector.q_table

    def test_seeded_runs_replay(self, base_plan, request_60):
        r1 = PlanOptimizer.from_settings(small_settings()).run(base_plan, request_60)
        r2 = PlanOptimizer.from_settings(small_settings()).run(base_plan, request_60)
        assert r1.to_dict() == r2.to_dict()

    def test_seed_override(self, base_plan, request_60):
        settings = small_settings()
        a = PlanOptimizer.from_settings(settings, seed=5).score(base_plan, request_60)
        b = PlanOptimizer.from_settings(settings, seed=5).score(base_plan, request_60)
        assert a.prediction == b.prediction

    def test_refresh_prediction(self, base_plan, request_60):
        """The scorer's prediction feeds the base fitness; the input plan is untouched."""
        optimizer = PlanOptimizer.from_settings(small_settings())
        prediction = optimizer.score(base_plan, request_60).prediction

        report = optimizer.run(base_plan, request_60, refresh_prediction=True)

        refreshed = base_plan.clone()
        refreshed.success_prediction = prediction
        assert report.evolution.base_fitness == pytest.approx(
            PlanFitnessEvaluator().evaluate(refreshed, request_60)
        )
        assert base_plan.success_prediction == 0.5

    def test_invalid_plan_rejected(self, request_60):
        empty = Plan(id="e", estimated_duration=60.0, difficulty=Difficulty.BEGINNER, structure=PlanStructure())
        with pytest.raises(PlanValidationError):
            PlanOptimizer.from_settings(small_settings()).run(empty, request_60)

    def test_qtable_checkpoint(self, base_plan, request_60, tmp_path):
        """With a qtable_path the table is loaded and written back after selection."""
        path = tmp_path / "q.json"
        optimizer = PlanOptimizer.from_settings(small_settings(qtable_path=str(path)))
        optimizer.select_actions(base_plan, make_history(base_plan, ActionType.EXTEND_DURATION, [1.0]))

        reloaded = QTableStore(path).load()
        assert reloaded.get(encode_state(base_plan)).visits == 1

        again = PlanOptimizer.from_settings(small_settings(qtable_path=str(path)))
        again.select_actions(base_plan)
        assert QTableStore(path).load().get(encode_state(base_plan)).visits == 2


class TestOptimizePlanScript:
    """Tests for scripts/optimize_plan.py."""

    def write_inputs(self, tmp_path, base_plan):
        plan_path = tmp_path / "plan.json"
        request_path = tmp_path / "request.json"
        config_path = tmp_path / "optimizer.yaml"
        plan_path.write_text(json.dumps(base_plan.to_dict()))
        request_path.write_text(json.dumps({'context': {'available_time': 60}, 'target_duration': 60}))
        config_path.write_text("genetic:\n  population_size: 6\n  generations: 2\n")
        return plan_path, request_path, config_path

    def test_writes_report(self, tmp_path, base_plan):
        import optimize_plan

        plan_path, request_path, config_path = self.write_inputs(tmp_path, base_plan)
        out = tmp_path / "out" / "report.json"

        code = optimize_plan.main([
            str(plan_path), '--request', str(request_path), '--config', str(config_path),
            '--seed', '3', '--output', str(out),
        ])

        assert code == 0
        report = json.loads(out.read_text())
        assert report['original_plan']['id'] == base_plan.id
        assert report['evolution']['best_fitness'] >= report['evolution']['base_fitness']

    def test_missing_plan_file(self, tmp_path, base_plan):
        import optimize_plan

        _, request_path, _ = self.write_inputs(tmp_path, base_plan)
        code = optimize_plan.main([str(tmp_path / "nope.json"), '--request', str(request_path)])
        assert code == 2

    def test_invalid_plan_exit_code(self, tmp_path, base_plan):
        import optimize_plan

        plan_path, request_path, config_path = self.write_inputs(tmp_path, base_plan)
        data = base_plan.to_dict()
        data['structure']['phases'] = []
        plan_path.write_text(json.dumps(data))

        code = optimize_plan.main([str(plan_path), '--request', str(request_path), '--config', str(config_path)])
        assert code == 1
