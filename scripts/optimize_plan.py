#!/usr/bin/env python3
"""
Optimize a session plan from the command line.

Loads a plan and a generation request from JSON, runs the genetic search,
scores the result and proposes RL actions, then prints (or writes) the
report as JSON.

Usage:
    python scripts/optimize_plan.py plan.json --request request.json
    python scripts/optimize_plan.py plan.json --request request.json \
        --config optimizer.yaml --history history.csv --seed 7 --output report.json
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path as _P
from typing import Any, Dict

sys.path.insert(0, str(_P(__file__).resolve().parents[1]))

from config.settings_schema import load_validated_settings
from core.exceptions import PlanOptimizerError
from optimization.plan_optimizer import PlanOptimizer
from planning.models import GenerationRequest, Plan
from reinforcement.store import HistoryStore


def _read_json(path: _P) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description='Optimize a session plan with GA, neural scoring and RL actions')
    ap.add_argument('plan', type=str, help='Plan JSON file')
    ap.add_argument('--request', type=str, required=True, help='Generation request JSON file')
    ap.add_argument('--config', type=str, default=None, help='Optimizer YAML (defaults to bundled config)')
    ap.add_argument('--history', type=str, default=None, help='Historical records (.csv or .jsonl)')
    ap.add_argument('--seed', type=int, default=None)
    ap.add_argument('--refresh-prediction', action='store_true',
                    help='Score the plan before the genetic search and use that prediction')
    ap.add_argument('--output', type=str, default=None, help='Write the report here instead of stdout')
    ap.add_argument('--verbose', action='store_true')
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    try:
        plan = Plan.from_dict(_read_json(_P(args.plan)))
        request = GenerationRequest.from_dict(_read_json(_P(args.request)))
    except (OSError, ValueError, KeyError) as e:
        print(f"Failed to read input: {e}", file=sys.stderr)
        return 2

    try:
        settings = load_validated_settings(args.config)
        optimizer = PlanOptimizer.from_settings(settings, seed=args.seed)
        history = HistoryStore(args.history).load() if args.history else []
        report = optimizer.run(plan, request, history=history, refresh_prediction=args.refresh_prediction)
    except PlanOptimizerError as e:
        print(str(e), file=sys.stderr)
        return 1

    payload = json.dumps(report.to_dict(), indent=2)
    if args.output:
        out = _P(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(payload, encoding='utf-8')
        print(f"Wrote {out} (fitness {report.evolution.base_fitness:.4f} -> {report.evolution.best_fitness:.4f})")
    else:
        print(payload)
    return 0


if __name__ == '__main__':
    sys.exit(main())
