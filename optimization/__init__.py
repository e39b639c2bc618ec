"""
Plan optimization facade.

Runs the genetic optimizer, the neural scorer and the RL action selector
on a single plan and collects their results in one report.
"""

from .plan_optimizer import OptimizationReport, PlanOptimizer

__all__ = [
    'PlanOptimizer',
    'OptimizationReport',
]
