"""
Reusable test builders for the plan optimizer.

- plans: plan, request and history builders
"""

from .plans import make_history, make_plan, make_request

__all__ = [
    'make_plan',
    'make_request',
    'make_history',
]
