"""
Core Infrastructure
====================

Foundational components shared by every optimizer strategy.

Components:
- exceptions: Unified error hierarchy
- structured_log: JSON event logging
"""

from .exceptions import (
    PlanOptimizerError,
    PlanValidationError,
    ConfigurationError,
    PersistenceError,
    is_recoverable,
    get_error_code,
)
from .structured_log import jlog, read_recent_logs, get_log_stats

__all__ = [
    # Exceptions
    'PlanOptimizerError',
    'PlanValidationError',
    'ConfigurationError',
    'PersistenceError',
    'is_recoverable',
    'get_error_code',
    # Structured Logging
    'jlog',
    'read_recent_logs',
    'get_log_stats',
]
