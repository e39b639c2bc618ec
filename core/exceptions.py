"""
Unified Exception Hierarchy for the Plan Optimizer.

All exceptions inherit from PlanOptimizerError, enabling consistent error
handling across the genetic, neural and reinforcement strategies.

Usage:
    from core.exceptions import PlanOptimizerError, PlanValidationError

    try:
        best = optimizer.optimize(plan, request)
    except PlanValidationError as e:
        # Structural problem with the input plan (not retried)
        reject_request(e.error_code, e.context)
    except PlanOptimizerError as e:
        # Catch-all for optimizer errors
        log_error(e)
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================

class PlanOptimizerError(Exception):
    """
    Base exception for all plan optimizer errors.

    Attributes:
        error_code: Unique identifier for this error type
        is_recoverable: Whether the caller can attempt recovery
        context: Additional context about the error
        timestamp: When the error occurred
    """
    error_code: str = "OPTIMIZER_ERROR"
    is_recoverable: bool = True

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.utcnow()
        super().__init__(message)

    def __str__(self) -> str:
        base = f"[{self.error_code}] {self.message}"
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx_str})"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "is_recoverable": self.is_recoverable,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# INPUT ERRORS (Non-recoverable - the request must be fixed)
# =============================================================================

class PlanValidationError(PlanOptimizerError):
    """
    Raised when a plan violates a structural invariant.

    Examples:
    - Empty phase list
    - Non-positive phase duration
    - Non-positive estimated duration
    """
    error_code = "INVALID_PLAN"
    is_recoverable = False


class ConfigurationError(PlanOptimizerError):
    """Raised for invalid optimizer, network or settings configuration."""
    error_code = "INVALID_CONFIG"
    is_recoverable = False


# =============================================================================
# COLLABORATOR ERRORS (Recoverable)
# =============================================================================

class PersistenceError(PlanOptimizerError):
    """
    Raised when a Q-table checkpoint or history file cannot be read or written.

    Callers can fall back to an empty table and retry the checkpoint later.
    """
    error_code = "PERSISTENCE_ERROR"


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def is_recoverable(error: Exception) -> bool:
    """
    Check if an error can be recovered from.

    Args:
        error: The exception to check

    Returns:
        True for recoverable optimizer errors, False otherwise
    """
    if isinstance(error, PlanOptimizerError):
        return error.is_recoverable
    return False


def get_error_code(error: Exception) -> str:
    """
    Get the error code for an exception.

    Returns:
        Error code string, or "UNKNOWN" for foreign exceptions
    """
    if isinstance(error, PlanOptimizerError):
        return error.error_code
    return "UNKNOWN"


__all__ = [
    "PlanOptimizerError",
    "PlanValidationError",
    "ConfigurationError",
    "PersistenceError",
    "is_recoverable",
    "get_error_code",
]
