"""
Planning data model: plans, phases, requests and the features derived from them.
"""

from .models import (
    Activity,
    AdaptationRule,
    Breakpoint,
    Difficulty,
    GenerationRequest,
    MAX_PHASE_DURATION,
    MAX_PLAN_DURATION,
    MIN_PHASE_DURATION,
    MIN_PLAN_DURATION,
    Phase,
    PhaseType,
    Plan,
    PlanStructure,
    PlanType,
    SessionContext,
    Transition,
    UserPreferences,
)
from .features import FEATURE_NAMES, N_FEATURES, encode_state, extract_features

__all__ = [
    # Models
    "Activity",
    "AdaptationRule",
    "Breakpoint",
    "Difficulty",
    "GenerationRequest",
    "Phase",
    "PhaseType",
    "Plan",
    "PlanStructure",
    "PlanType",
    "SessionContext",
    "Transition",
    "UserPreferences",
    # Bounds
    "MIN_PLAN_DURATION",
    "MAX_PLAN_DURATION",
    "MIN_PHASE_DURATION",
    "MAX_PHASE_DURATION",
    # Features
    "FEATURE_NAMES",
    "N_FEATURES",
    "encode_state",
    "extract_features",
]
