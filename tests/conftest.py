"""
Pytest configuration and shared fixtures for plan optimizer tests.
"""

import os
import sys
import tempfile
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Keep structured event logs out of the working tree
os.environ.setdefault("PLANOPT_LOG_DIR", tempfile.mkdtemp(prefix="planopt-logs-"))

from planning.models import (  # noqa: E402
    Difficulty,
    GenerationRequest,
    Phase,
    PhaseType,
    Plan,
    PlanStructure,
    SessionContext,
    UserPreferences,
)
from tests.fixtures.plans import make_plan, make_request  # noqa: E402


@pytest.fixture
def base_plan():
    """60-minute beginner plan with three 20-minute phases."""
    return make_plan()


@pytest.fixture
def request_60():
    """Request targeting 60 minutes with no tools and no preferences."""
    return make_request(target=60.0)


@pytest.fixture
def request_with_prefs():
    return GenerationRequest(
        context=SessionContext(available_time=90.0, tools=frozenset({"editor", "timer"})),
        preferences=UserPreferences(preferred_duration=90.0, difficulty=Difficulty.INTERMEDIATE),
        target_duration=90.0,
    )


@pytest.fixture
def rich_plan():
    """Plan with a warm-up, a break and an assessment, for structure hints."""
    phases = [
        Phase(id="focus", duration=30.0, phase_type=PhaseType.FOCUS),
        Phase(id="warm", duration=10.0, phase_type=PhaseType.WARMUP),
        Phase(id="rest", duration=5.0, phase_type=PhaseType.BREAK),
        Phase(id="quiz", duration=15.0, phase_type=PhaseType.ASSESSMENT),
    ]
    return Plan(
        id="rich",
        estimated_duration=60.0,
        difficulty=Difficulty.INTERMEDIATE,
        structure=PlanStructure(phases=phases),
    )


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def temp_logs_dir(tmp_path, monkeypatch):
    """Point the structured event log at a per-test directory."""
    logs_dir = tmp_path / "logs"
    monkeypatch.setenv("PLANOPT_LOG_DIR", str(logs_dir))
    return logs_dir
