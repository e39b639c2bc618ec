"""
Feature extraction shared by the neural scorer and the RL state encoder.
"""

from __future__ import annotations

import json

import numpy as np

from .models import GenerationRequest, Plan

# Normalization scales
DURATION_SCALE = 240.0  # minutes (4 hours)
PHASE_COUNT_SCALE = 10.0

# 30-minute buckets for the discrete state key
STATE_DURATION_BUCKET = 30

FEATURE_NAMES = (
    'duration',
    'difficulty',
    'phase_count',
    'energy_level',
    'focus_level',
    'available_time',
    'success_prediction',
)
N_FEATURES = len(FEATURE_NAMES)


def extract_features(plan: Plan, request: GenerationRequest) -> np.ndarray:
    """
    Build the fixed-length feature vector for a plan/request pair.

    Returns:
        Float array of shape (7,) in FEATURE_NAMES order
    """
    return np.array([
        plan.estimated_duration / DURATION_SCALE,
        plan.difficulty.encoded,
        len(plan.structure.phases) / PHASE_COUNT_SCALE,
        request.context.energy_level,
        request.context.focus_level,
        request.context.available_time / DURATION_SCALE,
        plan.success_prediction,
    ], dtype=float)


def encode_state(plan: Plan) -> str:
    """
    Reduce a plan to the discrete key used by the Q-table.

    Two plans with the same duration bucket, difficulty, phase count and
    type map to the same key.
    """
    return json.dumps({
        'duration': int(plan.estimated_duration // STATE_DURATION_BUCKET),
        'difficulty': plan.difficulty.value,
        'phases': len(plan.structure.phases),
        'type': plan.plan_type.value,
    })
