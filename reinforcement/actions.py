"""
Discrete edit actions the RL selector can propose, with their parameters.

Each action type has its own parameter class so a proposal carries only the
values that make sense for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, List, Union

from planning.models import (
    MAX_PLAN_DURATION,
    MIN_PLAN_DURATION,
    Difficulty,
    Phase,
    PhaseType,
    Plan,
)


class ActionType(Enum):
    EXTEND_DURATION = "extend_duration"
    REDUCE_DURATION = "reduce_duration"
    ADD_BREAK = "add_break"
    REMOVE_BREAK = "remove_break"
    INCREASE_DIFFICULTY = "increase_difficulty"
    DECREASE_DIFFICULTY = "decrease_difficulty"


ALL_ACTIONS: tuple = tuple(ActionType)

# Structural validity bounds
EXTEND_BELOW_MINUTES = 180
REDUCE_ABOVE_MINUTES = 60
ADD_BREAK_BELOW_PHASES = 8
REMOVE_BREAK_ABOVE_PHASES = 3


@dataclass(frozen=True)
class ExtendDuration:
    action: ClassVar[ActionType] = ActionType.EXTEND_DURATION
    delta_minutes: int = 30


@dataclass(frozen=True)
class ReduceDuration:
    action: ClassVar[ActionType] = ActionType.REDUCE_DURATION
    delta_minutes: int = 15


@dataclass(frozen=True)
class AddBreak:
    action: ClassVar[ActionType] = ActionType.ADD_BREAK
    break_duration: int = 10
    position: str = "middle"


@dataclass(frozen=True)
class RemoveBreak:
    action: ClassVar[ActionType] = ActionType.REMOVE_BREAK
    break_type: str = "shortest"


@dataclass(frozen=True)
class IncreaseDifficulty:
    action: ClassVar[ActionType] = ActionType.INCREASE_DIFFICULTY
    steps: int = 1


@dataclass(frozen=True)
class DecreaseDifficulty:
    action: ClassVar[ActionType] = ActionType.DECREASE_DIFFICULTY
    steps: int = 1


ActionParameters = Union[
    ExtendDuration,
    ReduceDuration,
    AddBreak,
    RemoveBreak,
    IncreaseDifficulty,
    DecreaseDifficulty,
]

DEFAULT_PARAMETERS: Dict[ActionType, ActionParameters] = {
    ActionType.EXTEND_DURATION: ExtendDuration(),
    ActionType.REDUCE_DURATION: ReduceDuration(),
    ActionType.ADD_BREAK: AddBreak(),
    ActionType.REMOVE_BREAK: RemoveBreak(),
    ActionType.INCREASE_DIFFICULTY: IncreaseDifficulty(),
    ActionType.DECREASE_DIFFICULTY: DecreaseDifficulty(),
}


@dataclass(frozen=True)
class ReinforcementAction:
    """A proposed action with its learned value."""
    parameters: ActionParameters
    expected_reward: float
    confidence: float

    @property
    def action(self) -> ActionType:
        return self.parameters.action

    def to_dict(self) -> Dict[str, Any]:
        return {
            'action': self.action.value,
            'parameters': dict(vars(self.parameters)),
            'expected_reward': self.expected_reward,
            'confidence': self.confidence,
        }


def available_actions(plan: Plan) -> List[ActionType]:
    """Actions that are structurally valid for `plan`, in canonical order."""
    duration = plan.estimated_duration
    phase_count = len(plan.structure.phases)
    actions: List[ActionType] = []

    if duration < EXTEND_BELOW_MINUTES:
        actions.append(ActionType.EXTEND_DURATION)
    if duration > REDUCE_ABOVE_MINUTES:
        actions.append(ActionType.REDUCE_DURATION)
    if phase_count < ADD_BREAK_BELOW_PHASES:
        actions.append(ActionType.ADD_BREAK)
    if phase_count > REMOVE_BREAK_ABOVE_PHASES:
        actions.append(ActionType.REMOVE_BREAK)
    if plan.difficulty is not Difficulty.EXPERT:
        actions.append(ActionType.INCREASE_DIFFICULTY)
    if plan.difficulty is not Difficulty.BEGINNER:
        actions.append(ActionType.DECREASE_DIFFICULTY)

    return actions


def apply_action(plan: Plan, parameters: ActionParameters) -> Plan:
    """Return a copy of `plan` with the action applied; `plan` is untouched."""
    result = plan.clone()
    phases = result.structure.phases

    if isinstance(parameters, ExtendDuration):
        result.estimated_duration = min(MAX_PLAN_DURATION, result.estimated_duration + parameters.delta_minutes)
    elif isinstance(parameters, ReduceDuration):
        result.estimated_duration = max(MIN_PLAN_DURATION, result.estimated_duration - parameters.delta_minutes)
    elif isinstance(parameters, AddBreak):
        index = {'start': 0, 'end': len(phases)}.get(parameters.position, len(phases) // 2)
        phases.insert(index, Phase(
            id=f"break-{len(phases) + 1}",
            name="Break",
            phase_type=PhaseType.BREAK,
            duration=float(parameters.break_duration),
        ))
    elif isinstance(parameters, RemoveBreak):
        breaks = [p for p in phases if p.phase_type is PhaseType.BREAK]
        if breaks and len(phases) > 1:
            pick = min if parameters.break_type == "shortest" else max
            phases.remove(pick(breaks, key=lambda p: p.duration))
    elif isinstance(parameters, IncreaseDifficulty):
        result.difficulty = result.difficulty.shift(parameters.steps)
    elif isinstance(parameters, DecreaseDifficulty):
        result.difficulty = result.difficulty.shift(-parameters.steps)

    return result
