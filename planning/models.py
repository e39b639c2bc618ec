"""
Session Plan Data Model
=======================

Value types describing a candidate session plan (the optimization subject)
and the generation request it is optimized against.

Plans are mutable dataclasses owned by whoever created them; `Plan.clone()`
produces a structural copy with no shared mutable substructure, so optimizer
variants can be edited freely. Requests are frozen.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from core.exceptions import PlanValidationError


# Plan-level duration bounds (minutes)
MIN_PLAN_DURATION = 30.0
MAX_PLAN_DURATION = 240.0

# Per-phase duration bounds enforced by mutation operators (minutes)
MIN_PHASE_DURATION = 5.0
MAX_PHASE_DURATION = 60.0


class Difficulty(Enum):
    """Ordinal plan difficulty."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_ORDER.index(self)

    @property
    def encoded(self) -> float:
        """Numeric encoding used as a network feature (beginner=0.25 ... expert=1.0)."""
        return (self.rank + 1) / len(_DIFFICULTY_ORDER)

    def shift(self, steps: int) -> "Difficulty":
        """Move up (positive) or down (negative) the ladder, clamped at both ends."""
        idx = max(0, min(len(_DIFFICULTY_ORDER) - 1, self.rank + steps))
        return _DIFFICULTY_ORDER[idx]


_DIFFICULTY_ORDER: Tuple[Difficulty, ...] = (
    Difficulty.BEGINNER,
    Difficulty.INTERMEDIATE,
    Difficulty.ADVANCED,
    Difficulty.EXPERT,
)


class PlanType(Enum):
    """Kind of session a plan describes."""
    LEARNING = "learning"
    DEVELOPMENT = "development"
    COLLABORATION = "collaboration"
    REVIEW = "review"
    OPTIMIZATION = "optimization"


class PhaseType(Enum):
    """Role a phase plays inside a session."""
    WARMUP = "warmup"
    FOCUS = "focus"
    PRACTICE = "practice"
    REVIEW = "review"
    BREAK = "break"
    ASSESSMENT = "assessment"


@dataclass
class Activity:
    """A single activity inside a phase."""
    id: str
    type: str = "task"
    description: str = ""
    estimated_time: float = 0.0
    difficulty: float = 0.5

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'description': self.description,
            'estimated_time': self.estimated_time,
            'difficulty': self.difficulty,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Activity":
        return cls(
            id=str(d['id']),
            type=d.get('type', 'task'),
            description=d.get('description', ''),
            estimated_time=float(d.get('estimated_time', 0.0)),
            difficulty=float(d.get('difficulty', 0.5)),
        )


@dataclass
class Phase:
    """Ordered unit of work with a duration (minutes) and a set of activities."""
    id: str
    duration: float
    name: str = ""
    phase_type: PhaseType = PhaseType.FOCUS
    activities: List[Activity] = field(default_factory=list)
    objectives: List[str] = field(default_factory=list)

    def copy(self) -> "Phase":
        return replace(
            self,
            activities=[replace(a) for a in self.activities],
            objectives=list(self.objectives),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'type': self.phase_type.value,
            'duration': self.duration,
            'activities': [a.to_dict() for a in self.activities],
            'objectives': list(self.objectives),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Phase":
        return cls(
            id=str(d['id']),
            duration=float(d['duration']),
            name=d.get('name', ''),
            phase_type=PhaseType(d.get('type', PhaseType.FOCUS.value)),
            activities=[Activity.from_dict(a) for a in d.get('activities', [])],
            objectives=list(d.get('objectives', [])),
        )


@dataclass
class Transition:
    """Edge between two phases."""
    from_phase: str
    to_phase: str
    adaptive_rules: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'from_phase': self.from_phase,
            'to_phase': self.to_phase,
            'adaptive_rules': list(self.adaptive_rules),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Transition":
        return cls(
            from_phase=str(d['from_phase']),
            to_phase=str(d['to_phase']),
            adaptive_rules=list(d.get('adaptive_rules', [])),
        )


@dataclass
class Breakpoint:
    """Point inside a phase where the session may pause or adapt."""
    phase_id: str
    position: float = 0.5  # 0-1, position within phase
    conditions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phase_id': self.phase_id,
            'position': self.position,
            'conditions': list(self.conditions),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Breakpoint":
        return cls(
            phase_id=str(d['phase_id']),
            position=float(d.get('position', 0.5)),
            conditions=list(d.get('conditions', [])),
        )


@dataclass
class AdaptationRule:
    """Runtime rule that adjusts the session when its trigger fires."""
    id: str
    trigger: str
    action: str
    condition: str = ""
    priority: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'trigger': self.trigger,
            'condition': self.condition,
            'action': self.action,
            'priority': self.priority,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AdaptationRule":
        return cls(
            id=str(d['id']),
            trigger=d['trigger'],
            action=d['action'],
            condition=d.get('condition', ''),
            priority=int(d.get('priority', 0)),
        )


@dataclass
class PlanStructure:
    """Phases plus the connective tissue between them."""
    phases: List[Phase] = field(default_factory=list)
    transitions: List[Transition] = field(default_factory=list)
    breakpoints: List[Breakpoint] = field(default_factory=list)
    adaptation_rules: List[AdaptationRule] = field(default_factory=list)

    def copy(self) -> "PlanStructure":
        return PlanStructure(
            phases=[p.copy() for p in self.phases],
            transitions=[replace(t, adaptive_rules=list(t.adaptive_rules)) for t in self.transitions],
            breakpoints=[replace(b, conditions=list(b.conditions)) for b in self.breakpoints],
            adaptation_rules=[replace(r) for r in self.adaptation_rules],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phases': [p.to_dict() for p in self.phases],
            'transitions': [t.to_dict() for t in self.transitions],
            'breakpoints': [b.to_dict() for b in self.breakpoints],
            'adaptation_rules': [r.to_dict() for r in self.adaptation_rules],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PlanStructure":
        return cls(
            phases=[Phase.from_dict(p) for p in d.get('phases', [])],
            transitions=[Transition.from_dict(t) for t in d.get('transitions', [])],
            breakpoints=[Breakpoint.from_dict(b) for b in d.get('breakpoints', [])],
            adaptation_rules=[AdaptationRule.from_dict(r) for r in d.get('adaptation_rules', [])],
        )


@dataclass
class Plan:
    """
    A candidate session plan.

    `estimated_duration` is kept consistent with, but is not required to equal,
    the sum of phase durations. `success_prediction` is a cached score written
    by a scorer or an upstream predictor, never by the end user.
    """
    id: str
    estimated_duration: float
    difficulty: Difficulty
    structure: PlanStructure
    name: str = ""
    plan_type: PlanType = PlanType.LEARNING
    required_resources: FrozenSet[str] = field(default_factory=frozenset)
    success_prediction: float = 0.5
    tags: List[str] = field(default_factory=list)

    @property
    def phases(self) -> List[Phase]:
        return self.structure.phases

    def clone(self) -> "Plan":
        """Structural copy: the clone shares no mutable substructure with self."""
        return replace(
            self,
            structure=self.structure.copy(),
            required_resources=frozenset(self.required_resources),
            tags=list(self.tags),
        )

    def validate(self) -> "Plan":
        """
        Check structural invariants.

        Raises:
            PlanValidationError: on an empty phase list, a plan duration outside
                [MIN_PLAN_DURATION, MAX_PLAN_DURATION] or a non-positive phase
        """
        if not self.structure.phases:
            raise PlanValidationError(
                "Plan has no phases",
                context={'plan_id': self.id},
            )
        if not MIN_PLAN_DURATION <= self.estimated_duration <= MAX_PLAN_DURATION:
            raise PlanValidationError(
                f"Plan duration must be within [{MIN_PLAN_DURATION:g}, {MAX_PLAN_DURATION:g}] minutes",
                context={'plan_id': self.id, 'estimated_duration': self.estimated_duration},
            )
        for phase in self.structure.phases:
            if phase.duration <= 0:
                raise PlanValidationError(
                    "Phase duration must be positive",
                    context={'plan_id': self.id, 'phase_id': phase.id, 'duration': phase.duration},
                )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'type': self.plan_type.value,
            'estimated_duration': self.estimated_duration,
            'difficulty': self.difficulty.value,
            'structure': self.structure.to_dict(),
            'required_resources': sorted(self.required_resources),
            'success_prediction': self.success_prediction,
            'tags': list(self.tags),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Plan":
        return cls(
            id=str(d['id']),
            name=d.get('name', ''),
            plan_type=PlanType(d.get('type', PlanType.LEARNING.value)),
            estimated_duration=float(d['estimated_duration']),
            difficulty=Difficulty(d.get('difficulty', Difficulty.INTERMEDIATE.value)),
            structure=PlanStructure.from_dict(d.get('structure', {})),
            required_resources=frozenset(d.get('required_resources', [])),
            success_prediction=float(d.get('success_prediction', 0.5)),
            tags=list(d.get('tags', [])),
        )


@dataclass(frozen=True)
class SessionContext:
    """Situation the session will run in; levels are normalized to [0, 1]."""
    available_time: float
    energy_level: float = 0.5
    focus_level: float = 0.5
    tools: FrozenSet[str] = frozenset()
    time_of_day: str = "morning"
    environment: str = "normal"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SessionContext":
        return cls(
            available_time=float(d['available_time']),
            energy_level=float(d.get('energy_level', 0.5)),
            focus_level=float(d.get('focus_level', 0.5)),
            tools=frozenset(d.get('tools', [])),
            time_of_day=d.get('time_of_day', 'morning'),
            environment=d.get('environment', 'normal'),
        )


@dataclass(frozen=True)
class UserPreferences:
    """Optional user preferences; any field may be missing."""
    preferred_duration: Optional[float] = None
    difficulty: Optional[Difficulty] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "UserPreferences":
        difficulty = d.get('difficulty')
        preferred = d.get('preferred_duration')
        return cls(
            preferred_duration=float(preferred) if preferred is not None else None,
            difficulty=Difficulty(difficulty) if difficulty else None,
        )


@dataclass(frozen=True)
class GenerationRequest:
    """What the plan is being optimized for. Immutable once built."""
    context: SessionContext
    preferences: Optional[UserPreferences] = None
    target_duration: Optional[float] = None
    session_type: str = "learning"
    objectives: Tuple[str, ...] = ()

    @property
    def target(self) -> float:
        """Target duration, falling back to the available time."""
        if self.target_duration is not None:
            return self.target_duration
        return self.context.available_time

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GenerationRequest":
        prefs = d.get('preferences')
        target = d.get('target_duration')
        return cls(
            context=SessionContext.from_dict(d['context']),
            preferences=UserPreferences.from_dict(prefs) if prefs else None,
            target_duration=float(target) if target is not None else None,
            session_type=d.get('session_type', 'learning'),
            objectives=tuple(d.get('objectives', ())),
        )
