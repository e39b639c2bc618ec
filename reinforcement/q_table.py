"""
Tabular action-value store.

Maps an encoded plan state to per-action value estimates. States are created
lazily with every action at 0 and are never pruned here. All
read-modify-write operations hold the table lock, so concurrent learning
updates cannot lose each other's writes.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Iterator, Optional, Tuple

from .actions import ALL_ACTIONS, ActionType

logger = logging.getLogger(__name__)


@dataclass
class QState:
    """Value estimates and visit bookkeeping for one state."""
    state_id: str
    actions: Dict[ActionType, float] = field(default_factory=dict)
    visits: int = 0
    last_update: datetime = field(default_factory=datetime.utcnow)

    def value(self, action: ActionType) -> float:
        return self.actions.get(action, 0.0)

    def to_dict(self) -> Dict:
        return {
            'state_id': self.state_id,
            'actions': {a.value: v for a, v in self.actions.items()},
            'visits': self.visits,
            'last_update': self.last_update.isoformat(),
        }

    @classmethod
    def from_dict(cls, d: Dict) -> "QState":
        return cls(
            state_id=d['state_id'],
            actions={ActionType(a): float(v) for a, v in d['actions'].items()},
            visits=int(d['visits']),
            last_update=datetime.fromisoformat(d['last_update']),
        )


class QTable:
    """
    Thread-safe state -> action -> value table.

    Usage:
        table = QTable(learning_rate=0.1)
        table.update(state, ActionType.ADD_BREAK, reward=0.8)
        table.get(state).value(ActionType.ADD_BREAK)   # 0.08
    """

    def __init__(
        self,
        learning_rate: float = 0.1,
        discount_factor: float = 0.9,
        actions: Iterable[ActionType] = ALL_ACTIONS,
    ):
        self.learning_rate = learning_rate
        self.discount_factor = discount_factor
        self.actions: Tuple[ActionType, ...] = tuple(actions)
        self._states: Dict[str, QState] = {}
        self._lock = threading.RLock()

    def __contains__(self, state: str) -> bool:
        return state in self._states

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[QState]:
        with self._lock:
            return iter(list(self._states.values()))

    def get(self, state: str) -> Optional[QState]:
        return self._states.get(state)

    def get_or_create(self, state: str) -> QState:
        """Return the state's entry, creating it with all actions at 0."""
        with self._lock:
            q_state = self._states.get(state)
            if q_state is None:
                q_state = QState(state_id=state, actions={a: 0.0 for a in self.actions})
                self._states[state] = q_state
            return q_state

    def record_visit(self, state: str) -> QState:
        with self._lock:
            q_state = self.get_or_create(state)
            q_state.visits += 1
            q_state.last_update = datetime.utcnow()
            return q_state

    def update(
        self,
        state: str,
        action: ActionType,
        reward: float,
        learning_rate: Optional[float] = None,
    ) -> float:
        """
        One-step update: Q(s,a) <- Q(s,a) + alpha * (reward - Q(s,a)).

        Returns:
            The new value
        """
        alpha = self.learning_rate if learning_rate is None else learning_rate
        with self._lock:
            q_state = self.get_or_create(state)
            current = q_state.value(action)
            new_value = current + alpha * (reward - current)
            q_state.actions[action] = new_value
            q_state.last_update = datetime.utcnow()
            return new_value

    def to_dict(self) -> Dict:
        with self._lock:
            return {
                'learning_rate': self.learning_rate,
                'discount_factor': self.discount_factor,
                'actions': [a.value for a in self.actions],
                'states': {sid: s.to_dict() for sid, s in self._states.items()},
            }

    @classmethod
    def from_dict(cls, data: Dict) -> "QTable":
        table = cls(
            learning_rate=data.get('learning_rate', 0.1),
            discount_factor=data.get('discount_factor', 0.9),
            actions=[ActionType(a) for a in data.get('actions', [a.value for a in ALL_ACTIONS])],
        )
        for sid, s in data.get('states', {}).items():
            table._states[sid] = QState.from_dict(s)
        return table

    def __repr__(self) -> str:
        return f"QTable(states={len(self)}, learning_rate={self.learning_rate})"
