"""
Tabular reinforcement learning over discrete plan edits.

Components:
- actions: action types, their parameters and how to apply them
- q_table: thread-safe state -> action -> value table
- selector: learns from historical outcomes and proposes actions
- store: JSON / CSV persistence for the table and the history
"""

from .actions import (
    ALL_ACTIONS,
    ActionType,
    AddBreak,
    DecreaseDifficulty,
    ExtendDuration,
    IncreaseDifficulty,
    ReduceDuration,
    ReinforcementAction,
    RemoveBreak,
    apply_action,
    available_actions,
)
from .q_table import QState, QTable
from .selector import HistoricalRecord, RLActionSelector, SelectorConfig
from .store import HistoryStore, QTableStore, records_from_frame, records_to_frame

__all__ = [
    # Actions
    "ALL_ACTIONS",
    "ActionType",
    "ExtendDuration",
    "ReduceDuration",
    "AddBreak",
    "RemoveBreak",
    "IncreaseDifficulty",
    "DecreaseDifficulty",
    "ReinforcementAction",
    "apply_action",
    "available_actions",
    # Q-table
    "QState",
    "QTable",
    # Selector
    "HistoricalRecord",
    "RLActionSelector",
    "SelectorConfig",
    # Persistence
    "HistoryStore",
    "QTableStore",
    "records_from_frame",
    "records_to_frame",
]
