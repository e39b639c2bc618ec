"""
RL Action Selector
==================

Proposes discrete plan edits from learned action values.

For the plan's encoded state the selector:
1. creates the state entry on first sight (all actions at 0),
2. counts the visit,
3. folds in historical (state, action, reward) records for that state,
4. returns every structurally valid action whose value clears the
   threshold, best first.

Each decision is treated as an independent bandit choice, so the update
has no bootstrapping term.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from core.structured_log import jlog
from planning.features import encode_state
from planning.models import Plan

from .actions import DEFAULT_PARAMETERS, ActionType, ReinforcementAction, available_actions
from .q_table import QTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoricalRecord:
    """Observed outcome of taking `action` in `state`."""
    state: str
    action: ActionType
    reward: float

    def to_dict(self):
        return {'state': self.state, 'action': self.action.value, 'reward': self.reward}


@dataclass
class SelectorConfig:
    learning_rate: float = 0.1
    action_threshold: float = 0.5
    confidence_visits: int = 10


class RLActionSelector:
    """
    Q-value driven action proposals.

    The Q-table is injected so several selectors (or a persistence layer)
    can share it.

    Usage:
        selector = RLActionSelector(QTable())
        actions = selector.select_actions(plan, history)
    """

    def __init__(self, q_table: Optional[QTable] = None, config: Optional[SelectorConfig] = None):
        self.config = config or SelectorConfig()
        self.q_table = q_table if q_table is not None else QTable(learning_rate=self.config.learning_rate)

    def learn(self, records: Iterable[HistoricalRecord], state: Optional[str] = None) -> int:
        """
        Apply the one-step update for each record (optionally only those of `state`).

        Returns:
            Number of records applied
        """
        applied = 0
        for record in records:
            if state is not None and record.state != state:
                continue
            self.q_table.update(record.state, record.action, record.reward, self.config.learning_rate)
            applied += 1
        return applied

    def confidence(self, visits: int) -> float:
        return min(1.0, visits / self.config.confidence_visits)

    def select_actions(
        self,
        plan: Plan,
        historical_records: Iterable[HistoricalRecord] = (),
    ) -> List[ReinforcementAction]:
        """
        Propose actions for `plan`, highest expected reward first.

        Returns an empty list when no valid action clears the threshold.
        """
        state = encode_state(plan)
        q_state = self.q_table.record_visit(state)
        applied = self.learn(historical_records, state=state)

        candidates = available_actions(plan)
        confidence = self.confidence(q_state.visits)
        selected = [
            ReinforcementAction(
                parameters=DEFAULT_PARAMETERS[action],
                expected_reward=q_state.value(action),
                confidence=confidence,
            )
            for action in candidates
            if q_state.value(action) > self.config.action_threshold
        ]
        selected.sort(key=lambda a: a.expected_reward, reverse=True)

        logger.debug(
            f"State {state}: {len(candidates)} valid actions, {applied} records applied, "
            f"{len(selected)} selected"
        )
        jlog(
            "rl_actions_selected",
            level="DEBUG",
            plan_id=plan.id,
            state=state,
            selected=[a.action.value for a in selected],
            visits=q_state.visits,
        )
        return selected
