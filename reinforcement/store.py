"""
Persistence collaborators for the RL selector.

- QTableStore: JSON checkpoint of a QTable (atomic replace on save)
- HistoryStore: (state, action, reward) records from CSV or JSON-lines files

Serialization round-trips values and visit counts exactly.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Union

import pandas as pd

from core.exceptions import PersistenceError
from core.structured_log import jlog

from .actions import ActionType
from .q_table import QTable
from .selector import HistoricalRecord

logger = logging.getLogger(__name__)

HISTORY_COLUMNS = ('state', 'action', 'reward')


class QTableStore:
    """Load-at-startup / checkpoint-on-update storage for a QTable."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self, learning_rate: float = 0.1, discount_factor: float = 0.9) -> QTable:
        """
        Load the checkpoint, or return an empty table when none exists yet.

        Raises:
            PersistenceError: if the file exists but cannot be parsed
        """
        if not self.path.exists():
            logger.info(f"No Q-table checkpoint at {self.path}; starting empty")
            return QTable(learning_rate=learning_rate, discount_factor=discount_factor)

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                table = QTable.from_dict(json.load(f))
        except (OSError, ValueError, KeyError) as e:
            raise PersistenceError(
                "Failed to load Q-table checkpoint",
                context={'path': str(self.path)},
                cause=e,
            ) from e

        logger.info(f"Loaded Q-table with {len(table)} states from {self.path}")
        return table

    def save(self, table: QTable) -> None:
        """Write the checkpoint atomically (temp file + replace)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + '.tmp')
        try:
            with open(tmp, 'w', encoding='utf-8') as f:
                json.dump(table.to_dict(), f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            raise PersistenceError(
                "Failed to write Q-table checkpoint",
                context={'path': str(self.path)},
                cause=e,
            ) from e

        jlog("qtable_checkpoint", path=str(self.path), states=len(table))


def records_from_frame(df: pd.DataFrame) -> List[HistoricalRecord]:
    """
    Convert a DataFrame with state/action/reward columns into records.

    Rows with a missing reward or an unknown action are skipped.
    """
    missing = [c for c in HISTORY_COLUMNS if c not in df.columns]
    if missing:
        raise PersistenceError("History is missing columns", context={'missing': missing})

    known = {a.value for a in ActionType}
    clean = df.dropna(subset=['reward'])
    clean = clean[clean['action'].isin(known)]
    skipped = len(df) - len(clean)
    if skipped:
        logger.warning(f"Skipped {skipped} history rows with no reward or an unknown action")

    return [
        HistoricalRecord(state=str(row.state), action=ActionType(row.action), reward=float(row.reward))
        for row in clean.itertuples(index=False)
    ]


def records_to_frame(records: List[HistoricalRecord]) -> pd.DataFrame:
    return pd.DataFrame(
        [r.to_dict() for r in records],
        columns=list(HISTORY_COLUMNS),
    )


class HistoryStore:
    """Historical records on disk (.csv or .jsonl)."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> List[HistoricalRecord]:
        if not self.path.exists():
            return []
        try:
            if self.path.suffix == '.jsonl':
                df = pd.read_json(self.path, lines=True, dtype={'state': str})
            else:
                df = pd.read_csv(self.path, dtype={'state': str})
        except (OSError, ValueError) as e:
            raise PersistenceError(
                "Failed to read history",
                context={'path': str(self.path)},
                cause=e,
            ) from e
        return records_from_frame(df)

    def append(self, records: List[HistoricalRecord]) -> None:
        """Append records, keeping whatever is already stored."""
        existing = self.load()
        df = records_to_frame(existing + list(records))
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.suffix == '.jsonl':
            df.to_json(self.path, orient='records', lines=True)
        else:
            df.to_csv(self.path, index=False)
