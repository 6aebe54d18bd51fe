"""
History retention policy.

After each successful current-record upsert, one history snapshot is
appended and older snapshots beyond the keep count are pruned. History
is advisory: losing entries degrades rollback, never the live sync.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .config import DEFAULT_HISTORY_KEEP_COUNT
from .exceptions import HistoryError, RemoteError
from .remote.base import RemoteStore

logger = logging.getLogger(__name__)


@dataclass
class HistoryOutcome:
    """Result of one retention pass."""

    history_key: str | None = None
    pruned: list[str] = field(default_factory=list)
    error: HistoryError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class HistoryRetentionPolicy:
    """Appends history snapshots and caps them to the newest ``keep_count``."""

    def __init__(self, remote: RemoteStore, keep_count: int = DEFAULT_HISTORY_KEEP_COUNT):
        self.remote = remote
        self.keep_count = keep_count

    async def record(self, snapshot: dict[str, str], history_key: str | None = None) -> HistoryOutcome:
        """Insert one history snapshot, then prune. Never raises.

        Args:
            snapshot: Snapshot just written as the current record
            history_key: Pre-built history key (default: a fresh one)

        Returns:
            HistoryOutcome describing what happened
        """
        outcome = HistoryOutcome()
        try:
            outcome.history_key = await self._insert(snapshot, history_key)
            outcome.pruned = await self._prune()
        except HistoryError as e:
            logger.warning(f"History snapshot skipped: {e.message}")
            outcome.error = e
        return outcome

    async def _insert(self, snapshot: dict[str, str], history_key: str | None) -> str:
        try:
            return await self.remote.insert_history(snapshot, history_key)
        except RemoteError as e:
            raise HistoryError("insert", e) from e

    async def _prune(self) -> list[str]:
        try:
            return await self.remote.prune_history(self.keep_count)
        except RemoteError as e:
            raise HistoryError("prune", e) from e
