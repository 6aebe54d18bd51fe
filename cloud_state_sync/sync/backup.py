"""
Backup and restore routines.

One backup captures the tracked local subset, upserts it as the current
remote record, then hands it to the history retention policy. Restore is
the explicit, user-initiated counterpart of hydration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..exceptions import CloudDataMissingError
from ..remote.base import RemoteStore
from ..retention import HistoryRetentionPolicy
from ..snapshot import SnapshotCodec, SnapshotSummary

logger = logging.getLogger(__name__)


@dataclass
class BackupResult:
    """Result of a successful backup."""

    user_id: str
    summary: SnapshotSummary
    updated_at: str
    history_key: str | None
    history_keep_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            **self.summary.to_dict(),
            "updated_at": self.updated_at,
            "history_key": self.history_key,
            "history_keep_count": self.history_keep_count,
        }


@dataclass
class RestoreResult:
    """Result of a successful explicit restore."""

    user_id: str
    summary: SnapshotSummary


class BackupService:
    """Moves snapshots between the local store and the remote store."""

    def __init__(
        self,
        codec: SnapshotCodec,
        remote: RemoteStore,
        retention: HistoryRetentionPolicy,
    ):
        """Initialize the backup service.

        Args:
            codec: Snapshot codec over the local store
            remote: Remote store bound to the current user
            retention: History retention policy
        """
        self.codec = codec
        self.remote = remote
        self.retention = retention

    async def backup(self, prefix: str = "") -> BackupResult:
        """Upload the current tracked state.

        The snapshot is captured before the first suspension point, so it
        reflects local state at the moment the backup started.

        Raises:
            RemoteError: If the current-record upsert fails
        """
        snapshot = self.codec.capture(prefix)
        summary = SnapshotSummary.from_snapshot(snapshot)

        record = await self.remote.upsert_current(snapshot)

        # History is best effort; failures never fail the backup
        history = await self.retention.record(snapshot)

        logger.info(
            f"Backed up {summary.key_count} keys "
            f"({summary.report_count} reports, {summary.archive_count} archived)"
        )
        return BackupResult(
            user_id=self.remote.user_id or "",
            summary=summary,
            updated_at=record.updated_at,
            history_key=history.history_key,
            history_keep_count=self.retention.keep_count,
        )

    async def restore(self, prefix: str = "") -> RestoreResult:
        """Replace tracked local state with the remote snapshot.

        Raises:
            RemoteError: If the remote read fails
            CloudDataMissingError: If no remote snapshot exists
        """
        snapshot = await self.remote.select_current()
        if not snapshot:
            raise CloudDataMissingError(self.remote.current_key, self.remote.user_id)

        self.codec.apply(snapshot, prefix)
        summary = SnapshotSummary.from_snapshot(snapshot)
        logger.info(f"Restored {summary.key_count} keys from cloud")
        return RestoreResult(
            user_id=self.remote.user_id or "",
            summary=summary,
        )
