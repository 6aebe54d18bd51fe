"""
Hydration controller.

On session start, decides whether to pull the remote snapshot into local
state. By default local state wins whenever it exists, so in-progress,
unsynced edits are never clobbered by an older remote copy during routine
navigation. A forced hydration (fresh login, identity change) always pulls.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from enum import Enum

from ..exceptions import HydrationError, RemoteError
from ..remote.base import RemoteStore
from ..snapshot import SnapshotCodec

logger = logging.getLogger(__name__)

# Takes (codec, prefix) and returns True when the remote snapshot may be pulled
HydrationGuard = Callable[[SnapshotCodec, str], bool]


class HydrationReason(Enum):
    """Why a hydration did or did not restore remote state."""

    RESTORED = "restored"
    LOCAL_DATA_EXISTS = "local_data_exists"
    CLOUD_DATA_MISSING = "cloud_data_missing"


@dataclass
class HydrationResult:
    """Outcome of a hydrate() call."""

    restored: bool
    reason: HydrationReason
    key_count: int = 0


def pull_when_empty(codec: SnapshotCodec, prefix: str = "") -> bool:
    """Allow a pull only when no tracked local key exists."""
    return not codec.has_tracked_keys(prefix)


def pull_unless_active(key: str = "ops") -> HydrationGuard:
    """Build a guard that allows a pull unless ``key`` holds active work.

    Work counts as active when the stored value is a non-empty JSON object
    or array, or any other non-blank string. Everything else, including
    other tracked keys, may be overwritten by the remote copy.

    Args:
        key: Local key marking in-progress work (default: the shift state)
    """

    def guard(codec: SnapshotCodec, prefix: str = "") -> bool:
        raw = codec.store.get_item(key)
        if raw is None or not raw.strip():
            return True
        try:
            parsed = json.loads(raw)
        except ValueError:
            return False
        return not parsed

    return guard


class HydrationController:
    """Pulls the remote snapshot into local state under a guard policy."""

    def __init__(
        self,
        codec: SnapshotCodec,
        remote: RemoteStore,
        guard: HydrationGuard = pull_when_empty,
        suppress_sync: Callable[[], AbstractContextManager[None]] | None = None,
    ):
        """Initialize the controller.

        Args:
            codec: Snapshot codec over the (observed) local store
            remote: Remote store bound to the current user
            guard: Predicate deciding whether an unforced pull may happen
            suppress_sync: Context manager factory that pauses mutation-
                triggered backups while the snapshot is applied
        """
        self.codec = codec
        self.remote = remote
        self.guard = guard
        self._suppress_sync = suppress_sync or nullcontext

    async def hydrate(
        self,
        force: bool = False,
        prefix: str = "",
        preserve_keys: Iterable[str] = (),
    ) -> HydrationResult:
        """Pull the remote snapshot into local state if policy allows.

        Args:
            force: Pull regardless of local state
            prefix: Restrict the tracked subset to keys with this prefix
            preserve_keys: Local keys the snapshot must not overwrite

        Returns:
            HydrationResult describing what happened

        Raises:
            HydrationError: If the remote snapshot cannot be read
        """
        if not force and not self.guard(self.codec, prefix):
            logger.debug("Skipping hydration: local data exists")
            return HydrationResult(restored=False, reason=HydrationReason.LOCAL_DATA_EXISTS)

        try:
            snapshot = await self.remote.select_current()
        except RemoteError as e:
            raise HydrationError("remote read failed", e) from e

        if snapshot is None:
            logger.info("Hydration found no cloud snapshot")
            return HydrationResult(restored=False, reason=HydrationReason.CLOUD_DATA_MISSING)

        with self._suppress_sync():
            self.codec.apply(snapshot, prefix, preserve_keys)

        logger.info(f"Hydrated {len(snapshot)} keys from cloud (force={force})")
        return HydrationResult(
            restored=True,
            reason=HydrationReason.RESTORED,
            key_count=len(snapshot),
        )
