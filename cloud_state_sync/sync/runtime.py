"""
Sync runtime.

Wires the local store, remote store, session provider and sync components
into the single object an application talks to:

    runtime = SyncRuntime(local_store, remote, session_provider)
    result = await runtime.start_session()
    runtime.local.set_item("tsms_theme", "dark")   # debounced backup follows
    await runtime.close()

Application code must mutate state through ``runtime.local`` so tracked
writes are observed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from ..config import SyncConfig
from ..exceptions import HydrationError
from ..identity.provider import SessionProvider
from ..local.store import LocalStore
from ..logging_utils import SyncContextAdapter
from ..remote.base import RemoteStore
from ..retention import HistoryRetentionPolicy
from ..snapshot import Sanitizer, SnapshotCodec
from .backup import BackupResult, BackupService, RestoreResult
from .cursor import SyncCursor
from .flush import SessionBoundaryFlush
from .hydration import HydrationController, HydrationGuard, HydrationResult, pull_when_empty
from .interception import ObservedLocalStore
from .scheduler import BackupScheduler

logger = logging.getLogger(__name__)


@dataclass
class SessionStartResult:
    """Outcome of start_session()."""

    authenticated: bool
    user_id: str | None = None
    user_changed: bool = False
    hydration: HydrationResult | None = None
    sanitized_keys: list[str] | None = None

    @property
    def restored(self) -> bool:
        return self.hydration is not None and self.hydration.restored

    @property
    def reload_required(self) -> bool:
        """True when local state was replaced and views should re-read it."""
        return self.user_changed or self.restored


class SyncRuntime:
    """Local/cloud sync engine for one signed-in user at a time."""

    def __init__(
        self,
        local_store: LocalStore,
        remote: RemoteStore,
        session_provider: SessionProvider,
        config: SyncConfig | None = None,
        guard: HydrationGuard = pull_when_empty,
        sanitizer: Sanitizer | None = None,
        min_debounce_ms: int | None = None,
    ):
        """Initialize the runtime.

        Args:
            local_store: Store holding the application's key/value state
            remote: Remote snapshot store (unbound; start_session binds it)
            session_provider: Source of the signed-in user
            config: Sync configuration (default: SyncConfig())
            guard: Hydration policy for unforced pulls
            sanitizer: Optional repair function run once at session start
            min_debounce_ms: Debounce floor override, mainly for tests
        """
        self.config = config or SyncConfig()
        self.remote = remote
        self.session_provider = session_provider
        self.sanitizer = sanitizer

        tracked = frozenset(self.config.tracked_keys)
        self.local = ObservedLocalStore(local_store, lambda key: key in tracked)
        self.codec = SnapshotCodec(self.local, self.config.tracked_keys)

        self.retention = HistoryRetentionPolicy(remote, self.config.history_keep_count)
        self.backup_service = BackupService(self.codec, remote, self.retention)

        scheduler_kwargs: dict[str, Any] = {"debounce_ms": self.config.debounce_ms}
        if min_debounce_ms is not None:
            scheduler_kwargs["min_debounce_ms"] = min_debounce_ms
        self.scheduler = BackupScheduler(self.backup_service.backup, **scheduler_kwargs)

        self.hydration = HydrationController(
            self.codec,
            remote,
            guard=guard,
            suppress_sync=self.scheduler.paused_sync,
        )
        self.flush = SessionBoundaryFlush(self.scheduler, self.config.flush_contexts)
        self.cursor = SyncCursor(self.local, self.config.last_sync_user_key)

        self._installed = False
        self._sanitized = False
        self._log = SyncContextAdapter(logger, self._log_context)

    @property
    def installed(self) -> bool:
        return self._installed

    @property
    def user_id(self) -> str | None:
        return self.remote.user_id

    # =========================================================================
    # Entry points
    # =========================================================================

    def ensure_sync_runtime(self, debounce_ms: int | None = None) -> None:
        """Install mutation observation. Safe to call repeatedly.

        Args:
            debounce_ms: New debounce window; applies to later schedules
        """
        if debounce_ms is not None:
            self.scheduler.debounce_ms = debounce_ms
        if self.local.subscribe(self._on_local_mutation):
            self._installed = True
            self._log.debug(f"Sync runtime installed (debounce={self.scheduler.debounce_ms}ms)")

    async def request_backup(self, immediate: bool = False) -> BackupResult | None:
        return await self.scheduler.request_backup(immediate=immediate)

    def set_sync_paused(self, paused: bool) -> None:
        self.scheduler.set_sync_paused(paused)

    async def hydrate(
        self,
        force: bool = False,
        prefix: str = "",
        preserve_keys: Iterable[str] = (),
    ) -> HydrationResult:
        return await self.hydration.hydrate(force=force, prefix=prefix, preserve_keys=preserve_keys)

    async def start_session(self) -> SessionStartResult:
        """Reconcile local state with the signed-in user's cloud copy.

        Raises:
            HydrationError: If the remote snapshot cannot be read. The cursor
                is still advanced so the next start does not clear again.
        """
        session = await self.session_provider.get_session()
        if not session.is_authenticated:
            if session.error:
                self._log.warning(f"Session lookup failed: {session.error}")
            return SessionStartResult(authenticated=False)

        user_id = str(session.user_id)
        self.ensure_sync_runtime()
        self.remote.bind_user(user_id)

        sanitized = self._sanitize_once()

        user_changed = self.cursor.differs_from(user_id)
        if user_changed:
            self._log.info(f"Signed-in user changed from {self.cursor.get()}; clearing local state")
            with self.scheduler.paused_sync():
                self.codec.clear()

        try:
            hydration = await self.hydrate(force=user_changed)
        except HydrationError:
            self.cursor.set(user_id)
            raise

        self.cursor.set(user_id)
        result = SessionStartResult(
            authenticated=True,
            user_id=user_id,
            user_changed=user_changed,
            hydration=hydration,
            sanitized_keys=sanitized,
        )
        self._log.info(
            f"Session started (restored={result.restored}, reload_required={result.reload_required})"
        )
        return result

    async def backup_now(self) -> BackupResult:
        """Write the current state immediately, joining any in-flight write.

        Raises:
            RemoteError: If the write fails
        """
        return await self.scheduler.request_backup(immediate=True)

    async def restore_now(self) -> RestoreResult:
        """Replace tracked local state with the cloud copy.

        Raises:
            RemoteError: If the remote read fails
            CloudDataMissingError: If no cloud copy exists
        """
        with self.scheduler.paused_sync():
            return await self.backup_service.restore()

    async def sign_out(self) -> None:
        """Flush outstanding work, sign out and unbind the remote store."""
        await self._flush_pending()
        await self.scheduler.close()
        await self.session_provider.sign_out()
        self._log.info("Signed out")
        self.remote.bind_user(None)

    async def close(self) -> None:
        """Stop observing mutations, write pending changes and wait for in-flight writes."""
        self.local.unsubscribe(self._on_local_mutation)
        self._installed = False
        await self._flush_pending()
        await self.scheduler.close()

    # =========================================================================
    # Internals
    # =========================================================================

    def _log_context(self) -> dict[str, Any]:
        return {
            "user_id": self.remote.user_id,
            "current_key": self.remote.current_key,
            "scheduler_state": self.scheduler.state.value,
        }

    async def _flush_pending(self) -> None:
        # Unbound stores cannot accept writes; the changes stay dirty locally
        if self.remote.user_id is None:
            return
        await self.scheduler.flush()

    def _on_local_mutation(self, key: str | None) -> None:
        if self.scheduler.paused:
            return
        self.scheduler.mark_dirty()
        self.scheduler.schedule()

    def _sanitize_once(self) -> list[str]:
        if self.sanitizer is None or self._sanitized:
            return []
        self._sanitized = True
        with self.scheduler.paused_sync():
            return self.codec.sanitize(self.sanitizer)
