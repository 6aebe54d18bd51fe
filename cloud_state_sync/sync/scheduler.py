"""
Write-coalescing backup scheduler.

Batches bursts of local mutations into a single remote write:
- Debounce: every request restarts a quiet-period timer
- Coalescing: at most one backup write is in flight at any time
- No loss: a request that arrives mid-flight sets a pending flag and
  exactly one follow-up write runs after the current one settles

State machine:

    IDLE ──request──▶ DEBOUNCED ──timer──▶ IN_FLIGHT ──settle──▶ IDLE
                          ▲                  │    ▲
                          └──request─────────┘    │ follow-up write
                                     IN_FLIGHT_PENDING
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from ..config import DEFAULT_DEBOUNCE_MS, MIN_DEBOUNCE_MS, normalize_debounce_ms
from ..exceptions import RemoteError

logger = logging.getLogger(__name__)

BackupRoutine = Callable[[], Awaitable[Any]]


class SchedulerState(Enum):
    """Current state of the backup scheduler."""

    IDLE = "idle"
    DEBOUNCED = "debounced"
    IN_FLIGHT = "in_flight"
    IN_FLIGHT_PENDING = "in_flight_pending"


@dataclass
class _WriteOutcome:
    result: Any = None
    error: Exception | None = None


class BackupScheduler:
    """Debounces and serializes calls to a backup routine.

    The scheduler owns the dirty flag: mark_dirty() records a local
    mutation, and a successful write clears the flag only when no newer
    mutation was recorded after that write captured its snapshot.

    Failures of debounced writes are logged and swallowed (the flag stays
    set, so the next trigger retries). Callers of an immediate request get
    the failure raised to them.
    """

    def __init__(
        self,
        backup: BackupRoutine,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        min_debounce_ms: int = MIN_DEBOUNCE_MS,
    ):
        """Initialize the scheduler.

        Args:
            backup: Coroutine function performing one remote write. It must
                capture local state before its first suspension point.
            debounce_ms: Quiet period before a debounced backup runs
            min_debounce_ms: Floor applied to every debounce setting
        """
        self._backup = backup
        self._min_debounce_ms = min_debounce_ms
        self._debounce_ms = normalize_debounce_ms(debounce_ms, min_debounce_ms)

        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: asyncio.Task[_WriteOutcome] | None = None
        self._pending_after_flight = False
        self._paused = False
        self._background: set[asyncio.Task[Any]] = set()

        # Dirty tracking: dirty while mutations outpace what has been synced
        self._mutations = 0
        self._synced_mutations = 0

        self.backup_count = 0
        self.failure_count = 0
        self.last_result: Any = None
        self.last_error: Exception | None = None
        self.last_success_at: datetime | None = None

    # =========================================================================
    # Configuration and state
    # =========================================================================

    @property
    def debounce_ms(self) -> int:
        return self._debounce_ms

    @debounce_ms.setter
    def debounce_ms(self, value: int) -> None:
        self._debounce_ms = normalize_debounce_ms(value, self._min_debounce_ms)

    @property
    def state(self) -> SchedulerState:
        if self._in_flight is not None:
            if self._pending_after_flight:
                return SchedulerState.IN_FLIGHT_PENDING
            return SchedulerState.IN_FLIGHT
        if self._timer is not None:
            return SchedulerState.DEBOUNCED
        return SchedulerState.IDLE

    @property
    def dirty(self) -> bool:
        """True when a tracked key changed since the last successful write."""
        return self._mutations > self._synced_mutations

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None

    def mark_dirty(self) -> None:
        self._mutations += 1

    @property
    def paused(self) -> bool:
        return self._paused

    def set_sync_paused(self, paused: bool) -> None:
        """Pause or resume mutation-triggered backups."""
        self._paused = bool(paused)

    @contextmanager
    def paused_sync(self) -> Iterator[None]:
        """Pause sync for the duration of the block, restoring the prior state."""
        previous = self._paused
        self._paused = True
        try:
            yield
        finally:
            self._paused = previous

    # =========================================================================
    # Requests
    # =========================================================================

    def schedule(self) -> None:
        """(Re)start the debounce timer. Safe to call from synchronous code."""
        self._cancel_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; backup deferred until the next trigger")
            return
        self._timer = loop.call_later(self._debounce_ms / 1000, self._on_timer)
        logger.debug(f"Backup debounced for {self._debounce_ms}ms")

    async def request_backup(self, immediate: bool = False) -> Any:
        """Request a backup.

        Args:
            immediate: Skip the debounce window and write now. When a write
                is already in flight, wait for it and for one follow-up write.

        Returns:
            The backup routine's result for immediate requests, else None

        Raises:
            RemoteError: If an immediate request's final write failed
        """
        if not immediate:
            self.schedule()
            return None

        self._cancel_timer()
        outcome = await self._run()
        if outcome.error is not None:
            raise outcome.error
        return outcome.result

    async def run_backup(self) -> Any:
        """Run the backup routine, joining an in-flight write if any.

        Failures are logged and swallowed.

        Returns:
            The backup routine's result, or None on failure
        """
        outcome = await self._run()
        return outcome.result

    async def flush(self) -> Any:
        """Write now if a debounced backup is waiting or state is dirty.

        A pending debounce timer is turned into an immediate write. With
        nothing to write, only waits for an in-flight write. Failures are
        logged and swallowed.

        Returns:
            The backup routine's result, or None when nothing was written
        """
        pending = self._timer is not None
        self._cancel_timer()
        if not (pending or self.dirty):
            if self._in_flight is not None:
                await asyncio.shield(self._in_flight)
            return None
        outcome = await self._run()
        return outcome.result

    async def close(self) -> None:
        """Cancel the debounce timer and wait for in-flight work.

        Unwritten changes are dropped; call flush() first to keep them.
        """
        self._cancel_timer()
        if self._in_flight is not None:
            await asyncio.shield(self._in_flight)
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # =========================================================================
    # Internals
    # =========================================================================

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        task = asyncio.ensure_future(self.run_backup())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _run(self) -> _WriteOutcome:
        if self._in_flight is not None:
            self._pending_after_flight = True
            logger.debug("Backup already in flight; follow-up write queued")
            return await asyncio.shield(self._in_flight)

        task = asyncio.ensure_future(self._drain())
        self._in_flight = task
        return await asyncio.shield(task)

    async def _drain(self) -> _WriteOutcome:
        try:
            while True:
                self._pending_after_flight = False
                outcome = await self._write_once()
                if not self._pending_after_flight:
                    return outcome
        finally:
            self._in_flight = None

    async def _write_once(self) -> _WriteOutcome:
        mark = self._mutations
        try:
            result = await self._backup()
        except RemoteError as e:
            self.failure_count += 1
            self.last_error = e
            logger.warning(f"Backup failed, local changes kept for retry: {e.message}")
            return _WriteOutcome(error=e)
        except Exception as e:
            self.failure_count += 1
            self.last_error = e
            logger.exception("Backup routine raised unexpectedly")
            return _WriteOutcome(error=e)

        self._synced_mutations = max(self._synced_mutations, mark)
        self.backup_count += 1
        self.last_result = result
        self.last_error = None
        self.last_success_at = datetime.now(UTC)
        return _WriteOutcome(result=result)
