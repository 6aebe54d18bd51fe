"""
Shared test configuration and fixtures.

Provides deterministic clocks, in-memory stores and a scripted session
provider so sync behavior can be tested without Azure.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from cloud_state_sync.identity import SessionInfo, SessionProvider
from cloud_state_sync.local import MemoryLocalStore
from cloud_state_sync.remote import InMemoryRemoteStore


class FakeSessionProvider(SessionProvider):
    """Session provider whose answer tests can change at will."""

    def __init__(self, user_id: str | None = None, error: str | None = None):
        self.session = SessionInfo(user_id=user_id, error=error)
        self.sign_out_calls = 0

    def switch_user(self, user_id: str | None) -> None:
        self.session = SessionInfo(user_id=user_id)

    async def get_session(self) -> SessionInfo:
        return self.session

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        self.session = SessionInfo()


class BlockingBackup:
    """Backup routine that parks each call until the test releases it.

    Each call records the state it was asked to write, so tests can check
    that a follow-up write saw the mutations made while the first one was
    in flight.
    """

    def __init__(self, capture: Callable[[], object] | None = None):
        self.capture = capture or (lambda: None)
        self.calls: list[object] = []
        self.started = asyncio.Event()
        self._release = asyncio.Event()
        self.fail_next: Exception | None = None

    def release(self) -> None:
        self._release.set()

    async def __call__(self) -> object:
        captured = self.capture()
        self.calls.append(captured)
        self.started.set()
        await self._release.wait()
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error
        return captured


def make_clock(start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
    """Clock that advances by ``step`` on every call."""
    current = [start or datetime(2025, 1, 1, tzinfo=UTC)]

    def clock() -> datetime:
        value = current[0]
        current[0] = value + step
        return value

    return clock


@pytest.fixture
def clock():
    return make_clock()


@pytest.fixture
def local_store() -> MemoryLocalStore:
    return MemoryLocalStore()


@pytest.fixture
def remote(clock) -> InMemoryRemoteStore:
    store = InMemoryRemoteStore(clock=clock)
    store.bind_user("u1")
    return store


@pytest.fixture
def session_provider() -> FakeSessionProvider:
    return FakeSessionProvider(user_id="u1")


@pytest.fixture
def make_blocking_backup():
    return BlockingBackup
