"""
In-memory remote store for testing.

Provides a fully functional RemoteStore that keeps records in a dict.
Useful for:
- Unit tests that need remote behavior without Azure
- Local development without a Cosmos DB account

All data is lost on process exit.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from ..config import DEFAULT_CURRENT_KEY
from ..exceptions import RemoteError
from .base import RemoteRecord, RemoteStore, build_history_key


class InMemoryRemoteStore(RemoteStore):
    """Dict-backed remote store keyed by (user_id, key).

    Attributes:
        upsert_calls: Number of upsert_current() calls that reached the store
        select_calls: Number of select_current() calls that reached the store

    Failure injection:
        Set ``fail_on`` to a set of operation names ("upsert_current",
        "insert_history", "list_history", "delete_records", "select_current")
        to make those operations raise RemoteError.

    Example:
        >>> remote = InMemoryRemoteStore()
        >>> remote.bind_user("u1")
        >>> await remote.upsert_current({"tsms_theme": "dark"})
        >>> await remote.select_current()
        {'tsms_theme': 'dark'}
    """

    def __init__(
        self,
        current_key: str = DEFAULT_CURRENT_KEY,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            current_key: Key of the current-state record
            clock: Source of record timestamps (default: UTC now)
        """
        super().__init__(current_key)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._records: dict[tuple[str, str], RemoteRecord] = {}
        self._order: dict[tuple[str, str], int] = {}
        self._seq = 0
        self._lock = asyncio.Lock()
        self.fail_on: set[str] = set()
        self.upsert_calls = 0
        self.select_calls = 0

    def _check(self, operation: str) -> str:
        user_id = self._require_user(operation)
        if operation in self.fail_on:
            raise RemoteError(operation, ConnectionError("injected failure"))
        return user_id

    def _put(self, record: RemoteRecord) -> None:
        ident = (record.user_id, record.key)
        self._seq += 1
        self._records[ident] = record
        self._order[ident] = self._seq

    def new_history_key(self) -> str:
        return build_history_key(self.current_key, self._clock())

    async def upsert_current(self, snapshot: dict[str, str]) -> RemoteRecord:
        self.upsert_calls += 1
        user_id = self._check("upsert_current")
        async with self._lock:
            record = RemoteRecord(
                user_id=user_id,
                key=self.current_key,
                value=dict(snapshot),
                updated_at=self._clock().isoformat(),
            )
            self._put(record)
            return record

    async def insert_history(self, snapshot: dict[str, str], history_key: str | None = None) -> str:
        user_id = self._check("insert_history")
        key = history_key or self.new_history_key()
        async with self._lock:
            if (user_id, key) in self._records:
                raise RemoteError("insert_history", KeyError(f"History record exists: {key}"))
            self._put(
                RemoteRecord(
                    user_id=user_id,
                    key=key,
                    value=dict(snapshot),
                    updated_at=self._clock().isoformat(),
                )
            )
        return key

    async def list_history(self) -> list[RemoteRecord]:
        user_id = self._check("list_history")
        prefix = self.history_prefix
        matches = [
            (ident, r)
            for ident, r in self._records.items()
            if ident[0] == user_id and r.key.startswith(prefix)
        ]
        matches.sort(key=lambda item: (item[1].updated_at, self._order[item[0]]), reverse=True)
        return [r for _, r in matches]

    async def delete_records(self, keys: Iterable[str]) -> int:
        user_id = self._check("delete_records")
        deleted = 0
        async with self._lock:
            for key in keys:
                ident = (user_id, key)
                if self._records.pop(ident, None) is not None:
                    self._order.pop(ident, None)
                    deleted += 1
        return deleted

    async def select_current(self) -> dict[str, str] | None:
        self.select_calls += 1
        user_id = self._check("select_current")
        record = self._records.get((user_id, self.current_key))
        if record is None:
            return None
        return dict(record.value)

    def get_record(self, user_id: str, key: str) -> RemoteRecord | None:
        """Direct lookup for tests, bypassing user binding."""
        return self._records.get((user_id, key))

    def seed(self, user_id: str, snapshot: dict[str, str]) -> None:
        """Store a current snapshot for ``user_id`` without binding."""
        self._put(
            RemoteRecord(
                user_id=user_id,
                key=self.current_key,
                value=dict(snapshot),
                updated_at=self._clock().isoformat(),
            )
        )
