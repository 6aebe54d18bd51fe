"""
Abstract remote store interface.

Defines the contract that all remote store adapters must implement.
Records are keyed by (user, key); every operation is scoped to the
user bound with bind_user().
"""

from __future__ import annotations

import logging
import secrets
import string
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from ..config import DEFAULT_CURRENT_KEY
from ..exceptions import AuthenticationRequiredError, RemoteError

logger = logging.getLogger(__name__)

HISTORY_SEPARATOR = ":history:"
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def history_prefix(current_key: str) -> str:
    return f"{current_key}{HISTORY_SEPARATOR}"


def build_history_key(current_key: str, now: datetime | None = None) -> str:
    """Build ``<current-key>:history:<timestamp>_<random>``.

    The timestamp is the UTC ISO instant stripped down to digits, ``T`` and
    ``Z`` so keys sort chronologically as plain strings.
    """
    now = now or datetime.now(UTC)
    iso = now.astimezone(UTC).isoformat().replace("+00:00", "Z")
    stamp = "".join(ch for ch in iso if ch.isdigit() or ch in "TZ")
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"{history_prefix(current_key)}{stamp}_{suffix}"


@dataclass
class RemoteRecord:
    """A stored remote record.

    Attributes:
        user_id: Owning user
        key: Current-state key or history key
        value: Snapshot payload
        updated_at: Last-modified timestamp (ISO 8601, UTC)
    """

    user_id: str
    key: str
    value: dict[str, str]
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.key,
            "user_id": self.user_id,
            "key": self.key,
            "value": self.value,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteRecord:
        value = data.get("value")
        return cls(
            user_id=data.get("user_id", ""),
            key=data.get("key") or data.get("id", ""),
            value=value if isinstance(value, dict) else {},
            updated_at=data.get("updated_at", ""),
        )


class RemoteStore(ABC):
    """Abstract remote snapshot store.

    Implementations (in-memory, Cosmos DB) must raise RemoteError for every
    transport, auth or query failure. A missing record is never an error.
    """

    def __init__(self, current_key: str = DEFAULT_CURRENT_KEY) -> None:
        self.current_key = current_key
        self._user_id: str | None = None

    @property
    def user_id(self) -> str | None:
        """The user every operation is scoped to."""
        return self._user_id

    def bind_user(self, user_id: str | None) -> None:
        """Scope subsequent operations to ``user_id`` (None unbinds)."""
        self._user_id = user_id or None

    def _require_user(self, operation: str) -> str:
        if not self._user_id:
            raise RemoteError(operation, AuthenticationRequiredError("No user bound to remote store"))
        return self._user_id

    @property
    def history_prefix(self) -> str:
        return history_prefix(self.current_key)

    def new_history_key(self) -> str:
        return build_history_key(self.current_key)

    @abstractmethod
    async def upsert_current(self, snapshot: dict[str, str]) -> RemoteRecord:
        """Write or overwrite the current record. Last write wins.

        Returns:
            The stored record

        Raises:
            RemoteError: If the write fails
        """
        ...

    @abstractmethod
    async def insert_history(self, snapshot: dict[str, str], history_key: str | None = None) -> str:
        """Append an immutable history record.

        Returns:
            The history key

        Raises:
            RemoteError: If the write fails
        """
        ...

    @abstractmethod
    async def list_history(self) -> list[RemoteRecord]:
        """List history records of the bound user, newest first."""
        ...

    @abstractmethod
    async def delete_records(self, keys: Iterable[str]) -> int:
        """Delete records of the bound user by key.

        Returns:
            Number of records deleted
        """
        ...

    @abstractmethod
    async def select_current(self) -> dict[str, str] | None:
        """Fetch the current snapshot, or None if never written."""
        ...

    async def prune_history(self, keep_count: int) -> list[str]:
        """Delete every history record beyond the ``keep_count`` newest.

        Returns:
            Keys of deleted records
        """
        records = await self.list_history()
        if len(records) <= keep_count:
            return []

        stale = [r.key for r in records[keep_count:] if r.key]
        if not stale:
            return []
        await self.delete_records(stale)
        logger.debug(f"Pruned {len(stale)} history records (keeping {keep_count})")
        return stale
