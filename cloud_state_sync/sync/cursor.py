"""Sync cursor: which user's data currently occupies local storage."""

from __future__ import annotations

from ..config import LAST_SYNC_USER_KEY
from ..local.store import LocalStore


class SyncCursor:
    """Reads and writes the last-synced user id in the local store.

    The cursor key is never tracked, so moving it does not trigger a backup.
    """

    def __init__(self, store: LocalStore, key: str = LAST_SYNC_USER_KEY):
        self.store = store
        self.key = key

    def get(self) -> str:
        return self.store.get_item(self.key) or ""

    def set(self, user_id: str | None) -> None:
        """Point the cursor at ``user_id``; an empty value clears it."""
        if not user_id:
            self.store.remove_item(self.key)
            return
        self.store.set_item(self.key, str(user_id))

    def differs_from(self, user_id: str) -> bool:
        """True when a different user's data occupies local storage."""
        previous = self.get()
        return bool(previous) and previous != user_id
