"""
Storage interception layer.

ObservedLocalStore wraps a LocalStore and notifies subscribers whenever
a tracked key is mutated. Reads and return values pass through untouched,
so the rest of the application can use it in place of the wrapped store.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..local.store import LocalStore

logger = logging.getLogger(__name__)

# Called with the mutated key, or None for clear()
MutationObserver = Callable[["str | None"], None]


class ObservedLocalStore(LocalStore):
    """LocalStore decorator that reports tracked-key mutations.

    Observers run synchronously right after the wrapped store completes
    the mutation, so a local write is always observed before any backup
    that will capture it.
    """

    def __init__(self, inner: LocalStore, is_tracked: Callable[[str], bool]):
        """Initialize the observed store.

        Args:
            inner: Store that actually holds the data
            is_tracked: Predicate selecting keys whose mutation is reported
        """
        self.inner = inner
        self._is_tracked = is_tracked
        self._observers: list[MutationObserver] = []

    def subscribe(self, observer: MutationObserver) -> bool:
        """Register ``observer``. Registering the same observer twice is a no-op.

        Returns:
            True if the observer was newly registered
        """
        if observer in self._observers:
            return False
        self._observers.append(observer)
        return True

    def unsubscribe(self, observer: MutationObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def _notify(self, key: str | None) -> None:
        for observer in list(self._observers):
            observer(key)

    # Reads pass straight through

    def get_item(self, key: str) -> str | None:
        return self.inner.get_item(key)

    def key(self, index: int) -> str | None:
        return self.inner.key(index)

    @property
    def length(self) -> int:
        return self.inner.length

    def keys(self) -> list[str]:
        return self.inner.keys()

    # Mutations forward, then notify

    def set_item(self, key: str, value: str) -> None:
        result = self.inner.set_item(key, value)
        if self._is_tracked(str(key or "")):
            self._notify(str(key))
        return result

    def remove_item(self, key: str) -> None:
        result = self.inner.remove_item(key)
        if self._is_tracked(str(key or "")):
            self._notify(str(key))
        return result

    def clear(self) -> None:
        had_tracked = any(self._is_tracked(k) for k in self.inner.keys())
        result = self.inner.clear()
        if had_tracked:
            self._notify(None)
        return result
