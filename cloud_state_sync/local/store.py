"""
Local key/value store interface.

Mirrors the synchronous Web Storage contract the sync engine is built
around: string keys, string values, index-based enumeration.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path

from .file_ops import load_entries, save_entries

logger = logging.getLogger(__name__)


class LocalStore(ABC):
    """Abstract synchronous key/value store.

    All local store implementations (in-memory, file-backed, observed)
    must implement this interface.
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None."""
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove ``key``. Removing a missing key is a no-op."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""
        ...

    @abstractmethod
    def key(self, index: int) -> str | None:
        """Return the key at ``index`` in enumeration order, or None."""
        ...

    @property
    @abstractmethod
    def length(self) -> int:
        """Number of stored entries."""
        ...

    def keys(self) -> list[str]:
        """Snapshot of all keys in enumeration order."""
        result = []
        for i in range(self.length):
            k = self.key(i)
            if k is not None:
                result.append(k)
        return result

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return self.length


class MemoryLocalStore(LocalStore):
    """Dictionary-backed store. Data lives as long as the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = {}
        for k, v in (initial or {}).items():
            self._data[str(k)] = str(v)

    def get_item(self, key: str) -> str | None:
        return self._data.get(str(key))

    def set_item(self, key: str, value: str) -> None:
        self._data[str(key)] = str(value)

    def remove_item(self, key: str) -> None:
        self._data.pop(str(key), None)

    def clear(self) -> None:
        self._data.clear()

    def key(self, index: int) -> str | None:
        if index < 0 or index >= len(self._data):
            return None
        return list(self._data)[index]

    @property
    def length(self) -> int:
        return len(self._data)

    def keys(self) -> list[str]:
        return list(self._data)

    def to_dict(self) -> dict[str, str]:
        """Copy of every entry."""
        return dict(self._data)


class FileLocalStore(MemoryLocalStore):
    """In-memory store persisted to a JSON file.

    Reads and writes stay synchronous; persistence is explicit through
    ``load()`` and ``save()`` so the host decides when to touch disk.

    Usage:
        >>> store = await FileLocalStore.load(Path("~/.tsms/local.json").expanduser())
        >>> store.set_item("tsms_theme", "dark")
        >>> await store.save()
    """

    def __init__(self, path: Path, initial: dict[str, str] | None = None) -> None:
        super().__init__(initial)
        self.path = path

    @classmethod
    async def load(cls, path: Path) -> FileLocalStore:
        """Load a store from ``path``; a missing file yields an empty store.

        Raises:
            StorageIOError: If the file cannot be read or does not hold a JSON object
        """
        entries = await load_entries(path)
        logger.debug(f"Loaded {len(entries)} local entries from {path}")
        return cls(path, entries)

    async def save(self) -> None:
        """Atomically persist every entry to the backing file."""
        await save_entries(self.path, self.to_dict())
