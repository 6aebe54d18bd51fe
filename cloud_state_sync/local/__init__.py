"""
Local key/value storage.

Synchronous stores the sync engine reads snapshots from and hydrates into.
FileLocalStore persists entries to disk with atomic writes.
"""

from .file_ops import load_entries, save_entries
from .store import FileLocalStore, LocalStore, MemoryLocalStore

__all__ = [
    "LocalStore",
    "MemoryLocalStore",
    "FileLocalStore",
    # Persistence helpers
    "load_entries",
    "save_entries",
]
