"""
Snapshot codec.

Serializes the tracked subset of local key/value state into a single
transportable mapping and restores such a mapping into the local store.

A snapshot is self-contained: applying it reproduces the tracked subset
exactly and never touches untracked entries.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .config import DEFAULT_TRACKED_KEYS
from .local.store import LocalStore

logger = logging.getLogger(__name__)

Snapshot = dict[str, str]

# Takes (key, raw value) and returns the repaired value, or None to drop the key
Sanitizer = Callable[[str, str], "str | None"]


def _json_list_length(raw: str | None) -> int:
    try:
        parsed = json.loads(raw or "[]")
    except (TypeError, ValueError):
        return 0
    return len(parsed) if isinstance(parsed, list) else 0


@dataclass
class SnapshotSummary:
    """Human-oriented digest of a snapshot, attached to backup/restore results."""

    key_count: int = 0
    keys: list[str] = field(default_factory=list)
    report_count: int = 0
    archive_count: int = 0
    current_day_id: str = ""

    @classmethod
    def from_snapshot(cls, snapshot: Mapping[str, Any] | None) -> SnapshotSummary:
        snapshot = snapshot or {}
        current_day = snapshot.get("tsms_report_current_day")
        return cls(
            key_count=len(snapshot),
            keys=list(snapshot),
            report_count=_json_list_length(snapshot.get("tsms_reports")),
            archive_count=_json_list_length(snapshot.get("tsms_reports_archive")),
            current_day_id="" if current_day is None else str(current_day),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key_count": self.key_count,
            "keys": self.keys,
            "report_count": self.report_count,
            "archive_count": self.archive_count,
            "current_day_id": self.current_day_id,
        }


class SnapshotCodec:
    """Captures and applies snapshots of the tracked local subset.

    An identifier is trackable when it belongs to the tracked key set, or,
    when a prefix filter is given, when it starts with that prefix.
    """

    def __init__(self, store: LocalStore, tracked_keys: Iterable[str] = DEFAULT_TRACKED_KEYS):
        """Initialize the codec.

        Args:
            store: Local store to read from and write into
            tracked_keys: Identifiers eligible for synchronization
        """
        self.store = store
        self.tracked_keys: tuple[str, ...] = tuple(tracked_keys)
        self._tracked_set = frozenset(self.tracked_keys)

    def is_trackable(self, key: str | None, prefix: str = "") -> bool:
        if not key:
            return False
        if prefix:
            return key.startswith(prefix)
        return key in self._tracked_set

    def capture(self, prefix: str = "") -> Snapshot:
        """Copy every trackable local entry. Performs no writes."""
        snapshot: Snapshot = {}
        for k in self.store.keys():
            if self.is_trackable(k, prefix):
                value = self.store.get_item(k)
                if value is not None:
                    snapshot[k] = value
        return snapshot

    def apply(
        self,
        snapshot: Mapping[str, Any] | None,
        prefix: str = "",
        preserve_keys: Iterable[str] = (),
    ) -> None:
        """Replace the tracked local subset with ``snapshot``.

        Every tracked entry not listed in ``preserve_keys`` is removed first,
        then every trackable, non-preserved entry of the snapshot is written.
        """
        preserve = set(preserve_keys)

        if prefix:
            stale = [k for k in self.store.keys() if k.startswith(prefix) and k not in preserve]
        else:
            stale = [k for k in self.tracked_keys if k not in preserve]
        for k in stale:
            self.store.remove_item(k)

        for k, v in (snapshot or {}).items():
            if not self.is_trackable(k, prefix) or k in preserve:
                continue
            self.store.set_item(k, "" if v is None else str(v))

    def clear(self, prefix: str = "") -> None:
        """Remove every tracked local entry."""
        self.apply({}, prefix)

    def has_tracked_keys(self, prefix: str = "") -> bool:
        return any(self.is_trackable(k, prefix) for k in self.store.keys())

    def summarize(self, snapshot: Mapping[str, Any] | None = None) -> SnapshotSummary:
        """Summarize ``snapshot``, or the current local state when omitted."""
        return SnapshotSummary.from_snapshot(self.capture() if snapshot is None else snapshot)

    def sanitize(self, sanitizer: Sanitizer, keys: Iterable[str] | None = None) -> list[str]:
        """Run ``sanitizer`` over stored values and write back repairs.

        A None result removes the key; a different value replaces it.

        Args:
            sanitizer: Pure function (key, raw) -> raw | None
            keys: Keys to inspect (default: the tracked key set)

        Returns:
            Keys whose stored value changed
        """
        changed: list[str] = []
        for k in self.tracked_keys if keys is None else keys:
            raw = self.store.get_item(k)
            if raw is None:
                continue
            repaired = sanitizer(k, raw)
            if repaired is None:
                self.store.remove_item(k)
                changed.append(k)
            elif repaired != raw:
                self.store.set_item(k, repaired)
                changed.append(k)
        if changed:
            logger.info(f"Sanitized {len(changed)} local entries: {', '.join(changed)}")
        return changed
