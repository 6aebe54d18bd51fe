"""
Configuration for cloud state sync.

Configuration can be provided directly, read from environment variables,
or loaded from the ``sync:`` section of a YAML settings file:

```yaml
sync:
  debounce_ms: 5000
  history_keep_count: 30
  current_key: localStorage_dump_v1
  flush_contexts: [confirm, sales, ops]
  tracked_keys: [tsms_reports, tsms_settings, tsms_theme]
```

Environment Variables:
    CLOUD_SYNC_DEBOUNCE_MS: Debounce window in milliseconds (default: 5000)
    CLOUD_SYNC_HISTORY_KEEP: Number of history snapshots to keep (default: 30)
    CLOUD_SYNC_CURRENT_KEY: Remote key of the current snapshot
    CLOUD_SYNC_FLUSH_CONTEXTS: Comma-separated data-entry contexts
    CLOUD_SYNC_TRACKED_KEYS: Comma-separated tracked key set
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import StorageIOError, ValidationError

DEFAULT_CURRENT_KEY = "localStorage_dump_v1"
DEFAULT_HISTORY_KEEP_COUNT = 30
DEFAULT_DEBOUNCE_MS = 5000
MIN_DEBOUNCE_MS = 1000
LAST_SYNC_USER_KEY = "tsms_last_sync_user_id"

DEFAULT_TRACKED_KEYS: tuple[str, ...] = (
    "tsms_reports",
    "tsms_reports_archive",
    "ops",
    "ops_archive_v1",
    "tsms_settings",
    "tsms_sales_plan",
    "tsms_sales_manual_v1",
    "tsms_sales_manual_mode",
    "tsms_sales_reset_token",
    "tsms_report_current_day",
    "tsms_holidays_jp_v1",
    "tsms_theme",
)

# Screens where data is entered and a page-leave flush is worth a network write
DEFAULT_FLUSH_CONTEXTS: frozenset[str] = frozenset({"confirm", "sales", "ops"})


def normalize_debounce_ms(value: Any, floor: int = MIN_DEBOUNCE_MS) -> int:
    """Coerce a debounce setting to an int no lower than ``floor``.

    Unparsable or zero values fall back to the default window.
    """
    try:
        ms = int(value)
    except (TypeError, ValueError):
        ms = 0
    if ms <= 0:
        ms = DEFAULT_DEBOUNCE_MS
    return max(floor, ms)


def _split_csv(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass
class SyncConfig:
    """Configuration for the sync engine.

    Attributes:
        current_key: Remote key holding the current snapshot
        history_keep_count: Number of history snapshots retained remotely
        debounce_ms: Quiet period before a debounced backup runs
        tracked_keys: Local identifiers eligible for synchronization
        flush_contexts: Contexts (screens) that flush on page leave
        last_sync_user_key: Local key holding the sync cursor
    """

    current_key: str = DEFAULT_CURRENT_KEY
    history_keep_count: int = DEFAULT_HISTORY_KEEP_COUNT
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    tracked_keys: tuple[str, ...] = DEFAULT_TRACKED_KEYS
    flush_contexts: frozenset[str] = DEFAULT_FLUSH_CONTEXTS
    last_sync_user_key: str = LAST_SYNC_USER_KEY

    def __post_init__(self) -> None:
        if not self.current_key:
            raise ValidationError("current_key", "must not be empty")
        if ":history:" in self.current_key:
            raise ValidationError(
                "current_key", "must not contain the history separator", self.current_key
            )
        try:
            keep_count = int(self.history_keep_count)
        except (TypeError, ValueError) as e:
            raise ValidationError(
                "history_keep_count", "must be an integer", str(self.history_keep_count)
            ) from e
        if keep_count < 0:
            raise ValidationError("history_keep_count", "must be zero or positive", str(keep_count))
        self.history_keep_count = keep_count
        self.debounce_ms = normalize_debounce_ms(self.debounce_ms)
        self.tracked_keys = tuple(self.tracked_keys)
        self.flush_contexts = frozenset(self.flush_contexts)
        if self.last_sync_user_key in self.tracked_keys:
            raise ValidationError(
                "last_sync_user_key", "must not be a tracked key", self.last_sync_user_key
            )

    @property
    def history_prefix(self) -> str:
        """Key prefix shared by every history record."""
        return f"{self.current_key}:history:"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncConfig:
        """Build a config from a plain mapping, ignoring unknown keys."""
        kwargs: dict[str, Any] = {}
        for name in ("current_key", "history_keep_count", "debounce_ms", "last_sync_user_key"):
            if data.get(name) is not None:
                kwargs[name] = data[name]
        if data.get("tracked_keys"):
            kwargs["tracked_keys"] = tuple(str(k) for k in data["tracked_keys"])
        if data.get("flush_contexts") is not None:
            kwargs["flush_contexts"] = frozenset(str(c) for c in data["flush_contexts"])
        return cls(**kwargs)

    @classmethod
    def from_env(cls) -> SyncConfig:
        """Create configuration from environment variables."""
        data: dict[str, Any] = {
            "current_key": os.environ.get("CLOUD_SYNC_CURRENT_KEY"),
            "history_keep_count": os.environ.get("CLOUD_SYNC_HISTORY_KEEP"),
            "debounce_ms": os.environ.get("CLOUD_SYNC_DEBOUNCE_MS"),
        }
        tracked = _split_csv(os.environ.get("CLOUD_SYNC_TRACKED_KEYS"))
        if tracked:
            data["tracked_keys"] = tracked
        if "CLOUD_SYNC_FLUSH_CONTEXTS" in os.environ:
            data["flush_contexts"] = _split_csv(os.environ["CLOUD_SYNC_FLUSH_CONTEXTS"])
        return cls.from_dict(data)

    @classmethod
    def from_yaml(cls, path: Path) -> SyncConfig:
        """Load configuration from the ``sync:`` section of a YAML file.

        A missing file yields the defaults.

        Raises:
            StorageIOError: If the file exists but cannot be parsed
        """
        if not path.exists():
            return cls()
        try:
            content = yaml.safe_load(path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StorageIOError("load_config", str(path), e) from e
        return cls.from_dict(content.get("sync") or {})
