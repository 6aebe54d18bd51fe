"""Tests for sync configuration."""

import dataclasses

import pytest
import yaml

from cloud_state_sync.config import (
    DEFAULT_FLUSH_CONTEXTS,
    DEFAULT_TRACKED_KEYS,
    SyncConfig,
    normalize_debounce_ms,
)
from cloud_state_sync.exceptions import StorageIOError, ValidationError


class TestNormalizeDebounce:
    """Tests for normalize_debounce_ms()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(2500, 2500), (10, 1000), (0, 5000), (-3, 5000), ("abc", 5000), (None, 5000), ("1500", 1500)],
    )
    def test_values(self, value, expected) -> None:
        assert normalize_debounce_ms(value) == expected

    def test_custom_floor(self) -> None:
        assert normalize_debounce_ms(10, floor=0) == 10


class TestSyncConfig:
    """Tests for SyncConfig."""

    def test_defaults(self) -> None:
        config = SyncConfig()

        assert config.current_key == "localStorage_dump_v1"
        assert config.history_keep_count == 30
        assert config.debounce_ms == 5000
        assert config.tracked_keys == DEFAULT_TRACKED_KEYS
        assert config.flush_contexts == DEFAULT_FLUSH_CONTEXTS
        assert config.history_prefix == "localStorage_dump_v1:history:"

    def test_unknown_options_ignored(self) -> None:
        names = {f.name for f in dataclasses.fields(SyncConfig)}

        assert "options" not in names
        assert SyncConfig.from_dict({"options": {"x": 1}}) == SyncConfig()

    def test_debounce_clamped(self) -> None:
        assert SyncConfig(debounce_ms=5).debounce_ms == 1000

    def test_rejects_empty_current_key(self) -> None:
        with pytest.raises(ValidationError):
            SyncConfig(current_key="")

    def test_rejects_history_separator_in_current_key(self) -> None:
        with pytest.raises(ValidationError):
            SyncConfig(current_key="a:history:b")

    @pytest.mark.parametrize("value", [-1, "many"])
    def test_rejects_bad_keep_count(self, value) -> None:
        with pytest.raises(ValidationError):
            SyncConfig(history_keep_count=value)

    def test_rejects_tracked_cursor_key(self) -> None:
        with pytest.raises(ValidationError):
            SyncConfig(tracked_keys=("tsms_theme", "tsms_last_sync_user_id"))

    def test_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("CLOUD_SYNC_DEBOUNCE_MS", "2000")
        monkeypatch.setenv("CLOUD_SYNC_HISTORY_KEEP", "10")
        monkeypatch.setenv("CLOUD_SYNC_TRACKED_KEYS", "a, b ,c")
        monkeypatch.setenv("CLOUD_SYNC_FLUSH_CONTEXTS", "")

        config = SyncConfig.from_env()

        assert config.debounce_ms == 2000
        assert config.history_keep_count == 10
        assert config.tracked_keys == ("a", "b", "c")
        assert config.flush_contexts == frozenset()

    def test_from_env_defaults(self, monkeypatch) -> None:
        for name in (
            "CLOUD_SYNC_CURRENT_KEY",
            "CLOUD_SYNC_DEBOUNCE_MS",
            "CLOUD_SYNC_HISTORY_KEEP",
            "CLOUD_SYNC_TRACKED_KEYS",
            "CLOUD_SYNC_FLUSH_CONTEXTS",
        ):
            monkeypatch.delenv(name, raising=False)

        assert SyncConfig.from_env() == SyncConfig()

    def test_from_yaml(self, tmp_path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(
            yaml.dump({"sync": {"debounce_ms": 3000, "flush_contexts": ["checkout"]}})
        )

        config = SyncConfig.from_yaml(path)

        assert config.debounce_ms == 3000
        assert config.flush_contexts == frozenset({"checkout"})

    def test_from_yaml_missing_file(self, tmp_path) -> None:
        assert SyncConfig.from_yaml(tmp_path / "absent.yaml") == SyncConfig()

    def test_from_yaml_invalid(self, tmp_path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("sync: [unclosed")

        with pytest.raises(StorageIOError):
            SyncConfig.from_yaml(path)
