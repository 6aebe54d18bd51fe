"""Tests for the snapshot codec."""

import json

from cloud_state_sync.local import MemoryLocalStore
from cloud_state_sync.snapshot import SnapshotCodec, SnapshotSummary


class TestCapture:
    """Tests for SnapshotCodec.capture()."""

    def test_captures_only_tracked_keys(self) -> None:
        store = MemoryLocalStore(
            {"tsms_theme": "dark", "ops": "[1]", "unrelated": "x", "tsms_last_sync_user_id": "u1"}
        )
        codec = SnapshotCodec(store)

        assert codec.capture() == {"tsms_theme": "dark", "ops": "[1]"}

    def test_prefix_filter_replaces_tracked_set(self) -> None:
        store = MemoryLocalStore({"app_a": "1", "app_b": "2", "tsms_theme": "dark"})
        codec = SnapshotCodec(store)

        assert codec.capture(prefix="app_") == {"app_a": "1", "app_b": "2"}

    def test_capture_performs_no_writes(self) -> None:
        store = MemoryLocalStore({"tsms_theme": "dark"})
        before = store.to_dict()

        SnapshotCodec(store).capture()

        assert store.to_dict() == before

    def test_empty_store(self) -> None:
        assert SnapshotCodec(MemoryLocalStore()).capture() == {}


class TestApply:
    """Tests for SnapshotCodec.apply()."""

    def test_replaces_tracked_subset_and_keeps_untracked(self) -> None:
        store = MemoryLocalStore({"tsms_theme": "light", "ops": "[1]", "unrelated": "keep"})
        codec = SnapshotCodec(store)

        codec.apply({"tsms_theme": "dark"})

        assert store.to_dict() == {"tsms_theme": "dark", "unrelated": "keep"}

    def test_apply_is_idempotent(self) -> None:
        store = MemoryLocalStore({"ops": "[1]", "unrelated": "keep"})
        codec = SnapshotCodec(store)
        snapshot = {"tsms_theme": "dark", "tsms_reports": "[]"}

        codec.apply(snapshot)
        once = store.to_dict()
        codec.apply(snapshot)

        assert store.to_dict() == once

    def test_capture_after_apply_returns_snapshot(self) -> None:
        store = MemoryLocalStore({"tsms_settings": "{}"})
        codec = SnapshotCodec(store)
        snapshot = {"tsms_theme": "dark", "ops": '{"shift": 1}'}

        codec.apply(snapshot)

        assert codec.capture() == snapshot

    def test_ignores_untracked_snapshot_entries(self) -> None:
        store = MemoryLocalStore()
        codec = SnapshotCodec(store)

        codec.apply({"tsms_theme": "dark", "evil": "x"})

        assert store.get_item("evil") is None
        assert store.get_item("tsms_theme") == "dark"

    def test_none_value_becomes_empty_string(self) -> None:
        store = MemoryLocalStore()
        SnapshotCodec(store).apply({"tsms_theme": None})

        assert store.get_item("tsms_theme") == ""

    def test_preserve_keys_left_untouched(self) -> None:
        store = MemoryLocalStore({"tsms_theme": "light", "ops": "[1]"})
        codec = SnapshotCodec(store)

        codec.apply({"tsms_theme": "dark", "ops": "[2]"}, preserve_keys=["ops"])

        assert store.get_item("ops") == "[1]"
        assert store.get_item("tsms_theme") == "dark"

    def test_prefix_apply_removes_stale_prefixed_keys(self) -> None:
        store = MemoryLocalStore({"app_old": "1", "other": "2"})
        codec = SnapshotCodec(store)

        codec.apply({"app_new": "3"}, prefix="app_")

        assert store.to_dict() == {"app_new": "3", "other": "2"}

    def test_none_snapshot_clears_tracked_subset(self) -> None:
        store = MemoryLocalStore({"tsms_theme": "dark", "unrelated": "keep"})
        SnapshotCodec(store).apply(None)

        assert store.to_dict() == {"unrelated": "keep"}


class TestClearAndInspect:
    """Tests for clear(), has_tracked_keys() and summarize()."""

    def test_clear_removes_tracked_keys(self) -> None:
        store = MemoryLocalStore({"tsms_theme": "dark", "unrelated": "keep"})
        codec = SnapshotCodec(store)

        codec.clear()

        assert store.to_dict() == {"unrelated": "keep"}
        assert not codec.has_tracked_keys()

    def test_has_tracked_keys(self) -> None:
        store = MemoryLocalStore({"unrelated": "x"})
        codec = SnapshotCodec(store)
        assert not codec.has_tracked_keys()

        store.set_item("ops", "[]")
        assert codec.has_tracked_keys()

    def test_summary_counts_reports(self) -> None:
        snapshot = {
            "tsms_reports": json.dumps([{"id": 1}, {"id": 2}]),
            "tsms_reports_archive": "not json",
            "tsms_report_current_day": "2025-01-01",
        }

        summary = SnapshotSummary.from_snapshot(snapshot)

        assert summary.key_count == 3
        assert summary.report_count == 2
        assert summary.archive_count == 0
        assert summary.current_day_id == "2025-01-01"

    def test_summarize_defaults_to_local_state(self) -> None:
        store = MemoryLocalStore({"tsms_reports": "[1, 2, 3]"})

        summary = SnapshotCodec(store).summarize()

        assert summary.to_dict()["report_count"] == 3
        assert summary.keys == ["tsms_reports"]


class TestSanitize:
    """Tests for SnapshotCodec.sanitize()."""

    def test_repairs_and_removes(self) -> None:
        store = MemoryLocalStore({"tsms_theme": " dark ", "ops": "garbage", "tsms_settings": "{}"})
        codec = SnapshotCodec(store)

        def sanitizer(key: str, raw: str) -> str | None:
            if key == "ops":
                return None
            return raw.strip()

        changed = codec.sanitize(sanitizer)

        assert sorted(changed) == ["ops", "tsms_theme"]
        assert store.get_item("ops") is None
        assert store.get_item("tsms_theme") == "dark"
        assert store.get_item("tsms_settings") == "{}"

    def test_unchanged_values_not_rewritten(self) -> None:
        store = MemoryLocalStore({"tsms_theme": "dark"})

        assert SnapshotCodec(store).sanitize(lambda key, raw: raw) == []
