"""Tests for the observed local store."""

from cloud_state_sync.local import MemoryLocalStore
from cloud_state_sync.sync import ObservedLocalStore

TRACKED = {"tsms_theme", "ops"}


def _observed(initial=None):
    inner = MemoryLocalStore(initial)
    store = ObservedLocalStore(inner, lambda key: key in TRACKED)
    events: list = []
    store.subscribe(events.append)
    return inner, store, events


class TestObservedLocalStore:
    """Tests for ObservedLocalStore."""

    def test_tracked_set_notifies(self) -> None:
        inner, store, events = _observed()

        store.set_item("tsms_theme", "dark")

        assert inner.get_item("tsms_theme") == "dark"
        assert events == ["tsms_theme"]

    def test_untracked_set_is_silent(self) -> None:
        _, store, events = _observed()

        store.set_item("scratch", "x")

        assert events == []
        assert store.get_item("scratch") == "x"

    def test_remove_notifies(self) -> None:
        _, store, events = _observed({"ops": "[]"})

        store.remove_item("ops")

        assert events == ["ops"]
        assert store.get_item("ops") is None

    def test_clear_notifies_once_when_tracked_present(self) -> None:
        _, store, events = _observed({"ops": "[]", "tsms_theme": "dark", "scratch": "x"})

        store.clear()

        assert events == [None]
        assert store.length == 0

    def test_clear_without_tracked_is_silent(self) -> None:
        _, store, events = _observed({"scratch": "x"})

        store.clear()

        assert events == []

    def test_subscribe_is_idempotent(self) -> None:
        _, store, events = _observed()

        assert not store.subscribe(events.append)
        store.set_item("ops", "[]")

        assert store.observer_count == 1
        assert events == ["ops"]

    def test_unsubscribe(self) -> None:
        _, store, events = _observed()

        store.unsubscribe(events.append)
        store.set_item("ops", "[]")

        assert events == []

    def test_reads_pass_through(self) -> None:
        _, store, _ = _observed({"a": "1", "ops": "2"})

        assert store.keys() == ["a", "ops"]
        assert store.key(1) == "ops"
        assert store.key(5) is None
        assert len(store) == 2

    def test_observer_sees_completed_write(self) -> None:
        inner = MemoryLocalStore()
        store = ObservedLocalStore(inner, lambda key: key in TRACKED)
        seen = []
        store.subscribe(lambda key: seen.append(inner.get_item(key)))

        store.set_item("tsms_theme", "dark")

        assert seen == ["dark"]
