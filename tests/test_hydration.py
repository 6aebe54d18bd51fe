"""Tests for the hydration controller and its guard policies."""

import pytest

from cloud_state_sync.exceptions import HydrationError
from cloud_state_sync.local import MemoryLocalStore
from cloud_state_sync.snapshot import SnapshotCodec
from cloud_state_sync.sync import (
    BackupScheduler,
    HydrationController,
    HydrationReason,
    pull_unless_active,
    pull_when_empty,
)


@pytest.fixture
def codec(local_store) -> SnapshotCodec:
    return SnapshotCodec(local_store)


class TestGuards:
    """Tests for guard predicates."""

    def test_pull_when_empty(self) -> None:
        assert pull_when_empty(SnapshotCodec(MemoryLocalStore({"other": "x"})))
        assert not pull_when_empty(SnapshotCodec(MemoryLocalStore({"tsms_theme": "dark"})))

    @pytest.mark.parametrize(
        ("raw", "allowed"),
        [
            (None, True),
            ("", True),
            ("   ", True),
            ("{}", True),
            ("[]", True),
            ("null", True),
            ('{"shift": 1}', False),
            ("[1]", False),
            ("in progress", False),
        ],
    )
    def test_pull_unless_active(self, raw, allowed) -> None:
        store = MemoryLocalStore({"tsms_theme": "dark"})
        if raw is not None:
            store.set_item("ops", raw)

        assert pull_unless_active("ops")(SnapshotCodec(store)) is allowed


class TestHydrationController:
    """Tests for HydrationController.hydrate()."""

    @pytest.mark.asyncio
    async def test_skips_when_local_data_exists(self, local_store, codec, remote) -> None:
        local_store.set_item("tsms_theme", "light")
        remote.seed("u1", {"tsms_theme": "dark"})

        result = await HydrationController(codec, remote).hydrate()

        assert not result.restored
        assert result.reason == HydrationReason.LOCAL_DATA_EXISTS
        assert local_store.get_item("tsms_theme") == "light"
        assert remote.select_calls == 0

    @pytest.mark.asyncio
    async def test_force_overwrites_local(self, local_store, codec, remote) -> None:
        local_store.set_item("tsms_theme", "light")
        remote.seed("u1", {"tsms_theme": "dark"})

        result = await HydrationController(codec, remote).hydrate(force=True)

        assert result.restored
        assert result.key_count == 1
        assert local_store.get_item("tsms_theme") == "dark"

    @pytest.mark.asyncio
    async def test_pulls_into_empty_store(self, local_store, codec, remote) -> None:
        remote.seed("u1", {"ops": "[]", "tsms_reports": "[1]"})

        result = await HydrationController(codec, remote).hydrate()

        assert result.reason == HydrationReason.RESTORED
        assert local_store.get_item("tsms_reports") == "[1]"

    @pytest.mark.asyncio
    async def test_missing_cloud_data_leaves_local(self, local_store, codec, remote) -> None:
        local_store.set_item("tsms_theme", "light")

        result = await HydrationController(codec, remote).hydrate(force=True)

        assert result.reason == HydrationReason.CLOUD_DATA_MISSING
        assert local_store.get_item("tsms_theme") == "light"

    @pytest.mark.asyncio
    async def test_remote_failure_raises_hydration_error(self, codec, remote) -> None:
        remote.fail_on.add("select_current")

        with pytest.raises(HydrationError) as exc_info:
            await HydrationController(codec, remote).hydrate()

        assert exc_info.value.cause.operation == "select_current"

    @pytest.mark.asyncio
    async def test_preserve_keys(self, local_store, codec, remote) -> None:
        local_store.set_item("ops", '{"shift": 1}')
        remote.seed("u1", {"ops": "[]", "tsms_theme": "dark"})

        await HydrationController(codec, remote).hydrate(force=True, preserve_keys=["ops"])

        assert local_store.get_item("ops") == '{"shift": 1}'
        assert local_store.get_item("tsms_theme") == "dark"

    @pytest.mark.asyncio
    async def test_apply_runs_with_sync_suppressed(self, codec, remote) -> None:
        scheduler = BackupScheduler(lambda: None)
        seen = []
        remote.seed("u1", {"tsms_theme": "dark"})

        real_apply = codec.apply

        def spy_apply(*args, **kwargs):
            seen.append(scheduler.paused)
            return real_apply(*args, **kwargs)

        codec.apply = spy_apply
        controller = HydrationController(codec, remote, suppress_sync=scheduler.paused_sync)

        await controller.hydrate()

        assert seen == [True]
        assert not scheduler.paused

    @pytest.mark.asyncio
    async def test_custom_guard(self, local_store, codec, remote) -> None:
        local_store.set_item("tsms_theme", "light")
        remote.seed("u1", {"tsms_theme": "dark"})

        controller = HydrationController(codec, remote, guard=pull_unless_active("ops"))
        result = await controller.hydrate()

        assert result.restored
        assert local_store.get_item("tsms_theme") == "dark"
