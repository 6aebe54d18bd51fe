"""Tests for identity module."""

from pathlib import Path

import pytest
import yaml

from cloud_state_sync.identity import ConfigFileSessionProvider, SessionInfo


def _write_settings(path: Path, data: dict) -> Path:
    path.write_text(yaml.dump(data))
    return path


class TestSessionInfo:
    """Tests for SessionInfo dataclass."""

    def test_authenticated(self) -> None:
        assert SessionInfo(user_id="u1").is_authenticated
        assert not SessionInfo().is_authenticated
        assert not SessionInfo(user_id="u1", error="expired").is_authenticated

    def test_to_dict(self) -> None:
        assert SessionInfo(user_id="u1").to_dict() == {
            "user_id": "u1",
            "error": None,
            "email": None,
        }


class TestConfigFileSessionProvider:
    """Tests for ConfigFileSessionProvider."""

    @pytest.mark.asyncio
    async def test_reads_identity(self, tmp_path) -> None:
        path = _write_settings(
            tmp_path / "settings.yaml",
            {"identity": {"user_id": "user-abc", "email": "a@example.com"}},
        )

        session = await ConfigFileSessionProvider(path).get_session()

        assert session.user_id == "user-abc"
        assert session.email == "a@example.com"
        assert session.is_authenticated

    @pytest.mark.asyncio
    async def test_missing_file_is_signed_out(self, tmp_path) -> None:
        session = await ConfigFileSessionProvider(tmp_path / "absent.yaml").get_session()

        assert not session.is_authenticated
        assert session.error is None

    @pytest.mark.asyncio
    async def test_invalid_yaml_reports_error(self, tmp_path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("identity: [unclosed")

        session = await ConfigFileSessionProvider(path).get_session()

        assert session.error is not None
        assert not session.is_authenticated

    @pytest.mark.asyncio
    async def test_session_cached(self, tmp_path) -> None:
        path = _write_settings(tmp_path / "settings.yaml", {"identity": {"user_id": "u1"}})
        provider = ConfigFileSessionProvider(path)
        await provider.get_session()

        _write_settings(path, {"identity": {"user_id": "u2"}})

        assert (await provider.get_session()).user_id == "u1"

    @pytest.mark.asyncio
    async def test_sign_out_and_back_in(self, tmp_path) -> None:
        path = _write_settings(tmp_path / "settings.yaml", {"identity": {"user_id": "u1"}})
        provider = ConfigFileSessionProvider(path)
        await provider.get_session()

        await provider.sign_out()
        assert not (await provider.get_session()).is_authenticated

        provider.sign_in()
        assert (await provider.get_session()).user_id == "u1"
