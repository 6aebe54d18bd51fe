"""
Config file session provider.

Reads the signed-in user from a local YAML settings file, for development
and offline-first usage.
"""

from pathlib import Path
from typing import Any

import yaml

from .provider import SessionProvider
from .types import SessionInfo

DEFAULT_SETTINGS_PATH = Path.home() / ".cloud_state_sync" / "settings.yaml"


class ConfigFileSessionProvider(SessionProvider):
    """Session provider that reads from local config.

    Configuration in ~/.cloud_state_sync/settings.yaml:

    ```yaml
    identity:
      user_id: "user-abc123"
      email: "alice@example.com"
    ```

    A missing identity section means nobody is signed in.
    """

    def __init__(self, config_path: Path | None = None):
        """Initialize the config file provider.

        Args:
            config_path: Path to settings.yaml. Defaults to ~/.cloud_state_sync/settings.yaml
        """
        self.config_path = config_path or DEFAULT_SETTINGS_PATH
        self._session: SessionInfo | None = None
        self._signed_out = False

    async def get_session(self) -> SessionInfo:
        """Get the session from config, cached after the first read."""
        if self._signed_out:
            return SessionInfo()
        if self._session is not None:
            return self._session

        try:
            config = self._load_config()
        except (OSError, yaml.YAMLError) as e:
            return SessionInfo(error=f"Cannot read {self.config_path}: {e}")

        identity_config = config.get("identity") or {}
        user_id = identity_config.get("user_id")
        self._session = SessionInfo(
            user_id=str(user_id) if user_id else None,
            email=identity_config.get("email"),
        )
        return self._session

    async def sign_out(self) -> None:
        """Clear the cached session.

        The config file is not modified; the provider reports no session
        until sign_in() is called.
        """
        self._session = None
        self._signed_out = True

    def sign_in(self) -> None:
        """Re-enable reading the session from config after sign_out()."""
        self._signed_out = False

    def _load_config(self) -> dict[str, Any]:
        if not self.config_path.exists():
            return {}
        content = self.config_path.read_text()
        return yaml.safe_load(content) or {}
