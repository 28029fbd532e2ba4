"""Configuration management for vaultsync.

Server URL and bearer token are resolved in this order:

1. Explicit values passed by the caller (CLI options)
2. Environment variables ``VAULTSYNC_API_URL`` / ``VAULTSYNC_AUTH_TOKEN``
3. The JSON config file in ``~/.config/vaultsync/config.json``
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .exceptions import ConfigError
from .utils import DEFAULT_API_URL

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"


class Config:
    """Process-level configuration for talking to the sync server."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ``$VAULTSYNC_CONFIG_DIR`` or ``~/.config/vaultsync``.
        """
        if config_dir is None:
            env_dir = os.environ.get("VAULTSYNC_CONFIG_DIR")
            config_dir = (
                Path(env_dir) if env_dir else Path.home() / ".config" / "vaultsync"
            )
        self.config_dir = config_dir

    def get_config_path(self) -> Path:
        """Return the path of the config file."""
        return self.config_dir / CONFIG_FILE_NAME

    def _load(self) -> dict[str, Any]:
        path = self.get_config_path()
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        return data

    @property
    def api_url(self) -> str:
        """Server base URL without a trailing slash."""
        url = os.environ.get("VAULTSYNC_API_URL") or self._load().get("api_url")
        return (url or DEFAULT_API_URL).rstrip("/")

    @property
    def auth_token(self) -> Optional[str]:
        """Bearer token, if one is configured."""
        return os.environ.get("VAULTSYNC_AUTH_TOKEN") or self._load().get(
            "auth_token"
        )

    def is_configured(self) -> bool:
        """Check whether a bearer token is available."""
        return bool(self.auth_token)

    def save_credentials(self, api_url: str, auth_token: str) -> None:
        """Persist server URL and token to the config file.

        The file is created with owner-only permissions.

        Args:
            api_url: Server base URL
            auth_token: Bearer token
        """
        data = self._load()
        data["api_url"] = api_url.rstrip("/")
        data["auth_token"] = auth_token

        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.get_config_path()
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        path.chmod(0o600)
        logger.debug("Saved credentials to %s", path)


config = Config()
