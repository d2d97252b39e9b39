"""Configuration loading for the pCloud client."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .exceptions import PCloudConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "pcloud.json"

REGION_URLS = {
    "us": "https://api.pcloud.com",
    "eu": "https://eapi.pcloud.com",
}
DEFAULT_REGION = "eu"


def default_config_path() -> Path:
    """Return the default configuration file location.

    Honours XDG_CONFIG_HOME and falls back to ~/.config/pcloud.json.
    """
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / CONFIG_FILE_NAME


@dataclass(frozen=True)
class Config:
    """Region and credentials used to reach pCloud."""

    region: str = DEFAULT_REGION
    access_token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def __post_init__(self) -> None:
        if self.region not in REGION_URLS:
            raise PCloudConfigError(
                f"Unknown region '{self.region}', "
                f"expected one of: {', '.join(sorted(REGION_URLS))}"
            )
        if not self.access_token and not (self.username and self.password):
            raise PCloudConfigError(
                "pCloud credentials not configured. Set PCLOUD_ACCESS_TOKEN or "
                "PCLOUD_USERNAME and PCLOUD_PASSWORD, or write a config file."
            )

    @property
    def api_url(self) -> str:
        """Base URL of the API for the configured region."""
        return REGION_URLS[self.region]

    def auth_params(self) -> dict[str, str]:
        """Query parameters authenticating every request."""
        if self.access_token:
            return {"access_token": self.access_token}
        # __post_init__ guarantees both are set here
        return {"username": str(self.username), "password": str(self.password)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create a Config from the parsed JSON config file.

        Expected layout::

            {"region": "eu", "credentials": {"access_token": "..."}}
            {"region": "us", "credentials": {"username": "...", "password": "..."}}
        """
        credentials = data.get("credentials") or {}
        if not isinstance(credentials, dict):
            raise PCloudConfigError("'credentials' must be an object")
        return cls(
            region=str(data.get("region", DEFAULT_REGION)).lower(),
            access_token=credentials.get("access_token"),
            username=credentials.get("username"),
            password=credentials.get("password"),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """Create a Config from PCLOUD_* environment variables."""
        return cls(
            region=os.environ.get("PCLOUD_REGION", DEFAULT_REGION).lower(),
            access_token=os.environ.get("PCLOUD_ACCESS_TOKEN"),
            username=os.environ.get("PCLOUD_USERNAME"),
            password=os.environ.get("PCLOUD_PASSWORD"),
        )

    @classmethod
    def from_path(cls, path: Path) -> "Config":
        """Load a Config from a JSON file.

        Raises:
            PCloudConfigError: If the file cannot be read or parsed
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise PCloudConfigError(f"Cannot read config file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise PCloudConfigError(f"Invalid JSON in config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise PCloudConfigError(f"Config file {path} must contain an object")
        return cls.from_dict(data)


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from a file, falling back to the environment.

    Args:
        path: Config file path (default: ~/.config/pcloud.json)

    Returns:
        Loaded Config

    Raises:
        PCloudConfigError: If neither the file nor the environment provide
            usable credentials
    """
    config_path = path or default_config_path()
    if config_path.is_file():
        logger.debug("Loading configuration from %s", config_path)
        return Config.from_path(config_path)

    logger.debug("No config file at %s, loading from environment", config_path)
    return Config.from_env()
