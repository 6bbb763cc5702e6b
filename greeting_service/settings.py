"""
Greeting Service Settings

Where to find the config server and how to talk to it.

Sources, highest precedence first:
1. Explicit overrides (command line)
2. Bootstrap YAML file (e.g. bootstrap.yaml)
3. Environment variables with prefix CONFIG_CLIENT_ (or a .env file)
4. Defaults below
"""

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.exceptions import ConfigError
from common.logging_setup import get_service_logger
from common.properties import flatten

logger = get_service_logger("client.settings")

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9._,-]")


class ClientSettings(BaseSettings):
    """Config client settings"""

    model_config = SettingsConfigDict(
        env_prefix="CONFIG_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Identity used to look up configuration on the server
    application_name: str = "config-client"
    profile: str = "default"
    label: str | None = None

    # Config server connection
    uri: str = "http://localhost:8888"
    username: str | None = None
    password: str | None = None
    timeout_seconds: float = 10.0

    # Refuse to start when the config server cannot be reached
    fail_fast: bool = False

    # Retry with exponential backoff
    retry_max_attempts: int = Field(default=6, ge=1)
    retry_initial_interval: float = Field(default=1.0, ge=0)
    retry_multiplier: float = Field(default=1.1, ge=1)
    retry_max_interval: float = Field(default=2.0, ge=0)

    # Last fetched configuration, used when the server is down at startup
    cache_dir: Path = Path(".config-cache")
    cache_max_versions: int = Field(default=5, ge=1)

    # Poll the server for changes (0 = only refresh on POST /actuator/refresh)
    refresh_interval_seconds: float = Field(default=0, ge=0)

    # HTTP listener of the greeting service itself
    host: str = "0.0.0.0"
    port: int = 8080

    # Local properties, lowest precedence
    defaults: dict[str, str] = Field(default_factory=dict)

    @property
    def profiles(self) -> list[str]:
        """Active profiles as a list."""
        return [p.strip() for p in self.profile.split(",") if p.strip()] or ["default"]

    @property
    def cache_key(self) -> str:
        """Cache subdirectory name for this application, profiles and label."""
        parts = [self.application_name, ",".join(self.profiles)]
        if self.label:
            parts.append(self.label)
        return _UNSAFE_PATH_CHARS.sub("_", "-".join(parts)).replace("..", "__")


def _read_bootstrap_file(path: Path) -> dict[str, Any]:
    """Load bootstrap YAML file"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Bootstrap file not found: {path}")
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing bootstrap file {path}: {e}", recoverable=False) from e

    if not isinstance(data, dict):
        raise ConfigError(f"Bootstrap file {path} must contain a mapping", recoverable=False)

    return data


def load_client_settings(path: str | Path | None = None, **overrides: Any) -> ClientSettings:
    """
    Build client settings from a bootstrap file, environment and overrides.

    The `defaults` section of the bootstrap file may be nested; it is
    flattened into dotted property keys.

    Args:
        path: Bootstrap YAML file (optional)
        **overrides: Values that win over everything else (None is ignored)

    Returns:
        Validated settings
    """
    values: dict[str, Any] = {}

    if path is not None:
        values.update(_read_bootstrap_file(Path(path)))

    if "defaults" in values:
        defaults = values.pop("defaults")
        if isinstance(defaults, dict):
            values["defaults"] = flatten(defaults)
        elif defaults is not None:
            raise ConfigError(f"'defaults' in {path} must be a mapping", recoverable=False)

    values.update({key: value for key, value in overrides.items() if value is not None})

    return ClientSettings(**values)
