"""
Config Server Settings

Loaded from environment variables (prefix CONFIG_SERVER_) or a .env file.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    """
    Config server settings.

    Create a .env file with, for example:
    - CONFIG_SERVER_REPO_DIR=/srv/config-repo
    - CONFIG_SERVER_PORT=8888
    """

    model_config = SettingsConfigDict(
        env_prefix="CONFIG_SERVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Directory holding {application}-{profile}.properties|yml|json files
    repo_dir: Path = Path("config-repo")
    # Label served when a request names none; maps to repo_dir itself
    default_label: str = "main"

    host: str = "0.0.0.0"
    port: int = 8888


@lru_cache()
def get_settings() -> ServerSettings:
    """Get cached settings."""
    return ServerSettings()
