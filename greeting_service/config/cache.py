"""
Configuration Cache

Local file caching for offline startup.
Keeps the last few fetched environments as versioned JSON files.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from common.logging_setup import get_service_logger

from .sync import RemoteEnvironment

logger = get_service_logger("client.cache")


class ConfigCache:
    """
    Local configuration cache.

    Stores each fetched environment as `v_<utc timestamp>.json`; the newest
    file is the one used when the config server is unreachable.
    """

    def __init__(self, cache_dir: Path, max_versions: int = 5):
        self.cache_dir = Path(cache_dir)
        self.max_versions = max_versions

        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _version_files(self) -> list[Path]:
        """Cached files, newest first"""
        return sorted(self.cache_dir.glob("v_*.json"), reverse=True)

    def save(self, environment: RemoteEnvironment) -> Path:
        """
        Save an environment to the cache.

        Args:
            environment: Environment just fetched from the server

        Returns:
            Path of the written file
        """
        cached_at = datetime.now(timezone.utc)
        data = {
            **environment.to_dict(),
            "_cached_at": cached_at.isoformat(),
        }

        version_file = self.cache_dir / f"v_{cached_at.strftime('%Y%m%dT%H%M%S%f')}.json"
        while version_file.exists():
            cached_at += timedelta(microseconds=1)
            version_file = self.cache_dir / f"v_{cached_at.strftime('%Y%m%dT%H%M%S%f')}.json"
        temp_file = version_file.with_suffix(".tmp")

        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        temp_file.replace(version_file)

        logger.info(
            f"Config saved to cache (version: {environment.version})",
            extra={"version": environment.version, "file": version_file.name},
        )

        self._cleanup_old_versions()
        return version_file

    def load(self) -> RemoteEnvironment | None:
        """
        Load the newest readable environment from the cache.

        Returns:
            Cached environment, or None if nothing usable is cached
        """
        for version_file in self._version_files():
            try:
                with open(version_file, "r", encoding="utf-8") as f:
                    return RemoteEnvironment.from_dict(json.load(f))
            except (json.JSONDecodeError, OSError, ValueError) as e:
                logger.error(f"Error loading cached config {version_file.name}: {e}")

        return None

    def get_versions(self) -> list[dict[str, Any]]:
        """
        Get list of cached config versions.

        Returns:
            List of version info dicts, newest first
        """
        versions = []
        for version_file in self._version_files():
            try:
                with open(version_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
                versions.append({
                    "version": data.get("version"),
                    "cached_at": data.get("_cached_at", ""),
                    "file": version_file.name,
                })
            except (json.JSONDecodeError, OSError):
                continue

        return versions

    def clear(self) -> None:
        """Clear all cached configs"""
        for version_file in self.cache_dir.glob("v_*.json"):
            version_file.unlink()

        logger.info("Config cache cleared")

    def _cleanup_old_versions(self) -> None:
        """Remove old version files beyond max_versions"""
        version_files = self._version_files()

        if len(version_files) > self.max_versions:
            for old_file in version_files[self.max_versions:]:
                old_file.unlink()
                logger.debug(f"Removed old config version: {old_file.name}")
