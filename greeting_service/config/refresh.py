"""
Refresh Scope

Objects built from configuration (greeting, clients, ...) are registered
as named factories. The scope builds each one lazily and keeps it until a
refresh discards it, so the next access sees the new configuration without
restarting the service.
"""

import asyncio
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from common.logging_setup import get_service_logger, log_refresh

from .cache import ConfigCache
from .environment import PropertyEnvironment
from .sync import ConfigClient, RemoteEnvironment

logger = get_service_logger("client.refresh")

Factory = Callable[[PropertyEnvironment], Any]


class RefreshScope:
    """Lazily built, refreshable named instances"""

    def __init__(self, environment: PropertyEnvironment):
        self.environment = environment
        self._factories: dict[str, Factory] = {}
        self._instances: dict[str, Any] = {}
        self._lock = threading.RLock()

    def register(self, name: str, factory: Factory) -> None:
        """Register (or replace) the factory for a named instance"""
        with self._lock:
            self._factories[name] = factory
            self._instances.pop(name, None)

    @property
    def names(self) -> list[str]:
        with self._lock:
            return list(self._factories)

    def is_active(self, name: str) -> bool:
        """Whether an instance is currently built"""
        with self._lock:
            return name in self._instances

    def get(self, name: str) -> Any:
        """
        Get the instance, building it from the current environment if needed.

        Raises:
            KeyError: No factory registered under this name
            ConfigError: The factory could not bind its properties
        """
        with self._lock:
            if name in self._instances:
                return self._instances[name]

            if name not in self._factories:
                raise KeyError(f"No refresh-scoped instance named '{name}'")

            instance = self._factories[name](self.environment)
            self._instances[name] = instance
            return instance

    def refresh(self, name: str) -> bool:
        """Discard one instance. Returns True if it was built."""
        with self._lock:
            return self._instances.pop(name, None) is not None

    def refresh_all(self) -> list[str]:
        """Discard every built instance. Returns the discarded names."""
        with self._lock:
            discarded = list(self._instances)
            self._instances.clear()

        if discarded:
            logger.debug(f"Refresh scope cleared: {', '.join(discarded)}")
        return discarded


class ContextRefresher:
    """
    Re-fetches configuration and applies it to the running service.

    Refreshes are serialized; a refresh that arrives while another is in
    progress waits for it and then fetches again.
    """

    def __init__(
        self,
        client: ConfigClient,
        environment: PropertyEnvironment,
        scope: RefreshScope,
        cache: ConfigCache | None = None,
    ):
        self.client = client
        self.environment = environment
        self.scope = scope
        self.cache = cache

        self.last_refresh_at: datetime | None = None
        self.last_error: str | None = None
        self._lock = asyncio.Lock()

    async def refresh(self) -> list[str]:
        """
        Fetch from the config server and apply.

        Returns:
            Sorted keys whose values changed

        Raises:
            SyncError: The config server could not provide an environment
        """
        async with self._lock:
            remote = await self._fetch()
            return self._apply_fetched(remote)

    async def refresh_if_changed(self) -> list[str] | None:
        """
        Fetch once and apply only when the server holds another version.

        Returns:
            Sorted changed keys, or None when already up to date

        Raises:
            SyncError: The config server could not provide an environment
        """
        async with self._lock:
            remote = await self._fetch()
            if self.environment.version and remote.version == self.environment.version:
                self.last_error = None
                return None
            return self._apply_fetched(remote)

    async def _fetch(self) -> RemoteEnvironment:
        try:
            return await self.client.fetch_environment()
        except Exception as e:
            self.last_error = str(e)
            raise

    def _apply_fetched(self, remote: RemoteEnvironment) -> list[str]:
        changed_keys = self.apply(remote)
        self.last_refresh_at = datetime.now(timezone.utc)
        self.last_error = None
        return changed_keys

    def apply(self, remote: RemoteEnvironment, save: bool = True) -> list[str]:
        """
        Apply an environment that was already fetched (or loaded from cache).

        A failing cache write is logged and does not undo the refresh.

        Args:
            remote: Environment to apply
            save: Write it to the local cache when its version is new

        Returns:
            Sorted keys whose values changed
        """
        old_version = self.environment.version
        changed = self.environment.replace_remote(
            remote.property_sources,
            version=remote.version,
            label=remote.label,
        )

        if changed:
            self.scope.refresh_all()

        if save and self.cache is not None and remote.version != old_version:
            try:
                self.cache.save(remote)
            except OSError as e:
                logger.warning(f"Failed to save config to cache: {e}")

        changed_keys = sorted(changed)
        log_refresh(logger, changed_keys, old_version, remote.version)
        return changed_keys
