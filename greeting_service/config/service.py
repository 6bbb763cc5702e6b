"""
Config Service

Owns the configuration lifecycle of the greeting service:
- Initial fetch from the config server at startup
- Fallback to the local cache, then to local defaults (unless fail-fast)
- Optional polling for changes
- Refresh on demand
"""

import asyncio

import httpx

from common.exceptions import SyncError
from common.logging_setup import get_service_logger

from ..settings import ClientSettings
from .cache import ConfigCache
from .environment import PropertyEnvironment
from .refresh import ContextRefresher, RefreshScope
from .sync import ConfigClient

logger = get_service_logger("client.config")

SOURCE_REMOTE = "remote"
SOURCE_CACHE = "cache"
SOURCE_DEFAULTS = "defaults"


class ConfigService:
    """
    Configuration for one running service.

    Usage:
        service = ConfigService(settings)
        await service.start()
        greeting = service.environment.get_property("officialGreeting")
        await service.stop()
    """

    def __init__(
        self,
        settings: ClientSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings

        self.client = ConfigClient(settings, transport=transport)
        self.cache = ConfigCache(
            settings.cache_dir / settings.cache_key,
            max_versions=settings.cache_max_versions,
        )
        self.environment = PropertyEnvironment(settings.defaults, profiles=settings.profiles)
        self.scope = RefreshScope(self.environment)
        self.refresher = ContextRefresher(self.client, self.environment, self.scope, self.cache)

        # Where the active configuration came from
        self.source: str | None = None

        self._running = False
        self._poll_task: asyncio.Task | None = None

    async def start(self) -> None:
        """
        Load configuration and start polling (if enabled).

        Raises:
            SyncError: Config server unavailable and fail_fast is set
        """
        logger.info(
            f"Loading config for {self.settings.application_name} "
            f"(profiles: {','.join(self.settings.profiles)}) from {self.settings.uri}"
        )

        await self._bootstrap()

        self._running = True
        if self.settings.refresh_interval_seconds > 0:
            self._poll_task = asyncio.create_task(self._poll_loop())
            logger.info(f"Polling config server every {self.settings.refresh_interval_seconds}s")

    async def stop(self) -> None:
        """Stop polling and close the HTTP client"""
        self._running = False

        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

        await self.client.close()

    async def _bootstrap(self) -> None:
        try:
            await self.refresher.refresh()
            self.source = SOURCE_REMOTE
            return
        except SyncError as e:
            if self.settings.fail_fast:
                logger.error(f"Config server unavailable and fail-fast is enabled: {e}")
                raise
            logger.warning(f"Config server unavailable, falling back to local config: {e}")

        cached = self.cache.load()
        if cached is not None:
            self.refresher.apply(cached, save=False)
            self.source = SOURCE_CACHE
            logger.warning(f"Using cached config (version: {cached.version})")
        else:
            self.source = SOURCE_DEFAULTS
            logger.warning("No cached config found, using local defaults only")

    async def refresh(self) -> list[str]:
        """Fetch and apply configuration now. Returns the changed keys."""
        changed = await self.refresher.refresh()
        self.source = SOURCE_REMOTE
        return changed

    async def _poll_loop(self) -> None:
        """Periodic change detection"""
        while self._running:
            await asyncio.sleep(self.settings.refresh_interval_seconds)

            try:
                changed = await self.refresher.refresh_if_changed()
                self.source = SOURCE_REMOTE
                if changed is None:
                    logger.debug("Config is up to date")
            except SyncError as e:
                logger.warning(f"Config poll failed: {e}")
            except Exception as e:
                logger.error(f"Error in config poll loop: {e}", exc_info=True)
