"""
Configuration Sync

Fetches the environment of this service from the config server.

- Reuses a single HTTP client
- Retries connection failures and 5xx answers with exponential backoff
- Never retries 4xx answers (the request itself is wrong)
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from common.exceptions import ConfigFetchError, ConfigServerUnavailableError
from common.logging_setup import get_service_logger, log_fetch
from common.properties import PropertySource, flatten

from ..settings import ClientSettings

logger = get_service_logger("client.sync")


@dataclass
class RemoteEnvironment:
    """Environment as returned by the config server"""
    name: str
    profiles: list[str] = field(default_factory=list)
    label: str | None = None
    version: str | None = None
    state: str | None = None
    property_sources: list[PropertySource] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Server wire format (camelCase property sources)"""
        return {
            "name": self.name,
            "profiles": self.profiles,
            "label": self.label,
            "version": self.version,
            "state": self.state,
            "propertySources": [
                {"name": ps.name, "source": ps.source}
                for ps in self.property_sources
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RemoteEnvironment":
        """
        Parse the server wire format.

        Raises:
            ValueError: Payload does not look like an environment
        """
        if not isinstance(data, dict):
            raise ValueError("environment must be a JSON object")

        raw_sources = data.get("propertySources") or []
        if not isinstance(raw_sources, list):
            raise ValueError("propertySources must be a list")

        property_sources = []
        for raw in raw_sources:
            if not isinstance(raw, dict) or not isinstance(raw.get("source", {}), dict):
                raise ValueError("malformed property source")
            # Values may be typed (numbers, booleans) when served by other servers
            property_sources.append(
                PropertySource(name=str(raw.get("name", "")), source=flatten(raw.get("source") or {}))
            )

        profiles = data.get("profiles") or []
        return cls(
            name=str(data.get("name", "")),
            profiles=[str(p) for p in profiles],
            label=data.get("label"),
            version=data.get("version"),
            state=data.get("state"),
            property_sources=property_sources,
        )


class ConfigClient:
    """
    Client for the config server.

    One instance per service; call close() on shutdown.
    """

    def __init__(
        self,
        settings: ClientSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def environment_url(self) -> str:
        """URL of this application's environment on the config server"""
        parts = [
            self.settings.uri.rstrip("/"),
            quote(self.settings.application_name, safe=","),
            quote(",".join(self.settings.profiles), safe=","),
        ]
        if self.settings.label:
            parts.append(quote(self.settings.label, safe=""))
        return "/".join(parts)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create reusable HTTP client"""
        if self._client is None or self._client.is_closed:
            auth = None
            if self.settings.username:
                auth = httpx.BasicAuth(self.settings.username, self.settings.password or "")
            self._client = httpx.AsyncClient(
                timeout=self.settings.timeout_seconds,
                auth=auth,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def fetch_environment(self) -> RemoteEnvironment:
        """
        Fetch this application's environment.

        Returns:
            Parsed environment

        Raises:
            ConfigServerUnavailableError: All attempts failed to connect or got 5xx
            ConfigFetchError: The server rejected the request or sent garbage
        """
        url = self.environment_url
        attempts = self.settings.retry_max_attempts
        interval = self.settings.retry_initial_interval
        last_error = ""

        client = await self._get_client()

        for attempt in range(1, attempts + 1):
            try:
                response = await client.get(url)
            except httpx.TransportError as e:
                last_error = str(e) or e.__class__.__name__
                log_fetch(logger, url, attempt, success=False, error=last_error)
            else:
                if response.status_code >= 500:
                    last_error = f"HTTP {response.status_code}"
                    log_fetch(logger, url, attempt, success=False, error=last_error)
                elif response.status_code >= 400:
                    raise ConfigFetchError(url, response.status_code, _error_detail(response))
                else:
                    log_fetch(logger, url, attempt)
                    return self._parse(url, response)

            if attempt < attempts:
                await asyncio.sleep(interval)
                interval = min(
                    interval * self.settings.retry_multiplier,
                    self.settings.retry_max_interval,
                )

        raise ConfigServerUnavailableError(self.settings.uri, attempts, last_error)

    async def check_for_updates(self, current_version: str | None) -> bool:
        """
        Check whether the server holds a different version than ours.

        Args:
            current_version: Version currently applied (None if never fetched)

        Returns:
            True if updates are available
        """
        environment = await self.fetch_environment()
        if not current_version:
            return True
        return environment.version != current_version

    def _parse(self, url: str, response: httpx.Response) -> RemoteEnvironment:
        try:
            environment = RemoteEnvironment.from_dict(response.json())
        except ValueError as e:
            raise ConfigFetchError(url, response.status_code, f"invalid environment: {e}") from e

        logger.info(
            f"Fetched config for {environment.name} "
            f"({len(environment.property_sources)} property source(s), version {environment.version})",
            extra={
                "application": environment.name,
                "profiles": environment.profiles,
                "version": environment.version,
            },
        )
        return environment


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)[:200]
