"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Any

import httpx
import pytest

from config_server.main import create_app as create_server_app
from config_server.settings import ServerSettings
from greeting_service.settings import ClientSettings

GREETING = "Hello from the config server!"
CONFIG_SERVER_URI = "http://config-server"


@pytest.fixture
def config_repo(tmp_path: Path) -> Path:
    """A config repository with one application and a shared file."""
    repo = tmp_path / "config-repo"
    repo.mkdir()
    (repo / "config-client.properties").write_text(f"officialGreeting={GREETING}\n")
    (repo / "config-client-dev.properties").write_text("officialGreeting=Hello, dev!\n")
    (repo / "application.yml").write_text(
        "greeting:\n"
        "  signature: The Config Team\n"
        "server:\n"
        "  port: 8080\n"
    )
    return repo


@pytest.fixture
def server_app(config_repo: Path):
    """Config server serving the fixture repository."""
    return create_server_app(ServerSettings(repo_dir=config_repo))


@pytest.fixture
def client_settings(tmp_path: Path) -> ClientSettings:
    """Client settings suited to tests: one attempt, no waiting, private cache."""
    return ClientSettings(
        application_name="config-client",
        profile="default",
        uri=CONFIG_SERVER_URI,
        retry_max_attempts=1,
        retry_initial_interval=0,
        cache_dir=tmp_path / "cache",
    )


@pytest.fixture
def server_transport(server_app) -> httpx.ASGITransport:
    """Route client requests straight into the in-process config server."""
    return httpx.ASGITransport(app=server_app)


class FakeConfigServer:
    """
    Scriptable stand-in for the config server.

    Serves `environment` for any request; `down=True` simulates a refused
    connection and `status_code` forces an error answer.
    """

    def __init__(self, properties: dict[str, str] | None = None, version: str = "v1"):
        self.properties: dict[str, str] = dict(properties or {})
        self.version = version
        self.down = False
        self.status_code = 200
        self.requests: list[httpx.Request] = []

    @property
    def environment(self) -> dict[str, Any]:
        return {
            "name": "config-client",
            "profiles": ["default"],
            "label": None,
            "version": self.version,
            "state": None,
            "propertySources": [
                {"name": "file:config-client.properties", "source": dict(self.properties)},
            ],
        }

    def publish(self, version: str, **properties: str) -> None:
        self.version = version
        self.properties.update(properties)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError("Connection refused", request=request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"detail": "boom"})
        return httpx.Response(200, json=self.environment)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_server() -> FakeConfigServer:
    return FakeConfigServer({"officialGreeting": GREETING})
