"""Tests for the local configuration cache."""

from pathlib import Path

import pytest

from common.properties import PropertySource
from greeting_service.config.cache import ConfigCache
from greeting_service.config.sync import RemoteEnvironment


def environment(version: str) -> RemoteEnvironment:
    return RemoteEnvironment(
        name="config-client",
        profiles=["default"],
        label="main",
        version=version,
        property_sources=[PropertySource("file:config-client.properties", {"officialGreeting": version})],
    )


@pytest.fixture
def cache(tmp_path: Path) -> ConfigCache:
    return ConfigCache(tmp_path / "cache", max_versions=3)


def test_empty_cache(cache):
    assert cache.load() is None
    assert cache.get_versions() == []


def test_save_and_load(cache):
    path = cache.save(environment("v1"))

    assert path.name.startswith("v_")
    assert path.suffix == ".json"
    assert cache.load() == environment("v1")


def test_newest_version_wins(cache):
    cache.save(environment("v1"))
    cache.save(environment("v2"))

    assert cache.load().version == "v2"
    assert [v["version"] for v in cache.get_versions()] == ["v2", "v1"]


def test_old_versions_are_pruned(cache):
    for i in range(5):
        cache.save(environment(f"v{i}"))

    assert [v["version"] for v in cache.get_versions()] == ["v4", "v3", "v2"]
    assert len(list(cache.cache_dir.glob("v_*.json"))) == 3


def test_corrupt_newest_file_is_skipped(cache):
    cache.save(environment("v1"))
    (cache.cache_dir / "v_99999999T999999999999.json").write_text("{truncated")

    assert cache.load().version == "v1"


def test_no_temp_files_left(cache):
    cache.save(environment("v1"))
    assert list(cache.cache_dir.glob("*.tmp")) == []


def test_clear(cache):
    cache.save(environment("v1"))
    cache.clear()
    assert cache.load() is None
