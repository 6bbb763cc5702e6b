"""Tests for the layered property environment."""

import pytest

from common.exceptions import PropertyNotFoundError, PropertyResolutionError
from common.properties import PropertySource
from greeting_service.config.environment import LOCAL_DEFAULTS, PropertyEnvironment


def make_environment(*sources: dict[str, str], defaults: dict[str, str] | None = None) -> PropertyEnvironment:
    environment = PropertyEnvironment(defaults)
    environment.replace_remote(
        [PropertySource(f"remote-{i}", source) for i, source in enumerate(sources)],
        version="v1",
    )
    return environment


class TestPrecedence:
    """Earlier sources win; local defaults come last."""

    def test_first_remote_source_wins(self):
        environment = make_environment({"a": "specific"}, {"a": "generic", "b": "generic"})
        assert environment.get_property("a") == "specific"
        assert environment.get_property("b") == "generic"

    def test_remote_overrides_defaults(self):
        environment = make_environment({"a": "remote"}, defaults={"a": "local", "c": "local"})
        assert environment.get_property("a") == "remote"
        assert environment.get_property("c") == "local"

    def test_defaults_source_is_last(self):
        environment = make_environment({"a": "1"}, defaults={"b": "2"})
        assert [ps.name for ps in environment.property_sources] == ["remote-0", LOCAL_DEFAULTS]

    def test_missing_property(self):
        environment = make_environment({})
        with pytest.raises(PropertyNotFoundError) as exc_info:
            environment.get_property("officialGreeting")
        assert exc_info.value.key == "officialGreeting"

    def test_missing_property_with_default(self):
        environment = make_environment({})
        assert environment.get_property("missing", "fallback") == "fallback"
        assert environment.get_property("missing", None) is None

    def test_empty_value_is_present(self):
        environment = make_environment({"a": ""}, defaults={"a": "local"})
        assert environment.contains("a")
        assert environment.get_property("a") == ""

    def test_snapshot(self):
        environment = make_environment({"a": "1"}, {"a": "2", "b": "3"}, defaults={"c": "4"})
        assert environment.snapshot() == {"a": "1", "b": "3", "c": "4"}


class TestPlaceholders:
    """`${key}` and `${key:default}` resolution."""

    def test_simple_reference(self):
        environment = make_environment({"greeting": "Hello from ${team}", "team": "Config Team"})
        assert environment.get_property("greeting") == "Hello from Config Team"

    def test_reference_with_default(self):
        environment = make_environment({"url": "http://${host:localhost}:${port:8888}"})
        assert environment.get_property("url") == "http://localhost:8888"

    def test_default_may_contain_separator(self):
        environment = make_environment({"url": "${config.uri:http://localhost:8888}"})
        assert environment.get_property("url") == "http://localhost:8888"

    def test_chained_references(self):
        environment = make_environment({"a": "${b}", "b": "${c}", "c": "end"})
        assert environment.get_property("a") == "end"

    def test_nested_placeholder_in_key(self):
        environment = make_environment({"env": "prod", "greeting.prod": "Hi prod", "g": "${greeting.${env}}"})
        assert environment.get_property("g") == "Hi prod"

    def test_nested_placeholder_in_default(self):
        environment = make_environment({"fallback": "backup", "g": "${missing:${fallback}}"})
        assert environment.get_property("g") == "backup"

    def test_unused_default_is_not_resolved(self):
        environment = make_environment({"present": "yes", "g": "${present:${missing}}"})
        assert environment.get_property("g") == "yes"

    def test_reference_into_defaults(self):
        environment = make_environment({"g": "Hello ${name}"}, defaults={"name": "local"})
        assert environment.get_property("g") == "Hello local"

    def test_unresolvable_reference(self):
        environment = make_environment({"g": "Hello ${nobody}"})
        with pytest.raises(PropertyResolutionError) as exc_info:
            environment.get_property("g")
        assert exc_info.value.key == "nobody"

    def test_circular_reference(self):
        environment = make_environment({"a": "${b}", "b": "${a}"})
        with pytest.raises(PropertyResolutionError) as exc_info:
            environment.get_property("a")
        assert "circular" in exc_info.value.reason

    def test_self_reference(self):
        environment = make_environment({"a": "x${a}"})
        with pytest.raises(PropertyResolutionError):
            environment.get_property("a")

    def test_same_reference_twice_is_not_a_cycle(self):
        environment = make_environment({"a": "${b}-${b}", "b": "x"})
        assert environment.get_property("a") == "x-x"

    def test_unterminated_placeholder_is_literal(self):
        environment = make_environment({"officialGreeting": "${officialGreeting"})
        assert environment.get_property("officialGreeting") == "${officialGreeting"

    def test_raw_value_is_untouched(self):
        environment = make_environment({"g": "Hello ${name}", "name": "x"})
        assert environment.get_raw("g") == "Hello ${name}"

    def test_resolve_arbitrary_text(self):
        environment = make_environment({"name": "x"})
        assert environment.resolve_placeholders("[${name}]") == "[x]"


class TestReplaceRemote:
    """Change detection when a new environment arrives."""

    def test_reports_changed_added_and_removed_keys(self):
        environment = make_environment({"same": "1", "changed": "old", "removed": "x"})

        changed = environment.replace_remote(
            [PropertySource("remote", {"same": "1", "changed": "new", "added": "y"})],
            version="v2",
        )

        assert changed == {"changed", "added", "removed"}
        assert environment.version == "v2"

    def test_no_changes(self):
        environment = make_environment({"a": "1"})
        changed = environment.replace_remote([PropertySource("other-name", {"a": "1"})], version="v1")
        assert changed == set()

    def test_removed_remote_key_falls_back_to_default(self):
        environment = make_environment({"a": "remote"}, defaults={"a": "local"})

        changed = environment.replace_remote([], version="v2")

        assert changed == {"a"}
        assert environment.get_property("a") == "local"

    def test_sources_are_copied(self):
        source = {"a": "1"}
        environment = PropertyEnvironment()
        environment.replace_remote([PropertySource("remote", source)])
        source["a"] = "mutated"

        assert environment.get_property("a") == "1"
