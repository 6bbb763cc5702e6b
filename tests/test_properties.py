"""Tests for property file parsing and rendering."""

from pathlib import Path

import pytest

from common.exceptions import PropertySourceError
from common.properties import (
    flatten,
    load_property_file,
    parse_json,
    parse_properties,
    parse_yaml,
    render_json,
    render_properties,
    render_yaml,
    unflatten,
)


class TestParseProperties:
    """`.properties` syntax."""

    def test_separators(self):
        text = "a=1\nb: 2\nc 3\nd   =   4\n"
        assert parse_properties(text) == {"a": "1", "b": "2", "c": "3", "d": "4"}

    def test_comments_and_blank_lines(self):
        text = "# comment\n! also a comment\n\n   \nkey=value\n"
        assert parse_properties(text) == {"key": "value"}

    def test_key_only_maps_to_empty_string(self):
        assert parse_properties("flag\n") == {"flag": ""}

    def test_value_keeps_inner_and_trailing_spaces(self):
        assert parse_properties("greeting = Hello  there  \n") == {"greeting": "Hello  there  "}

    def test_value_may_contain_separators(self):
        assert parse_properties("url=http://host:8888/a=b\n") == {"url": "http://host:8888/a=b"}

    def test_continuation_lines(self):
        text = "fruits = apple, \\\n         banana, \\\n         cherry\n"
        assert parse_properties(text) == {"fruits": "apple, banana, cherry"}

    def test_even_backslashes_do_not_continue(self):
        text = "path=C:\\\\\nnext=1\n"
        assert parse_properties(text) == {"path": "C:\\", "next": "1"}

    def test_escapes(self):
        text = "tab=a\\tb\nnewline=a\\nb\nunicode=caf\\u00e9\nkey\\ with\\ spaces=x\nhash=\\#notcomment\n"
        assert parse_properties(text) == {
            "tab": "a\tb",
            "newline": "a\nb",
            "unicode": "café",
            "key with spaces": "x",
            "hash": "#notcomment",
        }

    def test_escaped_separator_in_key(self):
        assert parse_properties("a\\=b=c\n") == {"a=b": "c"}

    def test_later_duplicate_wins(self):
        assert parse_properties("a=1\na=2\n") == {"a": "2"}

    def test_malformed_unicode_escape(self):
        with pytest.raises(PropertySourceError) as exc_info:
            parse_properties("bad=\\u12G4\n", source="bad.properties")
        assert exc_info.value.source == "bad.properties"

    def test_comment_marker_inside_continuation_is_data(self):
        text = "a=1 \\\n# not a comment\n"
        assert parse_properties(text) == {"a": "1 # not a comment"}


class TestYamlAndJson:
    """Flattening of structured documents."""

    def test_nested_yaml_is_flattened(self):
        text = "spring:\n  application:\n    name: demo\nservers:\n  - a\n  - b\nenabled: true\nempty:\n"
        assert parse_yaml(text) == {
            "spring.application.name": "demo",
            "servers[0]": "a",
            "servers[1]": "b",
            "enabled": "true",
            "empty": "",
        }

    def test_multi_document_yaml_merges_in_order(self):
        text = "a: 1\nb: 2\n---\nb: 3\n"
        assert parse_yaml(text) == {"a": "1", "b": "3"}

    def test_yaml_top_level_must_be_mapping(self):
        with pytest.raises(PropertySourceError):
            parse_yaml("- a\n- b\n")

    def test_invalid_yaml(self):
        with pytest.raises(PropertySourceError):
            parse_yaml("a: [1, 2\n")

    def test_json_flattened(self):
        assert parse_json('{"a": {"b": 1.5, "c": null}, "d": [{"e": false}]}') == {
            "a.b": "1.5",
            "a.c": "",
            "d[0].e": "false",
        }

    def test_json_must_be_object(self):
        with pytest.raises(PropertySourceError):
            parse_json("[1, 2]")

    def test_empty_collections_flatten_to_empty_string(self):
        assert flatten({"a": {}, "b": []}) == {"a": "", "b": ""}


class TestRendering:
    """Documents served by the config server."""

    def test_render_properties_escapes(self):
        text = render_properties({"plain": "value", "key with space": " leading", "multi": "a\nb"})
        assert text == "plain=value\nkey\\ with\\ space=\\ leading\nmulti=a\\nb\n"

    def test_render_properties_is_readable_back(self):
        properties = {"a": "1", "b=c": "x:y", "d": "\\path", "e": "#hash"}
        assert parse_properties(render_properties(properties)) == properties

    def test_unflatten_builds_lists_and_mappings(self):
        assert unflatten({"a.b": "1", "a.c[0]": "x", "a.c[1]": "y", "d": "2"}) == {
            "a": {"b": "1", "c": ["x", "y"]},
            "d": "2",
        }

    def test_unflatten_conflict_keeps_deeper_key_flat(self):
        assert unflatten({"a": "1", "a.b": "2"}) == {"a": "1", "a.b": "2"}

    def test_unflatten_conflict_with_parent_after_children(self):
        assert unflatten({"a.b": "2", "a.c[0]": "x", "a": "1"}) == {"a": "1", "a.b": "2", "a.c[0]": "x"}

    def test_unflatten_nested_conflict_is_relative_to_its_mapping(self):
        assert unflatten({"x.a.b": "2", "x.a": "1"}) == {"x": {"a": "1", "a.b": "2"}}
        assert unflatten({"x.a": "1", "x.a.b": "2"}) == {"x": {"a": "1", "a.b": "2"}}

    def test_render_yaml_keeps_every_conflicting_key(self):
        properties = {"server.port": "8080", "server": "x"}
        assert parse_yaml(render_yaml(properties)) == properties

    def test_render_yaml_nests_keys(self):
        text = render_yaml({"server.port": "8080", "server.host": "localhost"})
        assert parse_yaml(text) == {"server.port": "8080", "server.host": "localhost"}
        assert text.startswith("server:\n")

    def test_render_yaml_empty(self):
        assert render_yaml({}) == "{}\n"

    def test_render_json_nests_keys(self):
        assert parse_json(render_json({"a.b": "1"})) == {"a.b": "1"}


class TestLoadPropertyFile:
    """Suffix dispatch."""

    def test_dispatch_by_suffix(self, tmp_path: Path):
        (tmp_path / "a.properties").write_text("x=1\n")
        (tmp_path / "b.yml").write_text("x: 2\n")
        (tmp_path / "c.json").write_text('{"x": 3}')

        assert load_property_file(tmp_path / "a.properties") == {"x": "1"}
        assert load_property_file(tmp_path / "b.yml") == {"x": "2"}
        assert load_property_file(tmp_path / "c.json") == {"x": "3"}

    def test_unsupported_suffix(self, tmp_path: Path):
        path = tmp_path / "a.ini"
        path.write_text("[section]\n")
        with pytest.raises(PropertySourceError):
            load_property_file(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(PropertySourceError):
            load_property_file(tmp_path / "missing.properties")
