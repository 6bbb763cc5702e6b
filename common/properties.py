"""
Property Source Codecs

Reads and writes the flat key/value maps that travel between the config
server and its clients:
- `.properties` files (key=value, key: value, continuation lines, escapes)
- YAML and JSON documents, flattened into dotted keys (`a.b.c`, `list[0]`)
"""

import json
import re
import string
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from .exceptions import PropertySourceError

PropertyMap = dict[str, str]


@dataclass
class PropertySource:
    """One named, ordered map of properties (typically one file)"""
    name: str
    source: PropertyMap = field(default_factory=dict)


PROPERTIES_SUFFIXES = (".properties",)
YAML_SUFFIXES = (".yml", ".yaml")
JSON_SUFFIXES = (".json",)
SUPPORTED_SUFFIXES = PROPERTIES_SUFFIXES + YAML_SUFFIXES + JSON_SUFFIXES

_WHITESPACE = " \t\f"
_SEPARATORS = "=:"
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_SEGMENT_RE = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")
_INDEX_RE = re.compile(r"\[(\d+)\]")


# ============================================
# .properties
# ============================================

def _ends_with_continuation(line: str) -> bool:
    """A line continues when it ends in an odd number of backslashes"""
    count = len(line) - len(line.rstrip("\\"))
    return count % 2 == 1


def _logical_lines(text: str):
    pending: str | None = None

    for raw in text.splitlines():
        line = raw.lstrip(_WHITESPACE)

        # Comments and blank lines only count at the start of a logical line
        if pending is None and (not line or line[0] in "#!"):
            continue

        if _ends_with_continuation(line):
            pending = (pending or "") + line[:-1]
            continue

        yield (pending or "") + line
        pending = None

    if pending is not None:
        yield pending


def _split_key_value(line: str) -> tuple[str, str]:
    escaped = False
    for index, char in enumerate(line):
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
            continue
        if char in _SEPARATORS or char in _WHITESPACE:
            key, rest = line[:index], line[index:]
            break
    else:
        return line, ""

    rest = rest.lstrip(_WHITESPACE)
    if rest and rest[0] in _SEPARATORS:
        rest = rest[1:].lstrip(_WHITESPACE)
    return key, rest


def _unescape(text: str, source: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char != "\\":
            out.append(char)
            i += 1
            continue

        i += 1
        if i >= len(text):
            break

        char = text[i]
        if char == "u":
            digits = text[i + 1:i + 5]
            if len(digits) != 4 or any(d not in string.hexdigits for d in digits):
                raise PropertySourceError(source, f"malformed \\uxxxx encoding near '\\u{digits}'")
            out.append(chr(int(digits, 16)))
            i += 5
        else:
            out.append(_ESCAPES.get(char, char))
            i += 1

    return "".join(out)


def parse_properties(text: str, source: str = "<string>") -> PropertyMap:
    """
    Parse `.properties` text into an ordered key/value map.

    Later duplicates override earlier ones, but keep the original position.

    Args:
        text: File contents
        source: Name used in error messages

    Returns:
        Flat property map
    """
    properties: PropertyMap = {}
    for line in _logical_lines(text):
        raw_key, raw_value = _split_key_value(line)
        properties[_unescape(raw_key, source)] = _unescape(raw_value, source)
    return properties


def _escape(text: str, is_key: bool) -> str:
    out: list[str] = []
    for index, char in enumerate(text):
        if char == "\\":
            out.append("\\\\")
        elif char == "\t":
            out.append("\\t")
        elif char == "\n":
            out.append("\\n")
        elif char == "\r":
            out.append("\\r")
        elif char == "\f":
            out.append("\\f")
        elif char == " " and (is_key or index == 0):
            out.append("\\ ")
        elif char in "=:#!" and (is_key or index == 0):
            out.append("\\" + char)
        else:
            out.append(char)
    return "".join(out)


def render_properties(properties: Mapping[str, str]) -> str:
    """Render a property map as `.properties` text (UTF-8, one key per line)"""
    lines = [f"{_escape(key, True)}={_escape(value, False)}" for key, value in properties.items()]
    return "\n".join(lines) + ("\n" if lines else "")


# ============================================
# YAML / JSON
# ============================================

def _scalar_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def flatten(data: Any, prefix: str = "") -> PropertyMap:
    """
    Flatten nested mappings and lists into dotted keys.

    `{"a": {"b": [1, 2]}}` becomes `{"a.b[0]": "1", "a.b[1]": "2"}`.
    Empty mappings and lists map to an empty string.
    """
    result: PropertyMap = {}

    if isinstance(data, Mapping):
        if not data and prefix:
            result[prefix] = ""
        for key, value in data.items():
            child = f"{prefix}.{key}" if prefix else str(key)
            result.update(flatten(value, child))
    elif isinstance(data, list):
        if not data and prefix:
            result[prefix] = ""
        for index, value in enumerate(data):
            result.update(flatten(value, f"{prefix}[{index}]"))
    else:
        result[prefix] = _scalar_to_str(data)

    return result


def parse_yaml(text: str, source: str = "<string>") -> PropertyMap:
    """Parse (possibly multi-document) YAML into a flat property map"""
    properties: PropertyMap = {}
    try:
        for document in yaml.safe_load_all(text):
            if document is None:
                continue
            if not isinstance(document, Mapping):
                raise PropertySourceError(source, "top-level YAML value must be a mapping")
            properties.update(flatten(document))
    except yaml.YAMLError as e:
        raise PropertySourceError(source, str(e)) from e
    return properties


def parse_json(text: str, source: str = "<string>") -> PropertyMap:
    """Parse a JSON object into a flat property map"""
    try:
        document = json.loads(text) if text.strip() else {}
    except json.JSONDecodeError as e:
        raise PropertySourceError(source, str(e)) from e

    if not isinstance(document, Mapping):
        raise PropertySourceError(source, "top-level JSON value must be an object")
    return flatten(document)


def _path_for(key: str) -> list[str | int]:
    path: list[str | int] = []
    for segment in key.split("."):
        match = _SEGMENT_RE.match(segment)
        if not match:
            path.append(segment)
            continue
        name, indices = match.groups()
        if name:
            path.append(name)
        path.extend(int(i) for i in _INDEX_RE.findall(indices))
    return path


def _listify(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    converted = {k: _listify(v) for k, v in node.items()}
    if converted and all(isinstance(k, int) for k in converted):
        if sorted(converted) == list(range(len(converted))):
            return [converted[i] for i in range(len(converted))]
    return {str(k): v for k, v in converted.items()}


def _key_for(path: list[str | int]) -> str:
    key = ""
    for part in path:
        if isinstance(part, int):
            key += f"[{part}]"
        else:
            key = f"{key}.{part}" if key else part
    return key


def _leaves(node: Any, path: tuple = ()):
    if isinstance(node, dict):
        for part, child in node.items():
            yield from _leaves(child, (*path, part))
    else:
        yield list(path), node


def unflatten(properties: Mapping[str, str]) -> dict[str, Any]:
    """
    Rebuild a nested structure from dotted keys.

    When a key is both a value and a parent (`a=1`, `a.b=2`), the value
    stays nested and the deeper keys are kept flat beside it, whatever
    order the keys come in.
    """
    root: dict = {}
    for key, value in properties.items():
        path = _path_for(key) or [key]
        node = root
        for depth, part in enumerate(path[:-1]):
            child = node.get(part)
            if child is None:
                child = node[part] = {}
            if not isinstance(child, dict):
                node[_key_for(path[depth:])] = value
                break
            node = child
        else:
            last = path[-1]
            existing = node.get(last)
            node[last] = value
            if isinstance(existing, dict):
                for subpath, leaf in _leaves(existing):
                    node[_key_for([last, *subpath])] = leaf
    return _listify(root)


def render_yaml(properties: Mapping[str, str]) -> str:
    """Render a property map as nested YAML"""
    if not properties:
        return "{}\n"
    return yaml.safe_dump(
        unflatten(properties),
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )


def render_json(properties: Mapping[str, str]) -> str:
    """Render a property map as nested JSON"""
    return json.dumps(unflatten(properties), indent=2, ensure_ascii=False)


# ============================================
# FILES
# ============================================

def load_property_file(path: Path) -> PropertyMap:
    """
    Load a property file, choosing the codec from its suffix.

    Raises:
        PropertySourceError: Unsupported suffix, unreadable or malformed file
    """
    suffix = path.suffix.lower()
    source = str(path)

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PropertySourceError(source, str(e)) from e

    if suffix in PROPERTIES_SUFFIXES:
        return parse_properties(text, source)
    if suffix in YAML_SUFFIXES:
        return parse_yaml(text, source)
    if suffix in JSON_SUFFIXES:
        return parse_json(text, source)

    raise PropertySourceError(source, f"unsupported file type '{suffix}'")
