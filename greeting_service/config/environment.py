"""
Property Environment

Ordered property sources seen by the running service:
remote sources from the config server (most specific first), then the
local defaults from the bootstrap file.

Values may reference other properties with `${key}` or `${key:default}`;
references are resolved on read.
"""

import threading

from common.exceptions import PropertyNotFoundError, PropertyResolutionError
from common.properties import PropertyMap, PropertySource

LOCAL_DEFAULTS = "local:defaults"
PLACEHOLDER_PREFIX = "${"
PLACEHOLDER_SUFFIX = "}"
VALUE_SEPARATOR = ":"

MISSING = object()


def _find_placeholder_end(text: str, start: int) -> int:
    """Index of the `}` closing the placeholder whose body starts at `start`, or -1"""
    depth = 1
    i = start
    while i < len(text):
        if text.startswith(PLACEHOLDER_PREFIX, i):
            depth += 1
            i += len(PLACEHOLDER_PREFIX)
            continue
        if text[i] == PLACEHOLDER_SUFFIX:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _split_default(body: str) -> tuple[str, str | None]:
    """Split `key:default` on the first separator outside nested placeholders"""
    depth = 0
    i = 0
    while i < len(body):
        if body.startswith(PLACEHOLDER_PREFIX, i):
            depth += 1
            i += len(PLACEHOLDER_PREFIX)
            continue
        char = body[i]
        if char == PLACEHOLDER_SUFFIX and depth:
            depth -= 1
        elif char == VALUE_SEPARATOR and depth == 0:
            return body[:i], body[i + 1:]
        i += 1
    return body, None


class PropertyEnvironment:
    """Thread-safe, layered view over remote and local properties"""

    def __init__(
        self,
        defaults: PropertyMap | None = None,
        profiles: list[str] | None = None,
    ):
        self._lock = threading.RLock()
        self._remote: list[PropertySource] = []
        self._defaults = PropertySource(name=LOCAL_DEFAULTS, source=dict(defaults or {}))

        self.profiles = list(profiles or [])
        self.label: str | None = None
        self.version: str | None = None

    @property
    def property_sources(self) -> list[PropertySource]:
        """All sources in precedence order"""
        with self._lock:
            return [*self._remote, self._defaults]

    def _raw(self, key: str) -> str | None:
        for property_source in self.property_sources:
            if key in property_source.source:
                return property_source.source[key]
        return None

    def contains(self, key: str) -> bool:
        """Whether any source defines the key"""
        return self._raw(key) is not None

    def get_raw(self, key: str) -> str | None:
        """Value as written in the winning source, placeholders untouched"""
        return self._raw(key)

    def get_property(self, key: str, default=MISSING) -> str:
        """
        Get a property with placeholders resolved.

        Args:
            key: Property key
            default: Returned when no source has the key

        Raises:
            PropertyNotFoundError: Key missing and no default given
            PropertyResolutionError: A referenced property is missing or circular
        """
        raw = self._raw(key)
        if raw is None:
            if default is MISSING:
                raise PropertyNotFoundError(key)
            return default
        return self._resolve(raw, (key,))

    def resolve_placeholders(self, text: str) -> str:
        """Resolve `${...}` references in arbitrary text"""
        return self._resolve(text, ())

    def _resolve(self, text: str, visiting: tuple[str, ...]) -> str:
        result: list[str] = []
        i = 0

        while True:
            start = text.find(PLACEHOLDER_PREFIX, i)
            if start == -1:
                result.append(text[i:])
                break

            end = _find_placeholder_end(text, start + len(PLACEHOLDER_PREFIX))
            if end == -1:
                # Unterminated: keep the rest as literal text
                result.append(text[i:])
                break

            result.append(text[i:start])
            body = text[start + len(PLACEHOLDER_PREFIX):end]
            key_text, default = _split_default(body)
            key = self._resolve(key_text, visiting)

            if key in visiting:
                chain = " -> ".join((*visiting, key))
                raise PropertyResolutionError(key, f"circular reference ({chain})")

            raw = self._raw(key)
            if raw is not None:
                result.append(self._resolve(raw, (*visiting, key)))
            elif default is not None:
                result.append(self._resolve(default, visiting))
            else:
                raise PropertyResolutionError(key, "no such property")

            i = end + len(PLACEHOLDER_SUFFIX)

        return "".join(result)

    def snapshot(self) -> PropertyMap:
        """Merged raw properties; the first source holding a key wins"""
        result: PropertyMap = {}
        for property_source in self.property_sources:
            for key, value in property_source.source.items():
                result.setdefault(key, value)
        return result

    def replace_remote(
        self,
        property_sources: list[PropertySource],
        version: str | None = None,
        label: str | None = None,
    ) -> set[str]:
        """
        Swap in a new set of remote property sources.

        Args:
            property_sources: Sources from the server, most specific first
            version: Server version of these sources
            label: Server label of these sources

        Returns:
            Keys that were added, removed or changed
        """
        with self._lock:
            before = self.snapshot()
            self._remote = [PropertySource(ps.name, dict(ps.source)) for ps in property_sources]
            self.version = version
            self.label = label
            after = self.snapshot()

        return {
            key for key in before.keys() | after.keys()
            if before.get(key) != after.get(key)
        }
