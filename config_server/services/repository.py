"""
Environment Repository

Serves configuration from a directory of property files.

For an application `app` with profiles `p1,p2` the repository looks for
(most specific first):
    app-p2.*, application-p2.*, app-p1.*, application-p1.*, app.*, application.*
where `*` is one of properties, yml, yaml, json.

A label selects a subdirectory of the repository. The default label also
matches the repository root.
"""

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path

from common.exceptions import InvalidRequestError, LabelNotFoundError
from common.logging_setup import get_service_logger
from common.properties import (
    PropertyMap,
    PropertySource,
    SUPPORTED_SUFFIXES,
    load_property_file,
)

logger = get_service_logger("server.repository")

SHARED_APPLICATION = "application"
DEFAULT_PROFILE = "default"


@dataclass
class Environment:
    """Everything the server knows about one application/profile/label"""
    name: str
    profiles: list[str]
    label: str | None = None
    version: str | None = None
    state: str | None = None
    property_sources: list[PropertySource] = field(default_factory=list)


def split_names(value: str | None) -> list[str]:
    """Split a comma-separated name list, dropping blanks"""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def compute_version(property_sources: list[PropertySource]) -> str:
    """Stable hash of property source contents, used by clients to detect changes"""
    content = [{"name": ps.name, "source": ps.source} for ps in property_sources]
    content_str = json.dumps(content, sort_keys=True)
    return hashlib.md5(content_str.encode()).hexdigest()


def merged(environment: Environment) -> PropertyMap:
    """Flatten property sources into one map; the first source holding a key wins"""
    result: PropertyMap = {}
    for property_source in environment.property_sources:
        for key, value in property_source.source.items():
            result.setdefault(key, value)
    return result


class EnvironmentRepository:
    """Directory-backed configuration repository"""

    def __init__(self, repo_dir: Path, default_label: str = "main"):
        self.repo_dir = Path(repo_dir)
        self.default_label = default_label

        if not self.repo_dir.is_dir():
            logger.warning(f"Config repository not found: {self.repo_dir}")

    def _check_name(self, kind: str, name: str) -> None:
        if not name or "/" in name or "\\" in name or ".." in name:
            raise InvalidRequestError(f"Invalid {kind} name: {name!r}")

    def _resolve_label(self, label: str | None) -> Path:
        label = label or self.default_label
        self._check_name("label", label)

        candidate = self.repo_dir / label
        if candidate.is_dir():
            return candidate
        if label == self.default_label:
            return self.repo_dir

        raise LabelNotFoundError(label)

    def _candidate_basenames(self, applications: list[str], profiles: list[str]) -> list[str]:
        basenames: list[str] = []

        for profile in reversed(profiles):
            for application in applications:
                basenames.append(f"{application}-{profile}")
            basenames.append(f"{SHARED_APPLICATION}-{profile}")

        basenames.extend(applications)
        basenames.append(SHARED_APPLICATION)

        # Keep first occurrence (e.g. when the application is itself "application")
        return list(dict.fromkeys(basenames))

    def find_one(
        self,
        application: str,
        profiles: str | None = None,
        label: str | None = None,
    ) -> Environment:
        """
        Build the environment for an application.

        Args:
            application: Application name (comma-separated list allowed)
            profiles: Comma-separated profiles, "default" when empty
            label: Repository label, default label when None

        Returns:
            Environment with property sources most specific first

        Raises:
            InvalidRequestError: A name contains path separators
            LabelNotFoundError: Unknown label
            PropertySourceError: A matching file is malformed
        """
        applications = split_names(application)
        profile_list = split_names(profiles) or [DEFAULT_PROFILE]

        if not applications:
            raise InvalidRequestError("Application name is required")
        for name in applications:
            self._check_name("application", name)
        for name in profile_list:
            self._check_name("profile", name)

        base_dir = self._resolve_label(label)

        property_sources: list[PropertySource] = []
        for basename in self._candidate_basenames(applications, profile_list):
            for suffix in SUPPORTED_SUFFIXES:
                path = base_dir / f"{basename}{suffix}"
                if not path.is_file():
                    continue
                relative = path.relative_to(self.repo_dir).as_posix()
                property_sources.append(
                    PropertySource(name=f"file:{relative}", source=load_property_file(path))
                )

        environment = Environment(
            name=",".join(applications),
            profiles=profile_list,
            label=label,
            version=compute_version(property_sources),
            property_sources=property_sources,
        )

        logger.debug(
            f"Resolved {environment.name}/{','.join(profile_list)}: "
            f"{len(property_sources)} property source(s)",
            extra={"application": environment.name, "label": label, "version": environment.version},
        )

        return environment
