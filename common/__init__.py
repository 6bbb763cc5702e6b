"""
Common Utilities

Shared modules used by the config server and the greeting service:
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
- properties.py - Property file parsing and rendering
"""

from .exceptions import (
    CloudConfigError,
    ConfigError,
    PropertyNotFoundError,
    PropertyResolutionError,
    PropertySourceError,
    RepositoryError,
    LabelNotFoundError,
    InvalidRequestError,
    SyncError,
    ConfigServerUnavailableError,
    ConfigFetchError,
)
from .logging_setup import (
    setup_logging,
    get_service_logger,
    set_log_level,
    log_refresh,
    log_fetch,
)
from .properties import (
    PropertyMap,
    PropertySource,
    parse_properties,
    parse_yaml,
    parse_json,
    render_properties,
    render_yaml,
    render_json,
    load_property_file,
)

__all__ = [
    # Exceptions
    "CloudConfigError",
    "ConfigError",
    "PropertyNotFoundError",
    "PropertyResolutionError",
    "PropertySourceError",
    "RepositoryError",
    "LabelNotFoundError",
    "InvalidRequestError",
    "SyncError",
    "ConfigServerUnavailableError",
    "ConfigFetchError",
    # Logging
    "setup_logging",
    "get_service_logger",
    "set_log_level",
    "log_refresh",
    "log_fetch",
    # Properties
    "PropertyMap",
    "PropertySource",
    "parse_properties",
    "parse_yaml",
    "parse_json",
    "render_properties",
    "render_yaml",
    "render_json",
    "load_property_file",
]
