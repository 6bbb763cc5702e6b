"""
Config Client - Configuration Management

Responsibilities:
- Fetch configuration from the config server
- Maintain local cache for offline startup
- Version tracking and change detection
- Rebuild refresh-scoped objects when configuration changes
"""

from .cache import ConfigCache
from .environment import PropertyEnvironment
from .refresh import ContextRefresher, RefreshScope
from .service import ConfigService
from .sync import ConfigClient, RemoteEnvironment

__all__ = [
    "ConfigCache",
    "ConfigClient",
    "ConfigService",
    "ContextRefresher",
    "PropertyEnvironment",
    "RefreshScope",
    "RemoteEnvironment",
]
