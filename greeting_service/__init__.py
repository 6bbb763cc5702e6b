"""
Greeting Service

Client service that reads its official greeting from the config server
and can reload it at runtime.
"""

from .main import create_app
from .settings import ClientSettings, load_client_settings

__all__ = ["create_app", "ClientSettings", "load_client_settings"]
