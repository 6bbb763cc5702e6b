"""
Cloud Config Server

Serves configuration files from a directory to client services over HTTP.
"""

from .main import create_app
from .services.repository import Environment, EnvironmentRepository, merged

__all__ = ["create_app", "Environment", "EnvironmentRepository", "merged"]
