"""
Cloud Config Server

FastAPI application that provides:
- Environments per application, profile and label (JSON)
- Merged configuration documents (.properties, YAML, JSON)
- Health check

Configuration files are read from a directory (the config repo) on every
request, so edits are visible to clients on their next fetch or refresh.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI

from common.logging_setup import get_service_logger

from .routers import environment
from .services.repository import EnvironmentRepository
from .settings import ServerSettings, get_settings

logger = get_service_logger("server")

SERVICE_NAME = "config-server"
VERSION = "1.0.0"


# ============================================
# APPLICATION LIFESPAN
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and shutdown of the config server."""
    settings: ServerSettings = app.state.settings

    logger.info("=" * 50)
    logger.info("Starting Config Server...")
    logger.info(f"Config repository: {settings.repo_dir.resolve()}")
    logger.info(f"Default label: {settings.default_label}")
    logger.info("=" * 50)

    yield

    logger.info("Shutting down Config Server...")


# ============================================
# CREATE APPLICATION
# ============================================

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """
    Build the config server application.

    Args:
        settings: Server settings, loaded from the environment when None

    Returns:
        FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Cloud Config Server",
        description="Serves versioned configuration files to client services over HTTP.",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.repository = EnvironmentRepository(settings.repo_dir, settings.default_label)
    app.state.started_at = datetime.now(timezone.utc)

    # Registered before the environment router so "/health" is not read as a document name
    @app.get("/", tags=["Health"])
    async def root():
        """Basic service information."""
        return {
            "name": SERVICE_NAME,
            "version": VERSION,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check including repository availability."""
        repo_ok = settings.repo_dir.is_dir()
        uptime = (datetime.now(timezone.utc) - app.state.started_at).total_seconds()
        return {
            "status": "healthy" if repo_ok else "degraded",
            "service": SERVICE_NAME,
            "repository": str(settings.repo_dir),
            "repository_available": repo_ok,
            "uptime": int(uptime),
            "version": VERSION,
        }

    app.include_router(environment.router, tags=["Environment"])

    return app
