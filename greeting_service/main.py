"""
Greeting Service

FastAPI application that provides:
- GET /hello - official greeting taken from the config server
- POST /actuator/refresh - reload configuration without restarting
- GET /actuator/health, GET /actuator/env - operational views

Configuration is fetched from the config server at startup. Startup fails
when the greeting cannot be bound, or when the server is unreachable and
fail-fast is enabled.
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from common.exceptions import CloudConfigError
from common.logging_setup import get_service_logger

from .config.service import ConfigService
from .greeting import GREETING_BEAN, bind_greeting
from .routers import actuator, hello
from .settings import ClientSettings

logger = get_service_logger("client")

VERSION = "1.0.0"


# ============================================
# APPLICATION LIFESPAN
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup and shutdown events.

    Startup:
    - Fetch configuration (or fall back to cache/defaults)
    - Bind the greeting eagerly so misconfiguration stops the service

    Shutdown:
    - Stop polling, close the HTTP client
    """
    service: ConfigService = app.state.config_service
    settings = service.settings

    logger.info("=" * 50)
    logger.info("Starting Greeting Service...")
    logger.info(f"Application: {settings.application_name}")
    logger.info(f"Profiles: {','.join(settings.profiles)}")
    logger.info(f"Config server: {settings.uri} (fail-fast: {settings.fail_fast})")
    logger.info("=" * 50)

    try:
        await service.start()
        service.scope.get(GREETING_BEAN)
    except CloudConfigError as e:
        logger.critical(f"Greeting Service failed to start: {e}")
        await service.stop()
        raise

    logger.info(
        f"Greeting Service ready (config from {service.source}, version {service.environment.version})",
        extra={"source": service.source, "version": service.environment.version},
    )

    try:
        yield
    finally:
        logger.info("Shutting down Greeting Service...")
        await service.stop()


# ============================================
# CREATE APPLICATION
# ============================================

def create_app(
    settings: ClientSettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """
    Build the greeting service application.

    Args:
        settings: Client settings, loaded from the environment when None
        transport: HTTP transport used to reach the config server (tests)

    Returns:
        FastAPI application
    """
    settings = settings or ClientSettings()

    app = FastAPI(
        title="Greeting Service",
        description="Serves the official greeting published by the config server.",
        version=VERSION,
        lifespan=lifespan,
    )

    service = ConfigService(settings, transport=transport)
    service.scope.register(GREETING_BEAN, bind_greeting)
    app.state.config_service = service

    app.include_router(hello.router, tags=["Greeting"])
    app.include_router(actuator.router, tags=["Actuator"])

    return app
