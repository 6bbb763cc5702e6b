"""
Actuator Router

Operational endpoints:
- POST /actuator/refresh - re-fetch configuration, returns changed keys
- GET /actuator/health - service and config server state
- GET /actuator/env - property sources (sensitive values masked)
"""

import re

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from common.exceptions import ConfigError, ConfigFetchError, ConfigServerUnavailableError

from ..config.service import SOURCE_REMOTE, ConfigService
from ..greeting import GREETING_BEAN

router = APIRouter(prefix="/actuator")

# Whole words within the last key segment: "db-password", "api_key", "apiKey"; not "monkey"
SENSITIVE_KEY_RE = re.compile(r"(?:^|[_-])(?:password|secret|key|token|credentials?)$", re.IGNORECASE)
SENSITIVE_CAMEL_RE = re.compile(r"[a-z0-9](?:Password|Secret|Key|Token|Credentials?)$")
MASK = "******"


def get_config_service(request: Request) -> ConfigService:
    """Config service of the running app."""
    return request.app.state.config_service


def sanitize(key: str, value: str) -> str:
    """Mask values of keys that look like secrets."""
    # Only the last segment decides, so "officialGreeting" style keys pass
    last_segment = key.rsplit(".", 1)[-1]
    if SENSITIVE_KEY_RE.search(last_segment) or SENSITIVE_CAMEL_RE.search(last_segment):
        return MASK
    return value


@router.post("/refresh")
async def refresh(service: ConfigService = Depends(get_config_service)) -> list[str]:
    """
    Re-fetch configuration from the config server.

    Returns the keys whose values changed; refresh-scoped objects are
    rebuilt on their next use.
    """
    try:
        return await service.refresh()
    except ConfigServerUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    except ConfigFetchError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)


@router.get("/health")
def health(service: ConfigService = Depends(get_config_service)):
    """
    Health of the service.

    DOWN (HTTP 503) when the greeting cannot be bound. The config server
    component reports the outcome of the latest fetch.
    """
    refresher = service.refresher

    try:
        service.scope.get(GREETING_BEAN)
        greeting = {"status": "UP"}
    except ConfigError as e:
        greeting = {"status": "DOWN", "details": {"error": e.message}}

    if refresher.last_error:
        server_status = "DOWN"
    elif service.source == SOURCE_REMOTE:
        server_status = "UP"
    else:
        server_status = "UNKNOWN"

    config_server = {
        "status": server_status,
        "details": {
            "uri": service.settings.uri,
            "source": service.source,
            "version": service.environment.version,
            "lastRefreshAt": refresher.last_refresh_at.isoformat() if refresher.last_refresh_at else None,
            "lastError": refresher.last_error,
        },
    }

    overall = "UP" if greeting["status"] == "UP" else "DOWN"
    body = {
        "status": overall,
        "components": {
            "greeting": greeting,
            "configServer": config_server,
        },
    }
    status_code = status.HTTP_200_OK if overall == "UP" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(body, status_code=status_code)


@router.get("/env")
def env(service: ConfigService = Depends(get_config_service)):
    """Active profiles, version and every property source, most specific first."""
    environment = service.environment
    return {
        "activeProfiles": environment.profiles,
        "label": environment.label,
        "version": environment.version,
        "propertySources": [
            {
                "name": ps.name,
                "properties": {
                    key: {"value": sanitize(key, value)}
                    for key, value in ps.source.items()
                },
            }
            for ps in environment.property_sources
        ],
    }
