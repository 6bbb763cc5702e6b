"""
Hello Router

GET /hello - the current official greeting, as plain text
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from common.exceptions import ConfigError

from ..config.refresh import RefreshScope
from ..greeting import GREETING_BEAN, GreetingProperties

router = APIRouter()


def get_refresh_scope(request: Request) -> RefreshScope:
    """Refresh scope of the running app."""
    return request.app.state.config_service.scope


@router.get("/hello", response_class=PlainTextResponse)
def hello_cloud(scope: RefreshScope = Depends(get_refresh_scope)) -> str:
    """Return the official greeting from the config server."""
    try:
        greeting: GreetingProperties = scope.get(GREETING_BEAN)
    except ConfigError as e:
        # Happens when a refresh removed or broke the property
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)

    return greeting.official_greeting
