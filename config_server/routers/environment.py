"""
Environment Router

Serves configuration to clients:
- GET /{application}/{profiles}[/{label}] - environment as JSON
- GET [/{label}]/{application}-{profiles}.properties|yml|yaml|json - merged document
"""

import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from common.exceptions import (
    CloudConfigError,
    InvalidRequestError,
    LabelNotFoundError,
    PropertySourceError,
)
from common.logging_setup import get_service_logger
from common.properties import render_json, render_properties, render_yaml

from ..services.repository import Environment, EnvironmentRepository, merged

logger = get_service_logger("server.api")

router = APIRouter()

# {name}-{profiles}.{ext}; the name takes everything up to the last hyphen
DOCUMENT_RE = re.compile(r"^(?P<name>.+)-(?P<profiles>[^-]+)\.(?P<ext>properties|yml|yaml|json)$")


# ============================================
# SCHEMAS
# ============================================

class PropertySourceResponse(BaseModel):
    """One property file."""
    name: str
    source: dict[str, str]


class EnvironmentResponse(BaseModel):
    """Environment for an application, profiles and label."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    profiles: list[str]
    label: Optional[str] = None
    version: Optional[str] = None
    state: Optional[str] = None
    property_sources: list[PropertySourceResponse] = Field(
        default_factory=list,
        alias="propertySources",
    )


# ============================================
# HELPER FUNCTIONS
# ============================================

def get_repository(request: Request) -> EnvironmentRepository:
    """Repository attached to the running app."""
    return request.app.state.repository


def environment_to_response(environment: Environment) -> EnvironmentResponse:
    """Convert repository Environment to EnvironmentResponse."""
    return EnvironmentResponse(
        name=environment.name,
        profiles=environment.profiles,
        label=environment.label,
        version=environment.version,
        state=environment.state,
        property_sources=[
            PropertySourceResponse(name=ps.name, source=ps.source)
            for ps in environment.property_sources
        ],
    )


def _find(
    repository: EnvironmentRepository,
    application: str,
    profiles: str,
    label: str | None,
) -> Environment:
    """Look up an environment, translating domain errors to HTTP errors."""
    try:
        return repository.find_one(application, profiles, label)
    except LabelNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except InvalidRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except PropertySourceError as e:
        logger.error(f"Failed to load property source: {e}", extra={"source": e.source})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)
    except CloudConfigError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)


def _render_document(
    repository: EnvironmentRepository,
    document: str,
    label: str | None,
) -> Response:
    match = DOCUMENT_RE.match(document)
    if not match:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Not found: {document}")

    environment = _find(repository, match["name"], match["profiles"], label)
    properties = merged(environment)

    ext = match["ext"]
    if ext == "properties":
        return PlainTextResponse(render_properties(properties))
    if ext in ("yml", "yaml"):
        return PlainTextResponse(render_yaml(properties))
    return Response(render_json(properties), media_type="application/json")


# ============================================
# ENDPOINTS
# ============================================

@router.get("/{document}")
def get_document(
    document: str,
    repository: EnvironmentRepository = Depends(get_repository),
):
    """Merged configuration as a .properties, YAML or JSON document."""
    return _render_document(repository, document, None)


@router.get("/{application}/{profiles}", response_model=EnvironmentResponse)
def get_environment(
    application: str,
    profiles: str,
    repository: EnvironmentRepository = Depends(get_repository),
):
    """
    Environment for an application and comma-separated profiles.

    `/{label}/{application}-{profiles}.{ext}` shares this shape and is
    served as a labelled document.
    """
    if DOCUMENT_RE.match(profiles):
        return _render_document(repository, profiles, application)

    return environment_to_response(_find(repository, application, profiles, None))


@router.get("/{application}/{profiles}/{label}", response_model=EnvironmentResponse)
def get_labelled_environment(
    application: str,
    profiles: str,
    label: str,
    repository: EnvironmentRepository = Depends(get_repository),
):
    """Environment for an application, profiles and label."""
    return environment_to_response(_find(repository, application, profiles, label))
