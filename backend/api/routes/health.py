"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from modules.auth.interfaces import IAuthService
from shared.config import get_settings

from ..dependencies import get_auth_service

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    database: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=get_settings().app_version)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(service: IAuthService = Depends(get_auth_service)):
    """
    Readiness check endpoint.

    Returns 503 while the credential store cannot be reached.
    """
    if await service.check_store():
        return ReadinessResponse(status="ready", database="connected")
    return JSONResponse(
        status_code=503,
        content=ReadinessResponse(status="not_ready", database="unavailable").model_dump(),
    )
