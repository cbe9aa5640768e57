"""Health check API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from fintable.core.config import Settings
from fintable.dependencies import get_settings
from fintable.schemas.responses import HealthCheckResponse
from fintable.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=HealthCheckResponse,
    tags=["Health"],
    summary="Health check endpoint",
    description="Check if the service is running and whether the Gemini API key is configured",
    operation_id="get_service_health_status",
)
async def health_check(app_settings: Annotated[Settings, Depends(get_settings)]) -> HealthCheckResponse:
    """Health check endpoint."""
    api_key_configured = bool(app_settings.gemini_api_key.strip())
    if not api_key_configured:
        LOGGER.warning("Health check: GEMINI_API_KEY is not configured")

    return HealthCheckResponse(
        status="healthy" if api_key_configured else "degraded",
        version=app_settings.app_version,
        service=app_settings.app_name,
        model=app_settings.gemini_model,
        api_key_configured=api_key_configured,
    )
