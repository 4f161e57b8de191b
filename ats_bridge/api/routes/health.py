"""
Health check and system info routes
"""
from fastapi import APIRouter
from datetime import datetime, timezone

from ats_bridge.api.schemas.response import HealthResponse
from ats_bridge.utils.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint

    The service is "degraded" when the delegate credential is missing: it still
    serves requests, but every analysis will fail with MissingCredentialError.
    """
    credential_configured = settings.active_credential is not None

    return HealthResponse(
        status="healthy" if credential_configured else "degraded",
        version=settings.APP_VERSION,
        provider=settings.AI_PROVIDER,
        model=settings.active_model_name,
        credential_configured=credential_configured,
        timestamp=datetime.now(timezone.utc)
    )


@router.get("/info")
async def get_api_info():
    """Get API information"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "provider": settings.AI_PROVIDER,
        "model": settings.active_model_name,
        "allowed_resume_extensions": settings.ALLOWED_RESUME_EXTENSIONS,
        "max_upload_size": settings.MAX_UPLOAD_SIZE,
        "docs_url": "/docs",
        "openapi_url": "/openapi.json"
    }
