"""Core API endpoints for Moya."""

from fastapi import APIRouter

from moya.api import dependencies
from moya.core.config import get_settings
from moya.core.logging import get_logger
from moya.domain.models import utc_now

logger = get_logger(__name__)

router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint with application status."""
    return {
        "message": "Moya API",
        "version": "0.1.0",
        "status": "running",
    }


@router.get("/health", operation_id="health")
async def health_check():
    """Health check with the configured integrations and what failed to start."""
    settings = get_settings()
    unavailable = {name: error.message for name, error in dependencies.startup_errors.items()}
    return {
        "status": "degraded" if unavailable else "healthy",
        "timestamp": utc_now().isoformat(),
        "storage_backend": settings.storage_backend,
        "integrations": settings.integrations,
        "unavailable": unavailable,
    }
