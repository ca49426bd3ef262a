"""
Health check endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ...adapters.storage.azure_blob_service import run_blocking
from ...core.config import get_settings
from ..deps import BlobStorageServiceDep
from ..schemas.common import ApiResponse
from ..utils.responses import ok

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    timestamp: datetime
    version: str
    service: str


@router.get("", response_model=ApiResponse[HealthResponse])
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns the current status of the service.
    """
    settings = get_settings()
    return ok(request, data=HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        service=settings.app_name,
    ), message="OK")


@router.get("/ready", response_model=ApiResponse[dict])
async def readiness_check(request: Request, blob_service: BlobStorageServiceDep):
    """
    Readiness check endpoint.

    Reports whether the blob container answers. Never fails the request itself.
    """
    checks = {}
    try:
        await run_blocking(blob_service.container_client.get_container_properties)
        checks["blob_storage"] = "ok"
    except Exception as e:
        checks["blob_storage"] = f"error: {str(e)[:50]}"

    ready = all(value == "ok" for value in checks.values())
    return ok(request, data={"ready": ready, "checks": checks}, message="READY" if ready else "NOT_READY")
