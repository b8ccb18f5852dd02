"""Health check endpoint."""

from fastapi import APIRouter

from ...api.dependencies import StoreDep
from ...config import settings


router = APIRouter(prefix="/api/v1", tags=["Health"])

SERVICE_NAME = "ระบบบันทึกคำสั่งคอนกรีต"
SERVICE_VERSION = "0.1.0"


def health_payload(store) -> dict:
    """Health status, order counts and Google Sheets status."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "store": store.get_stats(),
        "google_sheets": "configured" if settings.google_sheets_available else "disabled",
    }


@router.get("/health")
async def health_check(store: StoreDep) -> dict:
    """
    Health check endpoint.

    Returns:
        Health status and store statistics
    """
    return health_payload(store)
