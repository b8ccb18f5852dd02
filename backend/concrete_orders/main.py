"""FastAPI application entry point."""

import logging
import asyncio
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .store import get_store
from .utils import APIError
from .models import ErrorResponse
from .api.dependencies import StoreDep
from .api.routes import health, webhook, parse, orders, reports, sync, admin
from .services.sheets_sync import get_sheets_sync_service


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def run_sync_sweep(interval_seconds: int) -> None:
    """Push unsynced orders to Google Sheets every interval."""
    sync_service = get_sheets_sync_service()
    while True:
        await asyncio.sleep(interval_seconds)
        result = await asyncio.to_thread(sync_service.sync_unsynced)
        if result.synced:
            logger.info(f"Periodic sync pushed {result.synced} orders")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Application starting up...")
    logger.info(f"Settings: host={settings.backend_host}, port={settings.backend_port}")
    store = get_store()
    logger.info(f"Store stats: {store.get_stats()}")

    sync_task = None
    if not settings.google_sheets_available:
        logger.warning("Google Sheets not configured, sync disabled")
    elif settings.sync_interval_seconds > 0:
        sync_task = asyncio.create_task(run_sync_sweep(settings.sync_interval_seconds))
        logger.info(f"Periodic sync every {settings.sync_interval_seconds}s")

    yield

    # Shutdown
    logger.info("Application shutting down...")
    if sync_task:
        sync_task.cancel()
    logger.info("Application stopped")


# Create FastAPI app
app = FastAPI(
    title="ระบบบันทึกคำสั่งคอนกรีต",
    description="บันทึกคำสั่งคอนกรีตจากกลุ่ม LINE ลงฐานข้อมูลและ Google Sheets",
    version=health.SERVICE_VERSION,
    lifespan=lifespan,
)


# Error handler for APIError
@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle API errors with proper response format."""
    error_response = ErrorResponse(
        success=False,
        message=exc.message,
        error_code=exc.error_code.value,
    )
    logger.error(f"APIError: {exc.error_code} - {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(mode="json"),
    )


# General exception handler
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions."""
    error_response = ErrorResponse(
        success=False,
        message="เกิดข้อผิดพลาดภายในระบบ",
        error_code="INTERNAL_ERROR",
    )
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_response.model_dump(mode="json"),
    )


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check(store: StoreDep) -> dict:
    """
    Health check endpoint.

    Returns:
        Health status and store statistics
    """
    return health.health_payload(store)


# Register API routers
app.include_router(health.router)
app.include_router(webhook.router)
app.include_router(parse.router)
app.include_router(orders.router)
app.include_router(reports.router)
app.include_router(sync.router)
app.include_router(admin.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.backend_host,
        port=settings.backend_port,
        reload=settings.backend_debug,
    )
