"""Google Sheets sync API routes."""

import logging

from fastapi import APIRouter

from ...api.dependencies import SheetsSyncDep
from ...config import settings
from ...models import APIResponse
from ...utils import ErrorCode, raise_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Google Sheets"])


def _require_sheets() -> None:
    if not settings.google_sheets_available:
        raise_error(
            ErrorCode.GOOGLE_SHEETS_DISABLED,
            "ยังไม่ได้ตั้งค่า GOOGLE_SHEETS_ID หรือข้อมูลบัญชีบริการ",
            status_code=503,
        )


@router.post(
    "/sync",
    response_model=APIResponse,
    summary="ซิงค์ไป Google Sheets",
)
async def sync_now(sync_service: SheetsSyncDep) -> dict:
    """
    ส่งคำสั่งที่ยังไม่ได้ซิงค์ทั้งหมดไป Google Sheets ทันที.
    """
    _require_sheets()

    result = sync_service.sync_unsynced()
    if result.error:
        raise_error(ErrorCode.SYNC_FAILED, result.error, status_code=502)

    return {
        "success": True,
        "message": f"ซิงค์ {result.synced} รายการ",
        "data": result.model_dump(),
    }


@router.post(
    "/sheets/init",
    response_model=APIResponse,
    summary="สร้างแถวหัวตาราง",
)
async def init_sheet(sync_service: SheetsSyncDep) -> dict:
    """
    เขียนหัวตาราง 12 คอลัมน์ลงแถวแรกของแท็บที่ตั้งค่าไว้.
    """
    _require_sheets()

    sheet_name = sync_service.create_header_row()
    return {
        "success": True,
        "message": "สร้างหัวตารางสำเร็จ",
        "data": {"sheet_name": sheet_name},
    }


@router.get(
    "/sheets/status",
    response_model=APIResponse,
    summary="ทดสอบการเชื่อมต่อ Google Sheets",
)
async def sheets_status(sync_service: SheetsSyncDep) -> dict:
    """ตรวจสอบว่าเข้าถึงสเปรดชีตได้."""
    _require_sheets()

    status = sync_service.test_connection()
    return {
        "success": status["success"],
        "message": "เชื่อมต่อสำเร็จ" if status["success"] else "เชื่อมต่อไม่สำเร็จ",
        "data": status,
    }
