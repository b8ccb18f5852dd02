"""Maintenance API routes."""

import logging

from fastapi import APIRouter

from ...api.dependencies import StoreDep
from ...models import APIResponse
from ...services.quantity_backfill import backfill_product_quantities
from ...utils import ErrorCode, log_error, raise_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


@router.post(
    "/backfill-quantities",
    response_model=APIResponse,
    summary="เติมจำนวนสินค้าให้ข้อมูลเดิม",
)
async def backfill_quantities(store: StoreDep) -> dict:
    """
    อ่านข้อความต้นฉบับของคำสั่งที่ยังไม่มีจำนวนสินค้าแล้วแยกจำนวน/หน่วยใหม่.
    """
    try:
        result = backfill_product_quantities(store)
    except Exception as e:
        log_error(e, context="Backfill product quantities")
        raise_error(ErrorCode.MIGRATION_FAILED, status_code=500)

    return {
        "success": True,
        "message": f"อัปเดต {result.updated} รายการ",
        "data": result.model_dump(),
    }
