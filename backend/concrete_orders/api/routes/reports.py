"""Summary and report API routes."""

import logging
import re
from typing import Literal, Optional

from fastapi import APIRouter, Query

from ...api.dependencies import StoreDep
from ...models import APIResponse
from ...utils import ErrorCode, raise_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Reports"])

_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH = re.compile(r"^\d{4}-\d{2}$")


@router.get(
    "/summary/{order_date}",
    response_model=APIResponse,
    summary="สรุปรายวันแยกตามโรงงาน",
)
async def daily_summary(order_date: str, store: StoreDep) -> dict:
    """
    สรุปจำนวนคำสั่งและปริมาณปูนของแต่ละโรงงานในวันที่กำหนด.
    """
    if not _DAY.match(order_date):
        raise_error(ErrorCode.VALIDATION_ERROR, "รูปแบบวันที่ต้องเป็น YYYY-MM-DD")

    rows = store.get_daily_summary(order_date)
    return {
        "success": True,
        "message": f"สรุปวันที่ {order_date}",
        "data": {"date": order_date, "factories": rows},
    }


@router.get(
    "/reports",
    response_model=APIResponse,
    summary="รายงานรายวัน/รายเดือน",
)
async def report(
    store: StoreDep,
    period: Literal["daily", "monthly"] = Query("daily"),
    value: Optional[str] = Query(None, description="YYYY-MM-DD หรือ YYYY-MM"),
) -> dict:
    """
    รายงานปริมาณปูนแยกตามโรงงานและตามรหัสสินค้า.

    - **period**: daily ใช้ value แบบ YYYY-MM-DD, monthly ใช้ YYYY-MM
    """
    pattern = _MONTH if period == "monthly" else _DAY
    if not value or not pattern.match(value):
        raise_error(
            ErrorCode.VALIDATION_ERROR,
            "value ต้องเป็น YYYY-MM" if period == "monthly" else "value ต้องเป็น YYYY-MM-DD",
        )

    return {
        "success": True,
        "message": "สร้างรายงานสำเร็จ",
        "data": {
            "period": period,
            "value": value,
            "by_factory": store.get_summary(value, group_by="factory", period=period),
            "by_product": store.get_summary(value, group_by="product", period=period),
        },
    }
