"""Parse API routes."""

import logging

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ...models import APIResponse
from ...services.message_parser import count_order_indicators, parse_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Parse"])


class ParseRequest(BaseModel):
    """Request model for a dry-run parse."""

    text: str = Field(..., min_length=1, description="ข้อความจาก LINE")


@router.post(
    "/parse",
    response_model=APIResponse,
    summary="ทดสอบแยกข้อมูลจากข้อความ",
)
async def parse_text(request: ParseRequest) -> dict:
    """
    แยกข้อมูลคำสั่งคอนกรีตจากข้อความโดยไม่บันทึก.

    - คืนค่ารายการสินค้าที่พบ
    - ถ้าไม่ใช่ข้อความสั่งคอนกรีต data.items จะเป็น null
    """
    items = parse_message(request.text)
    if items is None:
        return {
            "success": False,
            "message": "ไม่ใช่ข้อความสั่งคอนกรีต",
            "data": {
                "items": None,
                "indicators": count_order_indicators(request.text),
            },
        }

    return {
        "success": True,
        "message": f"พบ {len(items)} รายการ",
        "data": {
            "items": [item.model_dump() for item in items],
            "indicators": count_order_indicators(request.text),
        },
    }
