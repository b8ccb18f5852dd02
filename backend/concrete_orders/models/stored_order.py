"""Read model for persisted orders."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .order_item import OrderItem


class StoredOrder(OrderItem):
    """OrderItem as returned from storage, with identity and sync state."""

    id: int = Field(..., description="Auto-increment ID")
    raw_message: Optional[str] = Field(None, description="ข้อความต้นฉบับ")
    synced_to_sheets: bool = Field(False, description="ซิงค์ไป Google Sheets แล้ว")
    created_at: datetime = Field(..., description="เวลาที่บันทึก")

    model_config = {"from_attributes": True}
