"""Order item data model.

One OrderItem per product line detected in a LINE message. Columns follow the
spreadsheet layout used by the plant office:
date, factory, product code, detail, quantity, unit, concrete (คิว),
loaded quantity, difference, supervisor, notes.
"""

from typing import Optional

from pydantic import BaseModel, Field


class OrderItem(BaseModel):
    """Structured concrete order item parsed from a chat message."""

    order_date: Optional[str] = Field(
        None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="วันที่ (YYYY-MM-DD, ค.ศ.)"
    )
    factory_id: Optional[int] = Field(None, description="โรงงาน")
    product_code: Optional[str] = Field(None, description="รหัสสินค้า เช่น A35-FZC-F60")
    product_detail: Optional[str] = Field(None, max_length=500, description="รายการสินค้าที่ผลิต")
    product_quantity: Optional[float] = Field(None, ge=0, description="จำนวนสินค้า")
    product_unit: Optional[str] = Field(None, description="หน่วย เช่น แผ่น, ตัว, ชิ้น")
    cement_quantity: Optional[float] = Field(None, ge=0, description="จำนวนปูน (คิว)")
    loaded_quantity: Optional[float] = Field(None, description="จำนวนที่โหลด")
    difference: Optional[float] = Field(None, description="ผลต่าง")
    supervisor: Optional[str] = Field(None, max_length=50, description="ผู้ดูแล")
    notes: Optional[str] = Field(None, description="หมายเหตุ เช่น รายการที่ 1/2")
    raw_message: str = Field(..., description="ข้อความต้นฉบับ")

    # Sender identity, attached by the caller after parsing
    line_user_id: Optional[str] = Field(None, description="LINE user ID")
    line_group_id: Optional[str] = Field(None, description="LINE group ID")

    model_config = {
        "json_schema_extra": {
            "example": {
                "order_date": "2026-01-21",
                "factory_id": 4,
                "product_code": "A42",
                "product_detail": "A42-L-Wall-H200\nCounterfort 8 ตัว\nจำนวนปูน=0.7คิว",
                "product_quantity": 8,
                "product_unit": "ตัว",
                "cement_quantity": 0.7,
                "loaded_quantity": None,
                "difference": None,
                "supervisor": None,
                "notes": None,
                "raw_message": "21/01/69\nโรง4 สั่งคอนกรีต\nA42-L-Wall-H200\nCounterfort 8 ตัว",
            }
        }
    }
