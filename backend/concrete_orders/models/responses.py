"""API Response models."""

from pydantic import BaseModel, Field
from typing import Optional, Generic, TypeVar, List
from datetime import datetime


T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = Field(..., description="สำเร็จหรือไม่")
    message: str = Field(..., description="ข้อความ")
    data: Optional[T] = Field(None, description="ข้อมูล")
    timestamp: datetime = Field(default_factory=datetime.now, description="เวลาตอบกลับ")


class ErrorResponse(BaseModel):
    """Error response model."""

    success: bool = Field(False, description="สำเร็จหรือไม่")
    message: str = Field(..., description="ข้อความแสดงข้อผิดพลาด")
    error_code: Optional[str] = Field(None, description="รหัสข้อผิดพลาด")
    timestamp: datetime = Field(default_factory=datetime.now, description="เวลาตอบกลับ")


class PaginatedResponse(BaseModel, Generic[T]):
    """Offset-paginated response model."""

    success: bool = Field(True, description="สำเร็จหรือไม่")
    message: str = Field("ดึงข้อมูลสำเร็จ", description="ข้อความ")
    data: List[T] = Field(..., description="รายการข้อมูล")
    total: int = Field(..., ge=0, description="จำนวนทั้งหมด")
    limit: int = Field(..., ge=1, description="จำนวนต่อหน้า")
    offset: int = Field(..., ge=0, description="ตำแหน่งเริ่มต้น")
    timestamp: datetime = Field(default_factory=datetime.now, description="เวลาตอบกลับ")
