"""Order list filters."""

from typing import List, Optional

from pydantic import BaseModel, Field


class OrderFilters(BaseModel):
    """Filters for listing and counting stored orders. Empty means no filter."""

    start_date: Optional[str] = Field(None, description="วันที่เริ่มต้น (YYYY-MM-DD)")
    end_date: Optional[str] = Field(None, description="วันที่สิ้นสุด (YYYY-MM-DD)")
    factory_ids: List[int] = Field(default_factory=list)
    product_codes: List[str] = Field(default_factory=list)
    supervisors: List[str] = Field(default_factory=list)
    line_group_ids: List[str] = Field(default_factory=list)
    line_user_ids: List[str] = Field(default_factory=list)
    synced: Optional[bool] = None
    min_cement: Optional[float] = None
    max_cement: Optional[float] = None
    search: Optional[str] = None
