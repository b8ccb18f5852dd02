"""Order listing API routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Query

from ...api.dependencies import StoreDep
from ...models import APIResponse, OrderFilters, PaginatedResponse, StoredOrder
from ...utils import log_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Orders"])


@router.get(
    "/orders",
    response_model=PaginatedResponse[StoredOrder],
    summary="รายการคำสั่งคอนกรีต",
)
async def list_orders(
    store: StoreDep,
    start_date: Optional[str] = Query(None, description="วันที่เริ่มต้น (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(None, description="วันที่สิ้นสุด (YYYY-MM-DD)"),
    factory_id: Optional[List[int]] = Query(None, description="โรงงาน"),
    product_code: Optional[List[str]] = Query(None, description="รหัสสินค้า"),
    supervisor: Optional[List[str]] = Query(None, description="ผู้ดูแล"),
    group_id: Optional[List[str]] = Query(None, description="LINE group ID"),
    user_id: Optional[List[str]] = Query(None, description="LINE user ID"),
    synced: Optional[bool] = Query(None, description="ซิงค์แล้วหรือไม่"),
    min_cement: Optional[float] = Query(None, ge=0),
    max_cement: Optional[float] = Query(None, ge=0),
    search: Optional[str] = Query(None, description="ค้นหาข้อความ"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> PaginatedResponse[StoredOrder]:
    """
    ค้นหาคำสั่งคอนกรีตที่บันทึกไว้ เรียงจากใหม่ไปเก่า.
    """
    filters = OrderFilters(
        start_date=start_date,
        end_date=end_date,
        factory_ids=factory_id or [],
        product_codes=product_code or [],
        supervisors=supervisor or [],
        line_group_ids=group_id or [],
        line_user_ids=user_id or [],
        synced=synced,
        min_cement=min_cement,
        max_cement=max_cement,
        search=search,
    )

    try:
        orders = store.list_orders(filters, limit=limit, offset=offset)
        total = store.count_orders(filters)
    except Exception as e:
        log_error(e, context="List orders")
        raise

    return PaginatedResponse[StoredOrder](
        data=orders,
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/orders/{order_id}",
    response_model=APIResponse[StoredOrder],
    summary="ข้อมูลคำสั่งคอนกรีต",
)
async def get_order(order_id: int, store: StoreDep) -> dict:
    """ดึงคำสั่งคอนกรีตตาม ID."""
    return {
        "success": True,
        "message": "ดึงข้อมูลสำเร็จ",
        "data": store.get_order(order_id),
    }
