"""LINE webhook endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request
from pydantic import ValidationError

from ...api.dependencies import IngestionDep, LineReplyDep, SheetsSyncDep
from ...config import settings
from ...models import LineWebhookPayload
from ...utils import ErrorCode, raise_error, verify_line_signature

logger = logging.getLogger(__name__)

router = APIRouter(tags=["LINE Webhook"])


async def read_body(request: Request) -> bytes:
    """Raw request body, needed as-is for the signature check."""
    return await request.body()


@router.post("/webhook", summary="รับ event จาก LINE")
def line_webhook(
    background_tasks: BackgroundTasks,
    ingestion: IngestionDep,
    sync_service: SheetsSyncDep,
    reply_service: LineReplyDep,
    body: bytes = Depends(read_body),
    x_line_signature: Optional[str] = Header(None),
) -> dict:
    """
    รับข้อความจากกลุ่ม LINE และบันทึกคำสั่งคอนกรีต.

    - ตรวจสอบ X-Line-Signature เมื่อตั้งค่า LINE_CHANNEL_SECRET
    - ประมวลผลเฉพาะ event ข้อความตัวอักษร
    - ตอบกลับยืนยันเมื่อ ENABLE_REPLY_MESSAGE=true
    - ซิงค์ไป Google Sheets เบื้องหลังเมื่อมีรายการใหม่
    """
    if settings.line_channel_secret:
        verify_line_signature(body, x_line_signature, settings.line_channel_secret)

    try:
        payload = LineWebhookPayload.model_validate_json(body or b"{}")
    except ValidationError as e:
        logger.warning(f"Invalid webhook payload: {e}")
        raise_error(ErrorCode.INVALID_REQUEST, status_code=400)

    results = []
    saved_total = 0
    for event in payload.events:
        if not event.is_text_message:
            continue

        source = event.source
        logger.info(
            f"Received message from {'group' if source.group_id else 'user'}: "
            f"{event.message.text[:50]}"
        )
        result = ingestion.ingest(event.message.text, source.user_id, source.group_id)
        saved_total += len(result.saved)
        results.append(
            {
                "status": result.status,
                "saved_ids": [order.id for order in result.saved],
                "skipped": [item.model_dump() for item in result.skipped],
                "duplicate_of": result.duplicate_of,
            }
        )

        if result.saved and event.reply_token and settings.line_reply_available:
            background_tasks.add_task(reply_service.confirm_orders, event.reply_token, result.saved)

    if saved_total and settings.google_sheets_available:
        background_tasks.add_task(sync_service.sync_unsynced)

    return {
        "success": True,
        "message": f"บันทึก {saved_total} รายการ",
        "data": {"events": len(payload.events), "results": results},
    }
