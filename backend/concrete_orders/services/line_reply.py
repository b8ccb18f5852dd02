"""Confirmation replies to the LINE chat that sent an order."""

import logging
from typing import List, Optional, Sequence

import httpx

from ..config import settings
from ..models import StoredOrder
from .service_factory import service_factory

logger = logging.getLogger(__name__)

LINE_REPLY_URL = "https://api.line.me/v2/bot/message/reply"

# LINE accepts at most five messages per reply token
MAX_MESSAGES_PER_REPLY = 5

BUDDHIST_ERA_OFFSET = 543


def format_thai_date(iso_date: Optional[str]) -> str:
    """2026-01-21 -> 21/1/2569"""
    if not iso_date:
        return ""
    year, month, day = iso_date.split("-")
    return f"{int(day)}/{int(month)}/{int(year) + BUDDHIST_ERA_OFFSET}"


def format_confirm_message(order: StoredOrder) -> str:
    """
    Build the confirmation text for one saved order.

    Lines for missing (or zero) fields are left out; the order id is always
    shown.

    Args:
        order: Saved order

    Returns:
        Multi-line message text
    """
    lines = ["✅ บันทึกข้อมูลสำเร็จ"]
    if order.order_date:
        lines.append(f"📅 วันที่: {format_thai_date(order.order_date)}")
    if order.factory_id:
        lines.append(f"🏭 โรงงาน: {order.factory_id}")
    if order.product_code:
        lines.append(f"📦 รหัส: {order.product_code}")
    if order.cement_quantity:
        lines.append(f"🧱 ปูน: {order.cement_quantity:g} คิว")
    lines.append(f"🔖 ID: #{order.id}")
    return "\n".join(lines)


class LineReplyService:
    """Client for the LINE Messaging API reply endpoint."""

    def __init__(self, access_token: str, client: Optional[httpx.Client] = None):
        """
        Initialize LineReplyService.

        Args:
            access_token: Channel access token
            client: HTTP client (a new one with a short timeout if None)
        """
        self.access_token = access_token
        self.client = client or httpx.Client(timeout=10)

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def reply_text(self, reply_token: str, texts: Sequence[str]) -> bool:
        """
        Reply with one text message per entry.

        A failed reply does not affect the stored orders, so errors are
        logged and reported through the return value.

        Args:
            reply_token: Token from the webhook event
            texts: Message texts, at most five are sent

        Returns:
            True when LINE accepted the reply
        """
        messages = [{"type": "text", "text": text} for text in texts[:MAX_MESSAGES_PER_REPLY]]
        if not messages:
            return False

        try:
            response = self.client.post(
                LINE_REPLY_URL,
                headers={"Authorization": f"Bearer {self.access_token}"},
                json={"replyToken": reply_token, "messages": messages},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"LINE reply failed: {e}")
            return False

        logger.info(f"Replied to LINE with {len(messages)} message(s)")
        return True

    def confirm_orders(self, reply_token: str, orders: List[StoredOrder]) -> bool:
        """Send a confirmation for each saved order."""
        return self.reply_text(reply_token, [format_confirm_message(order) for order in orders])


@service_factory
def get_line_reply_service() -> LineReplyService:
    """Get or create the LINE reply client."""
    return LineReplyService(settings.line_channel_access_token)
