"""Duplicate detection for incoming orders.

Chat groups resend the same message (network retries, manual re-sends,
forwards). Two independent checks exist:

- message level: identical raw text from the same group/user within a short
  window (default 10 minutes). A hit discards the whole message.
- item level: identical (date, factory, code, detail, concrete) tuple from the
  same group/user within a longer window (default 30 minutes). A hit skips
  only that item.

Both are best effort: nothing prevents two identical messages arriving at the
same instant from both passing before either is stored.
"""

import logging
from typing import NamedTuple, Optional, Protocol

from ..models.order_item import OrderItem

logger = logging.getLogger(__name__)


DEFAULT_MESSAGE_WINDOW_MINUTES = 10
DEFAULT_ITEM_WINDOW_MINUTES = 30


class DuplicateCheckError(Exception):
    """Storage could not be read, so duplicate status is unknown."""

    def __init__(self, check: str, cause: Exception):
        self.check = check
        self.cause = cause
        super().__init__(f"Cannot determine duplicate status ({check}): {cause}")


class DuplicateReader(Protocol):
    """Read interface into stored orders used by the guard."""

    def find_recent_by_raw_message(
        self,
        raw_message: str,
        group_id: Optional[str],
        user_id: Optional[str],
        window_minutes: int,
    ) -> Optional[int]:
        ...

    def find_recent_by_item_shape(
        self,
        item: OrderItem,
        window_minutes: int,
    ) -> Optional[int]:
        ...


class ItemShape(NamedTuple):
    """
    Identity-relevant projection of an item.

    Missing values are replaced by sentinels ("" for text, 0 for numbers) so
    that NULL compares equal to NULL in storage queries.
    """

    order_date: str
    factory_id: str
    product_code: str
    product_detail: str
    cement_quantity: float

    @classmethod
    def from_item(cls, item: OrderItem) -> "ItemShape":
        return cls(
            order_date=item.order_date or "",
            factory_id=str(item.factory_id) if item.factory_id is not None else "",
            product_code=item.product_code or "",
            product_detail=item.product_detail or "",
            cement_quantity=item.cement_quantity if item.cement_quantity is not None else 0.0,
        )


def has_identity(group_id: Optional[str], user_id: Optional[str]) -> bool:
    """Duplicate checks need a sender to key on."""
    return bool(group_id) or bool(user_id)


class DuplicateGuard:
    """Decides whether a message or an item was already stored recently."""

    def __init__(
        self,
        reader: DuplicateReader,
        message_window_minutes: int = DEFAULT_MESSAGE_WINDOW_MINUTES,
        item_window_minutes: int = DEFAULT_ITEM_WINDOW_MINUTES,
    ):
        """
        Initialize DuplicateGuard.

        Args:
            reader: Storage read interface
            message_window_minutes: Lookback for whole-message resends
            item_window_minutes: Lookback for single-item resends
        """
        self.reader = reader
        self.message_window_minutes = message_window_minutes
        self.item_window_minutes = item_window_minutes

    def check_message(
        self,
        raw_message: str,
        group_id: Optional[str],
        user_id: Optional[str],
    ) -> Optional[int]:
        """
        Look for the same raw message from the same sender.

        Args:
            raw_message: Message text, compared verbatim
            group_id: LINE group ID (preferred identity)
            user_id: LINE user ID

        Returns:
            ID of the most recent matching order, or None

        Raises:
            DuplicateCheckError: If storage cannot be read
        """
        if not has_identity(group_id, user_id):
            logger.debug("No sender identity, message duplicate check skipped")
            return None

        try:
            existing_id = self.reader.find_recent_by_raw_message(
                raw_message,
                group_id,
                user_id,
                self.message_window_minutes,
            )
        except Exception as e:
            raise DuplicateCheckError("message", e) from e

        if existing_id is not None:
            logger.info(
                f"Duplicate message of order #{existing_id} "
                f"(window {self.message_window_minutes} min)"
            )
        return existing_id

    def check_item(self, item: OrderItem) -> Optional[int]:
        """
        Look for an order with the same item tuple from the same sender.

        Compared fields: order date, factory, product code, product detail
        and concrete quantity. Missing values compare equal to each other.

        Args:
            item: Candidate item with line_group_id/line_user_id attached

        Returns:
            ID of the most recent matching order, or None

        Raises:
            DuplicateCheckError: If storage cannot be read
        """
        if not has_identity(item.line_group_id, item.line_user_id):
            logger.debug("No sender identity, item duplicate check skipped")
            return None

        try:
            existing_id = self.reader.find_recent_by_item_shape(item, self.item_window_minutes)
        except Exception as e:
            raise DuplicateCheckError("item", e) from e

        if existing_id is not None:
            logger.info(
                f"Duplicate item {item.product_code} of order #{existing_id} "
                f"(window {self.item_window_minutes} min)"
            )
        return existing_id
