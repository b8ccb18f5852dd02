"""Message ingestion: parse, de-duplicate, persist."""

import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..config import settings
from ..models import OrderItem, StoredOrder
from ..store import OrderStore, get_store
from .duplicate_guard import DuplicateCheckError, DuplicateGuard
from .message_parser import parse_message
from .service_factory import service_factory

logger = logging.getLogger(__name__)


class SkippedItem(BaseModel):
    """Item dropped because an identical one was stored recently."""

    product_code: Optional[str] = None
    duplicate_of: int


class IngestionResult(BaseModel):
    """Outcome of ingesting one chat message."""

    status: Literal["rejected", "duplicate", "saved"]
    saved: List[StoredOrder] = Field(default_factory=list)
    skipped: List[SkippedItem] = Field(default_factory=list)
    duplicate_of: Optional[int] = None

    @property
    def should_sync(self) -> bool:
        """A sheet sync is worth scheduling only when new rows exist."""
        return bool(self.saved)


class IngestionService:
    """Runs a chat message through parser, duplicate guard and store."""

    def __init__(self, store: OrderStore, guard: DuplicateGuard, fail_open: bool = True):
        """
        Initialize IngestionService.

        Args:
            store: Order storage
            guard: Duplicate guard reading from the same storage
            fail_open: Treat unreadable duplicate state as "not a duplicate"
        """
        self.store = store
        self.guard = guard
        self.fail_open = fail_open

    def _guarded(self, check, *args) -> Optional[int]:
        try:
            return check(*args)
        except DuplicateCheckError as e:
            if not self.fail_open:
                raise
            logger.warning(f"{e}; continuing as not duplicate")
            return None

    def ingest(
        self,
        text: str,
        user_id: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> IngestionResult:
        """
        Ingest a chat message.

        Args:
            text: Message text
            user_id: LINE user ID of the sender
            group_id: LINE group ID, when sent in a group

        Returns:
            IngestionResult

        Raises:
            DuplicateCheckError: When storage cannot be read and fail_open is off
            SQLAlchemyError: When an insert fails
        """
        items = parse_message(text)
        if items is None:
            logger.info("Message is not a concrete order, ignored")
            return IngestionResult(status="rejected")

        duplicate_of = self._guarded(self.guard.check_message, text, group_id, user_id)
        if duplicate_of is not None:
            return IngestionResult(status="duplicate", duplicate_of=duplicate_of)

        result = IngestionResult(status="duplicate")
        # All items are checked before any is stored, so repeated lines of
        # this message never match each other.
        to_insert: List[OrderItem] = []
        for item in items:
            candidate: OrderItem = item.model_copy(
                update={"line_user_id": user_id, "line_group_id": group_id}
            )

            existing_id = self._guarded(self.guard.check_item, candidate)
            if existing_id is not None:
                result.skipped.append(
                    SkippedItem(product_code=candidate.product_code, duplicate_of=existing_id)
                )
                continue
            to_insert.append(candidate)

        for candidate in to_insert:
            result.saved.append(self.store.insert(candidate))

        if result.saved:
            result.status = "saved"
        elif result.skipped:
            result.duplicate_of = result.skipped[0].duplicate_of

        logger.info(
            f"Message ingested: {len(result.saved)} saved, {len(result.skipped)} skipped"
        )
        return result


@service_factory
def get_ingestion_service() -> IngestionService:
    """Get or create the ingestion service bound to the global store."""
    store = get_store()
    guard = DuplicateGuard(
        store,
        message_window_minutes=settings.duplicate_message_window_minutes,
        item_window_minutes=settings.duplicate_item_window_minutes,
    )
    return IngestionService(store, guard, fail_open=settings.duplicate_fail_open)
