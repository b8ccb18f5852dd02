"""API dependencies and injection."""

from typing import Annotated
from fastapi import Depends
import logging

from ..store import OrderStore, get_store
from ..services.ingestion import IngestionService, get_ingestion_service
from ..services.line_reply import LineReplyService, get_line_reply_service
from ..services.sheets_sync import SheetsSyncService, get_sheets_sync_service


logger = logging.getLogger(__name__)


def get_store_dependency() -> OrderStore:
    """
    Dependency to get the order store.

    Returns:
        OrderStore instance
    """
    return get_store()


def get_ingestion_dependency() -> IngestionService:
    """
    Dependency to get the ingestion service.

    Returns:
        IngestionService instance
    """
    return get_ingestion_service()


def get_sheets_sync_dependency() -> SheetsSyncService:
    """
    Dependency to get the Google Sheets sync service.

    Returns:
        SheetsSyncService instance
    """
    return get_sheets_sync_service()



def get_line_reply_dependency() -> LineReplyService:
    """Dependency to get the LINE reply client."""
    return get_line_reply_service()


# Type aliases for common dependencies
StoreDep = Annotated[OrderStore, Depends(get_store_dependency)]
IngestionDep = Annotated[IngestionService, Depends(get_ingestion_dependency)]
SheetsSyncDep = Annotated[SheetsSyncService, Depends(get_sheets_sync_dependency)]
LineReplyDep = Annotated[LineReplyService, Depends(get_line_reply_dependency)]
