"""Backfill product quantity/unit for orders stored before they were parsed."""

import logging
from typing import List

from pydantic import BaseModel, Field

from ..store import OrderStore
from .message_parser import parse_product_quantity

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 5


class BackfillResult(BaseModel):
    """Outcome of a backfill run."""

    scanned: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list, description="First few per-row errors")


def backfill_product_quantities(store: OrderStore) -> BackfillResult:
    """
    Re-parse raw messages of orders without a product quantity.

    A failing row is recorded and the run continues with the next one.

    Args:
        store: Order storage

    Returns:
        BackfillResult
    """
    rows = store.get_orders_missing_quantity()
    result = BackfillResult(scanned=len(rows))
    logger.info(f"Backfill: {len(rows)} orders without product quantity")

    for order_id, raw_message in rows:
        quantity, unit = parse_product_quantity(raw_message)
        if quantity is None:
            result.unchanged += 1
            continue

        try:
            store.update_product_quantity(order_id, quantity, unit)
        except Exception as e:
            result.failed += 1
            logger.warning(f"Backfill of order #{order_id} failed: {e}")
            if len(result.errors) < MAX_REPORTED_ERRORS:
                result.errors.append(f"#{order_id}: {e}")
            continue

        result.updated += 1

    logger.info(
        f"Backfill completed: {result.updated} updated, "
        f"{result.unchanged} unchanged, {result.failed} failed"
    )
    return result
