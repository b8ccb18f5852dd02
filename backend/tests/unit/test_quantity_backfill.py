"""Unit tests for the product quantity backfill."""

import pytest
from unittest.mock import MagicMock

from concrete_orders.models import OrderItem
from concrete_orders.services.quantity_backfill import (
    MAX_REPORTED_ERRORS,
    backfill_product_quantities,
)

pytestmark = pytest.mark.unit


class TestBackfill:
    """Tests for backfill_product_quantities."""

    def test_updates_rows_with_quantity_in_message(self, store):
        found = store.insert(OrderItem(product_code="A42", raw_message="A42 Counterfort 8 ตัว"))
        not_found = store.insert(OrderItem(product_code="A35", raw_message="A35 0.7 คิว"))
        done = store.insert(
            OrderItem(product_code="A36", product_quantity=2, product_unit="ชุด", raw_message="A36 =5แผ่น")
        )

        result = backfill_product_quantities(store)

        assert result.scanned == 2
        assert result.updated == 1
        assert result.unchanged == 1
        assert result.failed == 0
        assert store.get_order(found.id).product_quantity == 8
        assert store.get_order(found.id).product_unit == "ตัว"
        assert store.get_order(not_found.id).product_quantity is None
        # Rows that already have a quantity are left alone
        assert store.get_order(done.id).product_unit == "ชุด"

    def test_errors_do_not_stop_the_run(self):
        store = MagicMock()
        store.get_orders_missing_quantity.return_value = [
            (order_id, "A35 =3แผ่น") for order_id in range(1, 9)
        ]
        store.update_product_quantity.side_effect = [RuntimeError("locked")] * 7 + [None]

        result = backfill_product_quantities(store)

        assert result.failed == 7
        assert result.updated == 1
        assert len(result.errors) == MAX_REPORTED_ERRORS
        assert result.errors[0].startswith("#1:")
        assert store.update_product_quantity.call_count == 8

    def test_nothing_to_do(self, store):
        result = backfill_product_quantities(store)

        assert result.scanned == 0
        assert result.updated == 0
