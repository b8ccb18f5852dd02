"""Unit tests for the ingestion pipeline."""

import pytest
from unittest.mock import MagicMock
from sqlalchemy.exc import OperationalError

from concrete_orders.services.duplicate_guard import DuplicateCheckError, DuplicateGuard
from concrete_orders.services.ingestion import IngestionService

pytestmark = pytest.mark.unit


class TestIngest:
    """Tests for IngestionService.ingest against a real store."""

    def test_non_order_is_rejected(self, ingestion, store):
        result = ingestion.ingest("ประชุมพรุ่งนี้ 9 โมงนะครับ", "U1", "G1")

        assert result.status == "rejected"
        assert result.should_sync is False
        assert store.count_orders() == 0

    def test_items_are_saved_with_identity(self, ingestion, store, two_item_message):
        result = ingestion.ingest(two_item_message, "U1", "G1")

        assert result.status == "saved"
        assert result.should_sync is True
        assert [order.product_code for order in result.saved] == ["A35-FZC-F60", "A35-FZC-F35"]
        stored = store.get_order(result.saved[0].id)
        assert stored.line_user_id == "U1"
        assert stored.line_group_id == "G1"
        assert stored.synced_to_sheets is False

    def test_message_resend_is_dropped(self, ingestion, store, clock, single_item_message):
        first = ingestion.ingest(single_item_message, "U1", "G1")
        clock.advance(1)

        second = ingestion.ingest(single_item_message, "U1", "G1")

        assert second.status == "duplicate"
        assert second.duplicate_of == first.saved[0].id
        assert second.should_sync is False
        assert store.count_orders() == 1

    def test_resend_after_window_is_saved(self, ingestion, store, clock, single_item_message):
        ingestion.ingest(single_item_message, "U1", "G1")
        clock.advance(31)

        result = ingestion.ingest(single_item_message, "U1", "G1")

        assert result.status == "saved"
        assert store.count_orders() == 2

    def test_repeated_item_in_new_message_is_skipped(self, ingestion, store, clock, two_item_message):
        first = ingestion.ingest(two_item_message, "U1", "G1")
        clock.advance(15)

        # Same items, edited text: passes the message check, fails the item check
        second = ingestion.ingest(two_item_message + "\nขอบคุณครับ", "U1", "G1")

        assert second.status == "duplicate"
        assert [item.duplicate_of for item in second.skipped] == [order.id for order in first.saved]
        assert second.duplicate_of == first.saved[0].id
        assert store.count_orders() == 2

    def test_identical_lines_in_one_message_are_all_saved(self, ingestion, store):
        text = "โรง2 สั่งคอนกรีต A35 จำนวน 6 ชิ้น A35 จำนวน 6 ชิ้น"

        result = ingestion.ingest(text, "U1", "G1")

        assert result.status == "saved"
        assert len(result.saved) == 2
        assert result.skipped == []
        assert store.count_orders() == 2

    def test_direct_message_and_group_are_separate(self, ingestion, store, single_item_message):
        ingestion.ingest(single_item_message, "U1", "G1")

        result = ingestion.ingest(single_item_message, "U1", None)

        assert result.status == "saved"
        assert store.count_orders() == 2


class TestFailureHandling:
    """Tests for storage failures."""

    @pytest.fixture
    def broken_guard(self):
        reader = MagicMock()
        reader.find_recent_by_raw_message.side_effect = OperationalError("SELECT", {}, Exception("locked"))
        reader.find_recent_by_item_shape.side_effect = OperationalError("SELECT", {}, Exception("locked"))
        return DuplicateGuard(reader)

    def test_fail_open_saves(self, store, broken_guard, single_item_message):
        service = IngestionService(store, broken_guard, fail_open=True)

        result = service.ingest(single_item_message, "U1", "G1")

        assert result.status == "saved"
        assert store.count_orders() == 1

    def test_fail_closed_raises(self, store, broken_guard, single_item_message):
        service = IngestionService(store, broken_guard, fail_open=False)

        with pytest.raises(DuplicateCheckError):
            service.ingest(single_item_message, "U1", "G1")

        assert store.count_orders() == 0

    def test_write_failure_propagates(self, guard, single_item_message):
        store = MagicMock()
        store.insert.side_effect = OperationalError("INSERT", {}, Exception("disk full"))
        guard.reader = MagicMock()
        guard.reader.find_recent_by_raw_message.return_value = None
        guard.reader.find_recent_by_item_shape.return_value = None
        service = IngestionService(store, guard)

        with pytest.raises(OperationalError):
            service.ingest(single_item_message, "U1", "G1")
