"""Unit tests for Google Sheets sync service."""

import base64
import json
import threading
import pytest
from datetime import datetime
from unittest.mock import MagicMock, patch

from googleapiclient.errors import HttpError

from concrete_orders.models import StoredOrder
from concrete_orders.services.sheets_sync import (
    HEADERS,
    SheetsSyncService,
    build_range,
    order_to_row,
)
from concrete_orders.utils import APIError, ErrorCode

pytestmark = pytest.mark.unit


def make_order(order_id: int = 1, **overrides) -> StoredOrder:
    values = {
        "id": order_id,
        "order_date": "2026-01-21",
        "factory_id": 4,
        "product_code": "A42",
        "product_detail": "Counterfort 8 ตัว",
        "product_quantity": 8,
        "product_unit": "ตัว",
        "cement_quantity": 0.7,
        "raw_message": "...",
        "created_at": datetime(2026, 1, 21, 8, 30, 0),
    }
    values.update(overrides)
    return StoredOrder(**values)


def http_error(status: int) -> HttpError:
    response = MagicMock()
    response.status = status
    response.reason = "error"
    return HttpError(response, b"error")


class TestHelpers:
    """Tests for range and row building."""

    def test_plain_sheet_name(self):
        assert build_range("ชีต1", "A:L") == "ชีต1!A:L"

    def test_sheet_name_with_space(self):
        assert build_range("Order log", "A1") == "'Order log'!A1"

    def test_sheet_name_with_quote(self):
        assert build_range("Bob's", "A1:L1") == "'Bob''s'!A1:L1"

    def test_row_follows_column_order(self):
        row = order_to_row(make_order(supervisor="สมชาย", notes="รายการที่ 1/2"))

        assert len(row) == len(HEADERS) == 12
        assert row == [
            "2026-01-21", 4, "A42", "Counterfort 8 ตัว", 8.0, "ตัว", 0.7,
            "", "", "สมชาย", "รายการที่ 1/2", "2026-01-21 08:30:00",
        ]

    def test_missing_values_are_blank(self):
        row = order_to_row(make_order(order_date=None, factory_id=None, cement_quantity=None))

        assert row[0] == "" and row[1] == "" and row[6] == ""


class TestSheetsSyncService:
    """Tests for SheetsSyncService with a mocked Sheets API."""

    @pytest.fixture
    def mock_settings(self):
        """Mock settings with a spreadsheet configured."""
        with patch("concrete_orders.services.sheets_sync.settings") as mock:
            mock.google_sheets_id = "sheet123"
            mock.google_sheet_index = 0
            yield mock

    @pytest.fixture
    def mock_service(self):
        """Sheets API resource with one tab whose header is already written."""
        service = MagicMock()
        spreadsheets = service.spreadsheets.return_value
        spreadsheets.get.return_value.execute.return_value = {
            "properties": {"title": "รายงานโม่"},
            "sheets": [{"properties": {"title": "ชีต1"}}, {"properties": {"title": "ชีต2"}}],
        }
        spreadsheets.values.return_value.get.return_value.execute.return_value = {
            "values": [["วันที่"]]
        }
        return service

    @pytest.fixture
    def mock_store(self):
        store = MagicMock()
        store.get_unsynced_orders.return_value = [make_order(1), make_order(2)]
        return store

    def test_sync_appends_and_marks(self, mock_settings, mock_service, mock_store):
        service = SheetsSyncService(mock_store, service=mock_service)

        result = service.sync_unsynced()

        assert result.synced == 2
        assert result.error is None
        values = mock_service.spreadsheets.return_value.values.return_value
        _, kwargs = values.append.call_args
        assert kwargs["spreadsheetId"] == "sheet123"
        assert kwargs["range"] == "ชีต1!A:L"
        assert kwargs["valueInputOption"] == "USER_ENTERED"
        assert kwargs["insertDataOption"] == "INSERT_ROWS"
        assert len(kwargs["body"]["values"]) == 2
        values.update.assert_not_called()
        mock_store.mark_as_synced.assert_called_once_with([1, 2])

    def test_sync_writes_missing_header(self, mock_settings, mock_service, mock_store):
        values = mock_service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {}
        service = SheetsSyncService(mock_store, service=mock_service)

        service.sync_unsynced()

        _, kwargs = values.update.call_args
        assert kwargs["range"] == "ชีต1!A1:L1"
        assert kwargs["body"] == {"values": [HEADERS]}

    def test_sheet_index_selects_tab(self, mock_settings, mock_service, mock_store):
        mock_settings.google_sheet_index = 5
        service = SheetsSyncService(mock_store, service=mock_service)

        service.sync_unsynced()

        values = mock_service.spreadsheets.return_value.values.return_value
        assert values.append.call_args.kwargs["range"] == "ชีต2!A:L"

    def test_sheet_name_is_cached(self, mock_settings, mock_service, mock_store):
        service = SheetsSyncService(mock_store, service=mock_service)

        service.sync_unsynced()
        service.sync_unsynced()

        assert mock_service.spreadsheets.return_value.get.return_value.execute.call_count == 1

    def test_nothing_to_sync(self, mock_settings, mock_service, mock_store):
        mock_store.get_unsynced_orders.return_value = []
        service = SheetsSyncService(mock_store, service=mock_service)

        result = service.sync_unsynced()

        assert result.synced == 0
        assert result.error is None
        mock_service.spreadsheets.return_value.values.return_value.append.assert_not_called()

    def test_api_failure_is_reported_not_raised(self, mock_settings, mock_service, mock_store):
        values = mock_service.spreadsheets.return_value.values.return_value
        values.append.return_value.execute.side_effect = http_error(500)
        service = SheetsSyncService(mock_store, service=mock_service)

        result = service.sync_unsynced()

        assert result.synced == 0
        assert result.error
        mock_store.mark_as_synced.assert_not_called()

    def test_missing_spreadsheet_id(self, mock_settings, mock_service, mock_store):
        mock_settings.google_sheets_id = ""
        service = SheetsSyncService(mock_store, service=mock_service)

        result = service.sync_unsynced()

        assert result.synced == 0
        assert result.error

    def test_overlapping_runs_append_once(self, mock_settings, mock_service, mock_store):
        entered = threading.Event()
        release = threading.Event()

        def slow_append():
            entered.set()
            release.wait(timeout=5)
            return {}

        values = mock_service.spreadsheets.return_value.values.return_value
        values.append.return_value.execute.side_effect = slow_append
        service = SheetsSyncService(mock_store, service=mock_service)
        results = []
        worker = threading.Thread(target=lambda: results.append(service.sync_unsynced()))
        worker.start()
        assert entered.wait(timeout=5)

        overlapping = service.sync_unsynced()
        release.set()
        worker.join(timeout=5)

        assert overlapping.synced == 0
        assert overlapping.error is None
        assert results[0].synced == 2
        assert values.append.call_count == 1
        mock_store.mark_as_synced.assert_called_once_with([1, 2])

    def test_runs_after_previous_finishes(self, mock_settings, mock_service, mock_store):
        service = SheetsSyncService(mock_store, service=mock_service)

        service.sync_unsynced()
        result = service.sync_unsynced()

        assert result.synced == 2
        assert mock_store.mark_as_synced.call_count == 2

    def test_create_header_row(self, mock_settings, mock_service, mock_store):
        service = SheetsSyncService(mock_store, service=mock_service)

        assert service.create_header_row() == "ชีต1"
        values = mock_service.spreadsheets.return_value.values.return_value
        assert values.update.call_args.kwargs["body"] == {"values": [HEADERS]}

    def test_test_connection(self, mock_settings, mock_service, mock_store):
        service = SheetsSyncService(mock_store, service=mock_service)

        assert service.test_connection() == {
            "success": True,
            "title": "รายงานโม่",
            "sheets": ["ชีต1", "ชีต2"],
        }

    def test_test_connection_failure(self, mock_settings, mock_service, mock_store):
        mock_service.spreadsheets.return_value.get.return_value.execute.side_effect = http_error(404)
        service = SheetsSyncService(mock_store, service=mock_service)

        status = service.test_connection()

        assert status["success"] is False
        assert "error" in status


class TestRetry:
    """Tests for _execute_with_retry."""

    @pytest.fixture
    def service(self):
        svc = SheetsSyncService(MagicMock(), service=MagicMock())
        svc.BASE_DELAY = 0
        return svc

    def test_rate_limit_is_retried(self, service):
        request = MagicMock()
        request.execute.side_effect = [http_error(429), {"ok": True}]

        with patch("concrete_orders.services.sheets_sync.time.sleep"):
            assert service._execute_with_retry(request) == {"ok": True}

        assert request.execute.call_count == 2

    def test_quota_error(self, service):
        request = MagicMock()
        request.execute.side_effect = http_error(403)

        with pytest.raises(APIError) as exc_info:
            service._execute_with_retry(request)

        assert exc_info.value.error_code == ErrorCode.GOOGLE_QUOTA_EXCEEDED

    def test_retries_exhausted(self, service):
        request = MagicMock()
        request.execute.side_effect = http_error(429)

        with patch("concrete_orders.services.sheets_sync.time.sleep"):
            with pytest.raises(APIError) as exc_info:
                service._execute_with_retry(request)

        assert exc_info.value.error_code == ErrorCode.GOOGLE_API_ERROR
        assert request.execute.call_count == SheetsSyncService.MAX_RETRIES


class TestAuthentication:
    """Tests for credential source selection."""

    INFO = {"type": "service_account", "client_email": "bot@example.iam.gserviceaccount.com"}

    @pytest.fixture
    def mock_settings(self):
        with patch("concrete_orders.services.sheets_sync.settings") as mock:
            mock.google_application_credentials_json = ""
            mock.google_application_credentials_base64 = ""
            mock.google_key_path_resolved = None
            yield mock

    @pytest.fixture
    def mock_credentials(self):
        with patch("concrete_orders.services.sheets_sync.service_account") as mock:
            yield mock

    @pytest.fixture
    def mock_build(self):
        with patch("concrete_orders.services.sheets_sync.build") as mock:
            yield mock

    def test_json_env(self, mock_settings, mock_credentials, mock_build):
        mock_settings.google_application_credentials_json = json.dumps(self.INFO)

        SheetsSyncService(MagicMock())._get_service()

        info = mock_credentials.Credentials.from_service_account_info.call_args.args[0]
        assert info == self.INFO
        mock_build.assert_called_once()

    def test_base64_env(self, mock_settings, mock_credentials, mock_build):
        encoded = base64.b64encode(json.dumps(self.INFO).encode("utf-8")).decode("ascii")
        mock_settings.google_application_credentials_base64 = encoded

        SheetsSyncService(MagicMock())._get_service()

        info = mock_credentials.Credentials.from_service_account_info.call_args.args[0]
        assert info == self.INFO

    def test_key_file(self, mock_settings, mock_credentials, mock_build, tmp_path):
        key_file = tmp_path / "key.json"
        key_file.write_text(json.dumps(self.INFO), encoding="utf-8")
        mock_settings.google_key_path_resolved = key_file

        SheetsSyncService(MagicMock())._get_service()

        info = mock_credentials.Credentials.from_service_account_info.call_args.args[0]
        assert info == self.INFO

    def test_invalid_json(self, mock_settings, mock_credentials, mock_build):
        mock_settings.google_application_credentials_json = "{not json"

        with pytest.raises(APIError) as exc_info:
            SheetsSyncService(MagicMock())._get_service()

        assert exc_info.value.error_code == ErrorCode.GOOGLE_AUTH_FAILED

    def test_no_credentials(self, mock_settings, mock_credentials, mock_build):
        with pytest.raises(APIError) as exc_info:
            SheetsSyncService(MagicMock())._get_service()

        assert exc_info.value.error_code == ErrorCode.GOOGLE_SHEETS_DISABLED
