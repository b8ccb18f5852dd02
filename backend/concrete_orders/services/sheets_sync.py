"""Google Sheets sync for stored orders.

Appends unsynced orders to one tab of the office spreadsheet in the fixed
12-column layout, then flags them as synced. The tab is chosen by index
(GOOGLE_SHEET_INDEX) and its real title is looked up from the API, since the
file name and tab name usually differ.
"""

import base64
import json
import logging
import re
import threading
import time
from typing import Any, Dict, List, Optional

from cachetools import TTLCache
from pydantic import BaseModel
from google.oauth2 import service_account
from googleapiclient.discovery import build, Resource
from googleapiclient.errors import HttpError

from ..config import settings
from ..models import StoredOrder
from ..store import OrderStore, get_store
from ..utils import APIError, ErrorCode, raise_error
from .service_factory import service_factory

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

HEADERS = [
    "วันที่",
    "โรงงาน",
    "รหัสสินค้า",
    "รายการสินค้าที่ผลิต",
    "จำนวนสินค้า",
    "หน่วย",
    "จำนวนปูน (คิว)",
    "จำนวนที่โหลด",
    "ผลต่าง",
    "ผู้ดูแล",
    "หมายเหตุ",
    "สร้างเมื่อ",
]

DEFAULT_SHEET_NAME = "Sheet1"

_NEEDS_QUOTES = re.compile(r"[\s'\"]")


class SyncResult(BaseModel):
    """Result of one sync run."""

    synced: int = 0
    error: Optional[str] = None


def build_range(sheet_name: str, cells: str) -> str:
    """
    Build an A1 range, quoting the tab name when it contains spaces or quotes.

    Args:
        sheet_name: Tab title
        cells: Cell range, e.g. "A:L"

    Returns:
        Range string such as "'Order log'!A:L"
    """
    if _NEEDS_QUOTES.search(sheet_name):
        escaped = sheet_name.replace("'", "''")
        return f"'{escaped}'!{cells}"
    return f"{sheet_name}!{cells}"


def order_to_row(order: StoredOrder) -> List[Any]:
    """Spreadsheet row for an order, empty strings for missing values."""
    values = [
        order.order_date,
        order.factory_id,
        order.product_code,
        order.product_detail,
        order.product_quantity,
        order.product_unit,
        order.cement_quantity,
        order.loaded_quantity,
        order.difference,
        order.supervisor,
        order.notes,
        order.created_at.strftime("%Y-%m-%d %H:%M:%S") if order.created_at else None,
    ]
    return ["" if value is None else value for value in values]


class SheetsSyncService:
    """Service for pushing stored orders to Google Sheets (12 columns)."""

    MAX_RETRIES = 3
    BASE_DELAY = 1.0  # seconds
    SHEET_NAME_TTL = 300  # seconds

    def __init__(self, store: OrderStore, service: Optional[Resource] = None):
        """
        Initialize SheetsSyncService.

        Args:
            store: Order storage to read unsynced rows from
            service: Prebuilt Sheets API resource (authenticated lazily if None)
        """
        self.store = store
        self._service = service
        self._sheet_names: TTLCache = TTLCache(maxsize=16, ttl=self.SHEET_NAME_TTL)
        self._sync_lock = threading.Lock()

    def _get_service(self) -> Resource:
        """Get or create Sheets API service instance."""
        if self._service is None:
            self._service = self._authenticate()
        return self._service

    @staticmethod
    def _load_credentials_info() -> Dict[str, Any]:
        """Service account info from JSON env, then base64 env, then key file."""
        if settings.google_application_credentials_json:
            try:
                return json.loads(settings.google_application_credentials_json)
            except ValueError as e:
                raise_error(
                    ErrorCode.GOOGLE_AUTH_FAILED,
                    f"GOOGLE_APPLICATION_CREDENTIALS_JSON ไม่ถูกต้อง: {e}",
                    status_code=500,
                )

        if settings.google_application_credentials_base64:
            try:
                decoded = base64.b64decode(settings.google_application_credentials_base64)
                return json.loads(decoded.decode("utf-8"))
            except ValueError as e:
                raise_error(
                    ErrorCode.GOOGLE_AUTH_FAILED,
                    f"GOOGLE_APPLICATION_CREDENTIALS_BASE64 ไม่ถูกต้อง: {e}",
                    status_code=500,
                )

        key_path = settings.google_key_path_resolved
        if key_path and key_path.exists():
            return json.loads(key_path.read_text(encoding="utf-8"))

        raise_error(
            ErrorCode.GOOGLE_SHEETS_DISABLED,
            "ไม่พบข้อมูลบัญชีบริการ Google",
            status_code=503,
        )

    def _authenticate(self) -> Resource:
        """Authenticate with a service account."""
        info = self._load_credentials_info()
        try:
            credentials = service_account.Credentials.from_service_account_info(
                info,
                scopes=SCOPES,
            )
            service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        except (ValueError, KeyError) as e:
            logger.error(f"Google Sheets authentication failed: {e}")
            raise_error(
                ErrorCode.GOOGLE_AUTH_FAILED,
                f"ยืนยันตัวตน Google Sheets ไม่สำเร็จ: {e}",
                status_code=500,
            )

        logger.info("Google Sheets API authenticated successfully")
        return service

    def _execute_with_retry(self, request):
        """Execute API request with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return request.execute()
            except HttpError as e:
                if e.resp.status == 429:  # Rate limit
                    delay = self.BASE_DELAY * (2 ** attempt)
                    logger.warning(f"Rate limited, waiting {delay}s before retry")
                    time.sleep(delay)
                elif e.resp.status == 403:  # Quota exceeded
                    raise_error(
                        ErrorCode.GOOGLE_QUOTA_EXCEEDED,
                        status_code=503,
                    )
                else:
                    raise
        raise_error(
            ErrorCode.GOOGLE_API_ERROR,
            status_code=500,
        )

    def _spreadsheet_id(self) -> str:
        if not settings.google_sheets_id:
            raise_error(
                ErrorCode.GOOGLE_SHEETS_DISABLED,
                "ยังไม่ได้ตั้งค่า GOOGLE_SHEETS_ID",
                status_code=503,
            )
        return settings.google_sheets_id

    def get_sheet_name(self, spreadsheet_id: str, index: int) -> str:
        """
        Real tab title at the given index (clamped to the last tab).

        Args:
            spreadsheet_id: Spreadsheet ID
            index: Zero-based tab index

        Returns:
            Tab title, "Sheet1" when the spreadsheet reports no tabs
        """
        key = (spreadsheet_id, index)
        if key in self._sheet_names:
            return self._sheet_names[key]

        response = self._execute_with_retry(
            self._get_service().spreadsheets().get(spreadsheetId=spreadsheet_id)
        )
        sheets = response.get("sheets") or []
        if not sheets:
            name = DEFAULT_SHEET_NAME
        else:
            sheet = sheets[min(max(index, 0), len(sheets) - 1)]
            name = sheet.get("properties", {}).get("title") or DEFAULT_SHEET_NAME

        self._sheet_names[key] = name
        return name

    def _write_headers(self, spreadsheet_id: str, sheet_name: str) -> None:
        """Write header row to the tab."""
        self._execute_with_retry(
            self._get_service().spreadsheets().values().update(
                spreadsheetId=spreadsheet_id,
                range=build_range(sheet_name, "A1:L1"),
                valueInputOption="USER_ENTERED",
                body={"values": [HEADERS]},
            )
        )
        logger.info(f"Wrote header row to sheet '{sheet_name}'")

    def ensure_header(self, spreadsheet_id: str, sheet_name: str) -> None:
        """Write the header row unless A1 already holds it."""
        try:
            response = self._execute_with_retry(
                self._get_service().spreadsheets().values().get(
                    spreadsheetId=spreadsheet_id,
                    range=build_range(sheet_name, "A1"),
                )
            )
            values = response.get("values") or [[]]
            a1_value = values[0][0] if values[0] else None
        except HttpError as e:
            logger.warning(f"Could not read header cell: {e}")
            a1_value = None

        if a1_value != HEADERS[0]:
            self._write_headers(spreadsheet_id, sheet_name)

    def create_header_row(self) -> str:
        """
        Write the 12 header labels to A1:L1 of the configured tab.

        Returns:
            Tab title written to

        Raises:
            APIError: If Sheets is not configured or the API call fails
        """
        spreadsheet_id = self._spreadsheet_id()
        sheet_name = self.get_sheet_name(spreadsheet_id, settings.google_sheet_index)
        self._write_headers(spreadsheet_id, sheet_name)
        return sheet_name

    def sync_unsynced(self) -> SyncResult:
        """
        Append all unsynced orders to the sheet and mark them synced.

        Never raises: failures are logged and reported in the result, and the
        rows stay unsynced for the next run. Runs do not overlap; a call made
        while another run is in progress returns at once with nothing synced.

        Returns:
            SyncResult
        """
        if not self._sync_lock.acquire(blocking=False):
            logger.info("Google Sheets sync already running, skipped")
            return SyncResult(synced=0)
        try:
            return self._sync_unsynced()
        finally:
            self._sync_lock.release()

    def _sync_unsynced(self) -> SyncResult:
        try:
            spreadsheet_id = self._spreadsheet_id()
            orders = self.store.get_unsynced_orders()
            if not orders:
                return SyncResult(synced=0)

            sheet_name = self.get_sheet_name(spreadsheet_id, settings.google_sheet_index)
            self.ensure_header(spreadsheet_id, sheet_name)

            logger.info(f"Syncing {len(orders)} orders to Google Sheets ({sheet_name})")
            self._execute_with_retry(
                self._get_service().spreadsheets().values().append(
                    spreadsheetId=spreadsheet_id,
                    range=build_range(sheet_name, "A:L"),
                    valueInputOption="USER_ENTERED",
                    insertDataOption="INSERT_ROWS",
                    body={"values": [order_to_row(order) for order in orders]},
                )
            )

            self.store.mark_as_synced([order.id for order in orders])
            logger.info(f"Synced {len(orders)} orders to Google Sheets")
            return SyncResult(synced=len(orders))

        except APIError as e:
            logger.error(f"Google Sheets sync failed: {e.error_code.value} - {e.message}")
            return SyncResult(synced=0, error=e.message)
        except Exception as e:
            logger.error(f"Google Sheets sync failed: {e}", exc_info=True)
            return SyncResult(synced=0, error=str(e))

    def test_connection(self) -> Dict[str, Any]:
        """
        Check access to the configured spreadsheet.

        Returns:
            {"success": True, "title", "sheets"} or {"success": False, "error"}
        """
        try:
            spreadsheet_id = self._spreadsheet_id()
            response = self._execute_with_retry(
                self._get_service().spreadsheets().get(spreadsheetId=spreadsheet_id)
            )
        except APIError as e:
            return {"success": False, "error": e.message}
        except HttpError as e:
            return {"success": False, "error": str(e)}

        return {
            "success": True,
            "title": response.get("properties", {}).get("title"),
            "sheets": [
                sheet.get("properties", {}).get("title")
                for sheet in response.get("sheets", [])
            ],
        }


@service_factory
def get_sheets_sync_service() -> SheetsSyncService:
    """Get or create the Sheets sync service bound to the global store."""
    return SheetsSyncService(get_store())
