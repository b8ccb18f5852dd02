"""Error handling utilities."""

from enum import Enum
from typing import Optional, Any, Dict
import logging


logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Error code enumeration (Thai messages)."""

    # Request errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"

    # Storage errors
    DATABASE_ERROR = "DATABASE_ERROR"

    # Google Sheets errors
    GOOGLE_SHEETS_DISABLED = "GOOGLE_SHEETS_DISABLED"
    GOOGLE_AUTH_FAILED = "GOOGLE_AUTH_FAILED"
    GOOGLE_QUOTA_EXCEEDED = "GOOGLE_QUOTA_EXCEEDED"
    GOOGLE_API_ERROR = "GOOGLE_API_ERROR"

    # Processing errors
    PROCESSING_FAILED = "PROCESSING_FAILED"
    SYNC_FAILED = "SYNC_FAILED"
    MIGRATION_FAILED = "MIGRATION_FAILED"

    # Server errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


ERROR_MESSAGES: Dict[ErrorCode, str] = {
    # Request errors
    ErrorCode.VALIDATION_ERROR: "ข้อมูลไม่ถูกต้อง",
    ErrorCode.INVALID_REQUEST: "คำขอไม่ถูกต้อง",
    ErrorCode.MISSING_REQUIRED_FIELD: "ขาดข้อมูลที่จำเป็น",
    ErrorCode.INVALID_SIGNATURE: "ลายเซ็น LINE ไม่ถูกต้อง",

    # Resource errors
    ErrorCode.NOT_FOUND: "ไม่พบข้อมูล",
    ErrorCode.ORDER_NOT_FOUND: "ไม่พบคำสั่งซื้อ",

    # Storage errors
    ErrorCode.DATABASE_ERROR: "เกิดข้อผิดพลาดกับฐานข้อมูล",

    # Google Sheets errors
    ErrorCode.GOOGLE_SHEETS_DISABLED: "ยังไม่ได้ตั้งค่า Google Sheets",
    ErrorCode.GOOGLE_AUTH_FAILED: "ยืนยันตัวตน Google ไม่สำเร็จ",
    ErrorCode.GOOGLE_QUOTA_EXCEEDED: "โควต้า Google API เต็ม กรุณาลองใหม่ภายหลัง",
    ErrorCode.GOOGLE_API_ERROR: "เรียก Google Sheets API ไม่สำเร็จ",

    # Processing errors
    ErrorCode.PROCESSING_FAILED: "ประมวลผลไม่สำเร็จ",
    ErrorCode.SYNC_FAILED: "ซิงค์ข้อมูลไป Google Sheets ไม่สำเร็จ",
    ErrorCode.MIGRATION_FAILED: "ปรับปรุงข้อมูลเดิมไม่สำเร็จ",

    # Server errors
    ErrorCode.INTERNAL_ERROR: "เกิดข้อผิดพลาดภายในระบบ",
    ErrorCode.SERVICE_UNAVAILABLE: "ระบบไม่พร้อมให้บริการชั่วคราว",
}


class APIError(Exception):
    """Custom API error exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: Optional[str] = None,
        status_code: int = 400,
        details: Optional[Any] = None,
    ):
        """
        Initialize APIError.

        Args:
            error_code: Error code from ErrorCode enum
            message: Custom error message (overrides default)
            status_code: HTTP status code
            details: Additional error details
        """
        self.error_code = error_code
        self.message = message or ERROR_MESSAGES.get(error_code, "เกิดข้อผิดพลาด")
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        """String representation."""
        return self.message


def raise_error(
    error_code: ErrorCode,
    message: Optional[str] = None,
    status_code: int = 400,
    details: Optional[Any] = None,
) -> None:
    """
    Raise an API error.

    Args:
        error_code: Error code from ErrorCode enum
        message: Custom error message (overrides default)
        status_code: HTTP status code
        details: Additional error details

    Raises:
        APIError: Always raises APIError with provided parameters
    """
    raise APIError(
        error_code=error_code,
        message=message,
        status_code=status_code,
        details=details,
    )


def log_error(error: Exception, context: str = "") -> None:
    """
    Log an error with context.

    Args:
        error: Exception to log
        context: Context description
    """
    if isinstance(error, APIError):
        logger.error(
            f"APIError [{context}]: {error.error_code} - {error.message}",
            extra={"details": error.details},
        )
    else:
        logger.error(f"Error [{context}]: {str(error)}", exc_info=True)
