"""Utils package."""

from .errors import APIError, ErrorCode, raise_error, log_error
from .line_signature import verify_line_signature

__all__ = [
    "APIError",
    "ErrorCode",
    "raise_error",
    "log_error",
    "verify_line_signature",
]
