"""LINE webhook signature validation."""

import base64
import hashlib
import hmac
import logging
from typing import Optional

from .errors import ErrorCode, raise_error


logger = logging.getLogger(__name__)


def verify_line_signature(
    body: bytes,
    signature: Optional[str],
    channel_secret: str,
) -> bool:
    """
    Verify the X-Line-Signature header of a webhook request.

    The signature is the Base64 encoded HMAC-SHA256 digest of the raw
    request body, keyed with the channel secret.

    Args:
        body: Raw request body
        signature: Value of the X-Line-Signature header
        channel_secret: LINE channel secret

    Returns:
        True if valid

    Raises:
        APIError: If the signature is missing or does not match
    """
    if not signature:
        raise_error(ErrorCode.INVALID_SIGNATURE, "ไม่พบ X-Line-Signature", status_code=401)

    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("utf-8")

    if not hmac.compare_digest(expected, signature):
        logger.warning("LINE signature mismatch")
        raise_error(ErrorCode.INVALID_SIGNATURE, status_code=401)

    return True
