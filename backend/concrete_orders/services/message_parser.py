"""Concrete order message parser.

Turns free-form LINE group messages (Thai + Latin) into structured OrderItem
records. Everything is rule based: each field has an ordered table of
regular expressions and the first rule that yields a value wins, so the more
specific patterns (e.g. "รวมทั้งหมด = 0.7 คิว") are always tried before the
generic ones (any "<number> คิว").

Example message:
    21/01/69
    โรง4 สั่งคอนกรีต
    A42-L-Wall-H200
    Counterfort 8 ตัว
    จำนวนปูน=0.7คิว
    รวมทั้งหมด = 0.7 คิว

The parser is pure: no I/O, no shared state, never raises on bad input.
Fields that cannot be found are None.
"""

import logging
import re
from datetime import date
from typing import Any, Callable, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from ..models.order_item import OrderItem

logger = logging.getLogger(__name__)


MIN_MESSAGE_LENGTH = 10
MIN_INDICATORS = 2
MAX_DETAIL_LENGTH = 500
MAX_SUPERVISOR_LENGTH = 50

# Counting words (ลักษณนาม) accepted after a product quantity
PRODUCT_UNITS = ("แผ่น", "ตัว", "ต้น", "ชุด", "คู่", "ชิ้น", "ท่อน", "วง", "ลูก", "กล่อง")
CEMENT_UNIT = "คิว"

_UNIT = "(" + "|".join(PRODUCT_UNITS) + ")"
_QUANTITY = r"([0-9]+(?:\.[0-9]+)?)"
_DECIMAL = r"([0-9]+(?:\.[0-9]+)?|\.[0-9]+)"
# A + two digits, optionally followed by sub-code segments (A35-FZC-F60).
# Must not be glued to a preceding Latin word or digit.
_CODE = r"(?<![A-Za-z0-9_])(A[0-9]{2}[A-Za-z0-9\-]*)"


class ExtractionRule(NamedTuple):
    """One entry of an ordered extraction cascade."""

    name: str
    pattern: re.Pattern[str]
    extract: Callable[["re.Match[str]"], Any]


class ItemCandidate(NamedTuple):
    """Product line found in a message, before header fields are attached."""

    code: str
    quantity: Optional[float]
    unit: Optional[str]
    detail: Optional[str]


def _first_match(rules: Sequence[ExtractionRule], text: str) -> Any:
    """Run a cascade: rules in order, matches left to right, first value wins."""
    for rule in rules:
        for match in rule.pattern.finditer(text):
            value = rule.extract(match)
            if value is not None:
                logger.debug(f"Rule '{rule.name}' matched {match.group(0)!r}")
                return value
    return None


# ============================================================
# Classification
# ============================================================

ORDER_INDICATORS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"สั่งคอนกรีต"),
    re.compile(r"A[0-9]{2}", re.IGNORECASE),
    re.compile(CEMENT_UNIT),
    re.compile(r"โรง\s*[0-9]+"),
)


def count_order_indicators(text: str) -> int:
    """Number of independent order indicators present in the text."""
    return sum(1 for pattern in ORDER_INDICATORS if pattern.search(text))


def is_concrete_order_message(text: Optional[str]) -> bool:
    """
    Decide whether a message is a concrete order.

    At least two of the four indicators (สั่งคอนกรีต, product code,
    คิว, โรง<N>) must be present, so a single stray match does not
    trigger extraction.

    Args:
        text: Raw message text

    Returns:
        True if the message should be parsed as an order
    """
    if not text or len(text) < MIN_MESSAGE_LENGTH:
        return False
    return count_order_indicators(text) >= MIN_INDICATORS


# ============================================================
# Header fields
# ============================================================

def _to_iso_date(match: "re.Match[str]") -> Optional[str]:
    day, month, year = (int(group) for group in match.groups())

    if year >= 2500:
        # 4-digit Buddhist era, e.g. 2569
        year -= 543
    elif year < 100:
        if year >= 43:
            # 2-digit Buddhist era, e.g. 69 -> 2569 -> 2026
            year += 1957
        else:
            # 2-digit Common era, e.g. 26 -> 2026
            year += 2000

    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


DATE_RULES = (
    ExtractionRule(
        "day_month_year",
        re.compile(r"([0-9]{1,2})[/\-.]([0-9]{1,2})[/\-.]([0-9]{2,4})"),
        _to_iso_date,
    ),
)


def _int_group(match: "re.Match[str]") -> int:
    return int(match.group(1))


FACTORY_RULES = (
    ExtractionRule("factory_th", re.compile(r"โรง(?:งาน)?\s*([0-9]+)", re.IGNORECASE), _int_group),
    ExtractionRule("factory_en", re.compile(r"factory\s*([0-9]+)", re.IGNORECASE), _int_group),
)


def _supervisor_name(match: "re.Match[str]") -> Optional[str]:
    name = match.group(1).strip()[:MAX_SUPERVISOR_LENGTH]
    return name or None


SUPERVISOR_RULES = (
    ExtractionRule("explicit", re.compile(r"ผู้ดูแล[:\s]*(.+)"), _supervisor_name),
    ExtractionRule("phi", re.compile(r"พี่(\S+)"), _supervisor_name),
    ExtractionRule("contractor", re.compile(r"ผรม\.?\s*(\S+)"), _supervisor_name),
    ExtractionRule("responsible", re.compile(r"ผู้รับผิดชอบ[:\s]*(.+)"), _supervisor_name),
)


def _float_group(match: "re.Match[str]") -> float:
    return float(match.group(1))


# Grand total first: messages often list sub-totals before the real total
CEMENT_RULES = (
    ExtractionRule(
        "grand_total",
        re.compile(rf"รวม(?:ทั้งหมด)?\s*=?\s*{_DECIMAL}\s*{CEMENT_UNIT}"),
        _float_group,
    ),
    ExtractionRule(
        "cement_amount",
        re.compile(rf"จำนวน(?:ปูน|คอนกรีต)?\s*=?\s*{_DECIMAL}\s*{CEMENT_UNIT}"),
        _float_group,
    ),
    ExtractionRule("equals", re.compile(rf"=\s*{_DECIMAL}\s*{CEMENT_UNIT}"), _float_group),
    ExtractionRule("any", re.compile(rf"{_DECIMAL}\s*{CEMENT_UNIT}"), _float_group),
)


def parse_date(text: Optional[str]) -> Optional[str]:
    """
    Extract the order date as YYYY-MM-DD (Common Era).

    Supports 21/01/69, 21/1/69, 21-01-2569, 20/1/2026, 15.12.68.
    Matches that are not a real calendar day are skipped.

    Args:
        text: Message text

    Returns:
        ISO date string or None
    """
    if not text:
        return None
    return _first_match(DATE_RULES, text)


def parse_factory(text: Optional[str]) -> Optional[int]:
    """Extract the factory number (โรง4, โรง 4, โรงงาน4, factory 4)."""
    if not text:
        return None
    return _first_match(FACTORY_RULES, text)


def parse_supervisor(text: Optional[str]) -> Optional[str]:
    """Extract the supervisor name, trimmed to 50 characters."""
    if not text:
        return None
    return _first_match(SUPERVISOR_RULES, text)


def parse_cement_quantity(text: Optional[str]) -> Optional[float]:
    """
    Extract the total concrete volume in คิว.

    Supports "รวมทั้งหมด = 0.7 คิว", "จำนวนปูน=0.7คิว", "=0.35คิว", "1.1 คิว".
    The first rule that matches wins; values are never summed.

    Args:
        text: Message text

    Returns:
        Volume or None
    """
    if not text:
        return None
    return _first_match(CEMENT_RULES, text)


# ============================================================
# Product fields
# ============================================================

CODE_PATTERN = re.compile(_CODE, re.IGNORECASE)

ITEM_PATTERN = re.compile(
    _CODE + rf"\s*(?:จำนวน\s*)?{_QUANTITY}\s*{_UNIT}",
    re.IGNORECASE,
)


def _quantity_and_unit(match: "re.Match[str]") -> Tuple[float, str]:
    return float(match.group(1)), match.group(2)


QUANTITY_RULES = (
    ExtractionRule("equals", re.compile(rf"=\s*{_QUANTITY}\s*{_UNIT}"), _quantity_and_unit),
    ExtractionRule("any", re.compile(rf"{_QUANTITY}\s*{_UNIT}"), _quantity_and_unit),
)

DETAIL_SKIP_PATTERNS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"[0-9]{1,2}[/\-.][0-9]{1,2}[/\-.][0-9]{2,4}"),  # full-line date
    re.compile(r"วันที่.*", re.DOTALL),
    re.compile(r"โรง\s*[0-9]+\s*สั่งคอนกรีต.*", re.DOTALL),
    re.compile(r"สั่งคอนกรีต.*", re.IGNORECASE | re.DOTALL),
    re.compile(r"รวม.*", re.DOTALL),
)


def canonical_product_code(token: str) -> str:
    """
    Normalize a matched code token.

    Upper-case sub-codes belong to the code (A35-FZC-F60). Segments with
    lower-case letters are a description typed right after the code
    (A42-L-Wall-H200, A35-Fzc-I15Ns-C200), so only the base code is kept.

    Examples:
        >>> canonical_product_code("A35-FZC-F60")
        'A35-FZC-F60'
        >>> canonical_product_code("A42-L-Wall-H200")
        'A42'
        >>> canonical_product_code("a35-")
        'A35'
    """
    token = token.rstrip("-")
    base, suffix = token[:3], token[3:]
    if any(ch.islower() for ch in suffix):
        return base.upper()
    return token.upper()


def parse_product_code(text: Optional[str]) -> Optional[str]:
    """Extract the first product code (A35, A42, A35-FZC-F60)."""
    if not text:
        return None
    match = CODE_PATTERN.search(text)
    return canonical_product_code(match.group(1)) if match else None


def parse_product_quantity(text: Optional[str]) -> Tuple[Optional[float], Optional[str]]:
    """
    Extract one product quantity and its unit.

    "=20แผ่น" is preferred over a bare "8 ตัว".

    Args:
        text: Message text

    Returns:
        (quantity, unit), or (None, None) when not found
    """
    if not text:
        return None, None
    found = _first_match(QUANTITY_RULES, text)
    return found if found is not None else (None, None)


def parse_product_detail(text: Optional[str]) -> Optional[str]:
    """
    Build the product description from the message body.

    Drops date lines, "วันที่" lines, "โรงN สั่งคอนกรีต" headers, lines
    starting with "สั่งคอนกรีต" and "รวม..." total lines.

    Args:
        text: Message text

    Returns:
        Remaining lines joined by newlines (max 500 chars), or None
    """
    if not text:
        return None

    kept = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if any(pattern.fullmatch(stripped) for pattern in DETAIL_SKIP_PATTERNS):
            continue
        kept.append(stripped)

    detail = "\n".join(kept)[:MAX_DETAIL_LENGTH]
    return detail or None


def iter_item_matches(text: str) -> Iterator[ItemCandidate]:
    """
    Lazily scan the whole text for "<code> [จำนวน] <qty> <unit>" groups.

    Matches are non-overlapping, left to right, and may sit anywhere in the
    text (several on one line is fine).
    """
    for match in ITEM_PATTERN.finditer(text):
        yield ItemCandidate(
            code=canonical_product_code(match.group(1)),
            quantity=float(match.group(2)),
            unit=match.group(3),
            detail=match.group(0)[:MAX_DETAIL_LENGTH],
        )


def parse_items(text: Optional[str]) -> List[ItemCandidate]:
    """
    Extract all product lines of a message.

    Falls back to a single item (first product code, first quantity,
    filtered message body as detail) when no code+quantity+unit group is
    present. Returns an empty list when there is no product code at all.
    """
    if not text:
        return []

    items = list(iter_item_matches(text))
    if items:
        return items

    code = parse_product_code(text)
    if code is None:
        return []

    quantity, unit = parse_product_quantity(text)
    return [ItemCandidate(code=code, quantity=quantity, unit=unit, detail=parse_product_detail(text))]


# ============================================================
# Entry point
# ============================================================

def parse_message(text: Optional[str]) -> Optional[List[OrderItem]]:
    """
    Parse a LINE message into order items.

    All items share the date, factory, supervisor and raw message. The total
    concrete volume is put on the first item only so that summing the
    column does not double count; with several items each one is noted as
    "รายการที่ k/n".

    Args:
        text: Message text from LINE

    Returns:
        Non-empty list of OrderItem, or None when the message is not an
        order or has no product code
    """
    if not is_concrete_order_message(text):
        return None

    order_date = parse_date(text)
    factory_id = parse_factory(text)
    supervisor = parse_supervisor(text)
    total_cement = parse_cement_quantity(text)
    items = parse_items(text)

    if not items:
        logger.debug("Order indicators present but no product code found")
        return None

    count = len(items)
    return [
        OrderItem(
            order_date=order_date,
            factory_id=factory_id,
            product_code=item.code,
            product_detail=item.detail,
            product_quantity=item.quantity,
            product_unit=item.unit,
            cement_quantity=total_cement if index == 0 else None,
            loaded_quantity=None,
            difference=None,
            supervisor=supervisor,
            notes=f"รายการที่ {index + 1}/{count}" if count > 1 else None,
            raw_message=text,
        )
        for index, item in enumerate(items)
    ]
