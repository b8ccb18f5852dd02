"""Models package."""

from .order_item import OrderItem
from .stored_order import StoredOrder
from .order_record import ConcreteOrder
from .order_filters import OrderFilters
from .line_event import LineEvent, LineMessage, LineSource, LineWebhookPayload
from .responses import APIResponse, ErrorResponse, PaginatedResponse

__all__ = [
    "OrderItem",
    "StoredOrder",
    "ConcreteOrder",
    "OrderFilters",
    "LineEvent",
    "LineMessage",
    "LineSource",
    "LineWebhookPayload",
    "APIResponse",
    "ErrorResponse",
    "PaginatedResponse",
]
