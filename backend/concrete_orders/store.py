"""SQL store for concrete orders."""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import String, and_, cast, func, or_
from sqlalchemy.orm import Query, Session, sessionmaker

from .config import settings
from .database import create_db_engine, create_session_factory, init_db
from .models import ConcreteOrder, OrderFilters, OrderItem, StoredOrder
from .services.duplicate_guard import ItemShape
from .utils import ErrorCode, raise_error


logger = logging.getLogger(__name__)

SUMMARY_GROUPS = {
    "factory": ConcreteOrder.factory_id,
    "product": ConcreteOrder.product_code,
}


def local_now() -> datetime:
    """Current wall-clock time in the plant's timezone (naive)."""
    return datetime.now(ZoneInfo(settings.timezone)).replace(tzinfo=None)


class OrderStore:
    """Persistent storage for order items, backed by SQLAlchemy."""

    def __init__(
        self,
        session_factory: sessionmaker,
        clock: Callable[[], datetime] = local_now,
    ):
        """
        Initialize OrderStore.

        Args:
            session_factory: SQLAlchemy session factory
            clock: Source of creation timestamps and "now" for lookback windows
        """
        self._session_factory = session_factory
        self._clock = clock
        logger.info("OrderStore initialized")

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ===== Writes =====

    def insert(self, item: OrderItem) -> StoredOrder:
        """
        Insert an order item.

        The ID and creation time are assigned here, never by the parser.

        Args:
            item: OrderItem to store

        Returns:
            StoredOrder with its new ID
        """
        with self._session() as session:
            record = ConcreteOrder(
                **item.model_dump(),
                synced_to_sheets=False,
                created_at=self._clock(),
            )
            session.add(record)
            session.flush()
            stored = StoredOrder.model_validate(record)

        logger.info(f"Order inserted: #{stored.id} ({stored.product_code})")
        return stored

    def mark_as_synced(self, ids: List[int]) -> int:
        """
        Mark orders as synced to Google Sheets.

        Args:
            ids: Order IDs

        Returns:
            Number of rows updated
        """
        if not ids:
            return 0
        with self._session() as session:
            updated = (
                session.query(ConcreteOrder)
                .filter(ConcreteOrder.id.in_(ids))
                .update({ConcreteOrder.synced_to_sheets: True}, synchronize_session=False)
            )
        logger.info(f"Marked {updated} orders as synced")
        return updated

    def update_product_quantity(self, order_id: int, quantity: float, unit: Optional[str]) -> None:
        """Set product quantity and unit of an existing order."""
        with self._session() as session:
            record = session.get(ConcreteOrder, order_id)
            if record is None:
                raise_error(ErrorCode.ORDER_NOT_FOUND, status_code=404)
            record.product_quantity = quantity
            record.product_unit = unit

    # ===== Duplicate lookups =====

    def _since(self, window_minutes: int) -> datetime:
        return self._clock() - timedelta(minutes=window_minutes)

    @staticmethod
    def _identity_clause(group_id: Optional[str], user_id: Optional[str]):
        # Group messages are keyed on the group, direct messages on the user
        if group_id:
            return ConcreteOrder.line_group_id == group_id
        return and_(
            ConcreteOrder.line_user_id == user_id,
            ConcreteOrder.line_group_id.is_(None),
        )

    @staticmethod
    def _most_recent_id(query: Query) -> Optional[int]:
        row = query.order_by(ConcreteOrder.created_at.desc(), ConcreteOrder.id.desc()).first()
        return row[0] if row else None

    def find_recent_by_raw_message(
        self,
        raw_message: str,
        group_id: Optional[str],
        user_id: Optional[str],
        window_minutes: int,
    ) -> Optional[int]:
        """
        Find the most recent order with the same raw message and sender.

        Args:
            raw_message: Message text, compared verbatim
            group_id: LINE group ID
            user_id: LINE user ID
            window_minutes: Lookback window

        Returns:
            Order ID or None
        """
        if not group_id and not user_id:
            return None

        with self._session() as session:
            query = session.query(ConcreteOrder.id).filter(
                ConcreteOrder.raw_message == raw_message,
                self._identity_clause(group_id, user_id),
                ConcreteOrder.created_at >= self._since(window_minutes),
            )
            return self._most_recent_id(query)

    def find_recent_by_item_shape(self, item: OrderItem, window_minutes: int) -> Optional[int]:
        """
        Find the most recent order with the same item tuple and sender.

        NULL columns are coalesced to the same sentinels ItemShape uses.

        Args:
            item: Candidate item with sender identity attached
            window_minutes: Lookback window

        Returns:
            Order ID or None
        """
        if not item.line_group_id and not item.line_user_id:
            return None

        shape = ItemShape.from_item(item)
        with self._session() as session:
            query = session.query(ConcreteOrder.id).filter(
                func.coalesce(ConcreteOrder.order_date, "") == shape.order_date,
                func.coalesce(cast(ConcreteOrder.factory_id, String), "") == shape.factory_id,
                func.coalesce(ConcreteOrder.product_code, "") == shape.product_code,
                func.coalesce(ConcreteOrder.product_detail, "") == shape.product_detail,
                func.coalesce(ConcreteOrder.cement_quantity, 0) == shape.cement_quantity,
                self._identity_clause(item.line_group_id, item.line_user_id),
                ConcreteOrder.created_at >= self._since(window_minutes),
            )
            return self._most_recent_id(query)

    # ===== Reads =====

    def get_order(self, order_id: int) -> StoredOrder:
        """
        Get an order by ID.

        Raises:
            APIError: If order not found
        """
        with self._session() as session:
            record = session.get(ConcreteOrder, order_id)
            if record is None:
                raise_error(ErrorCode.ORDER_NOT_FOUND, status_code=404)
            return StoredOrder.model_validate(record)

    def get_unsynced_orders(self) -> List[StoredOrder]:
        """Orders not yet written to Google Sheets, oldest first."""
        with self._session() as session:
            records = (
                session.query(ConcreteOrder)
                .filter(ConcreteOrder.synced_to_sheets.is_(False))
                .order_by(ConcreteOrder.created_at.asc(), ConcreteOrder.id.asc())
                .all()
            )
            return [StoredOrder.model_validate(record) for record in records]

    def get_orders_missing_quantity(self) -> List[Tuple[int, Optional[str]]]:
        """(id, raw_message) of orders without a product quantity."""
        with self._session() as session:
            rows = (
                session.query(ConcreteOrder.id, ConcreteOrder.raw_message)
                .filter(ConcreteOrder.product_quantity.is_(None))
                .order_by(ConcreteOrder.id.asc())
                .all()
            )
            return [(row[0], row[1]) for row in rows]

    @staticmethod
    def _apply_filters(query: Query, filters: Optional[OrderFilters]) -> Query:
        if filters is None:
            return query
        if filters.start_date:
            query = query.filter(ConcreteOrder.order_date >= filters.start_date)
        if filters.end_date:
            query = query.filter(ConcreteOrder.order_date <= filters.end_date)
        if filters.factory_ids:
            query = query.filter(ConcreteOrder.factory_id.in_(filters.factory_ids))
        if filters.product_codes:
            query = query.filter(ConcreteOrder.product_code.in_(filters.product_codes))
        if filters.supervisors:
            query = query.filter(ConcreteOrder.supervisor.in_(filters.supervisors))
        if filters.line_group_ids:
            query = query.filter(ConcreteOrder.line_group_id.in_(filters.line_group_ids))
        if filters.line_user_ids:
            query = query.filter(ConcreteOrder.line_user_id.in_(filters.line_user_ids))
        if filters.synced is not None:
            query = query.filter(ConcreteOrder.synced_to_sheets.is_(filters.synced))
        if filters.min_cement is not None:
            query = query.filter(ConcreteOrder.cement_quantity >= filters.min_cement)
        if filters.max_cement is not None:
            query = query.filter(ConcreteOrder.cement_quantity <= filters.max_cement)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.filter(
                or_(
                    ConcreteOrder.product_code.ilike(pattern),
                    ConcreteOrder.product_detail.ilike(pattern),
                    ConcreteOrder.supervisor.ilike(pattern),
                    ConcreteOrder.notes.ilike(pattern),
                    ConcreteOrder.raw_message.ilike(pattern),
                )
            )
        return query

    def list_orders(
        self,
        filters: Optional[OrderFilters] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[StoredOrder]:
        """
        List orders, newest first.

        Args:
            filters: Optional filters
            limit: Page size
            offset: Rows to skip

        Returns:
            List of StoredOrder
        """
        with self._session() as session:
            query = self._apply_filters(session.query(ConcreteOrder), filters)
            records = (
                query.order_by(ConcreteOrder.created_at.desc(), ConcreteOrder.id.desc())
                .limit(limit)
                .offset(offset)
                .all()
            )
            return [StoredOrder.model_validate(record) for record in records]

    def count_orders(self, filters: Optional[OrderFilters] = None) -> int:
        """Count orders matching the filters."""
        with self._session() as session:
            query = self._apply_filters(session.query(func.count(ConcreteOrder.id)), filters)
            return query.scalar() or 0

    # ===== Reports =====

    def get_daily_summary(self, order_date: str) -> List[Dict]:
        """
        Per-factory order count and concrete total for one day.

        Args:
            order_date: YYYY-MM-DD

        Returns:
            Rows of {factory_id, order_count, total_cement}
        """
        with self._session() as session:
            rows = (
                session.query(
                    ConcreteOrder.factory_id,
                    func.count(ConcreteOrder.id),
                    func.sum(ConcreteOrder.cement_quantity),
                )
                .filter(ConcreteOrder.order_date == order_date)
                .group_by(ConcreteOrder.factory_id)
                .order_by(ConcreteOrder.factory_id)
                .all()
            )
        return [
            {"factory_id": factory_id, "order_count": count, "total_cement": total}
            for factory_id, count, total in rows
        ]

    def get_summary(
        self,
        period_value: str,
        group_by: str = "factory",
        period: str = "daily",
    ) -> List[Dict]:
        """
        Order count and concrete total grouped by factory or product code.

        Args:
            period_value: YYYY-MM-DD for daily, YYYY-MM for monthly
            group_by: "factory" or "product"
            period: "daily" or "monthly"

        Returns:
            Rows of {group_key, order_count, total_cement}, largest total first
        """
        column = SUMMARY_GROUPS.get(group_by)
        if column is None or not period_value:
            return []

        if period == "monthly":
            period_clause = ConcreteOrder.order_date.like(f"{period_value}-%")
        else:
            period_clause = ConcreteOrder.order_date == period_value

        total_cement = func.sum(ConcreteOrder.cement_quantity)
        with self._session() as session:
            rows = (
                session.query(column, func.count(ConcreteOrder.id), total_cement)
                .filter(period_clause)
                .group_by(column)
                .order_by(total_cement.desc())
                .all()
            )
        return [
            {"group_key": key, "order_count": count, "total_cement": total}
            for key, count, total in rows
        ]

    # ===== Utility Methods =====

    def get_stats(self) -> Dict[str, int]:
        """
        Get store statistics.

        Returns:
            Dictionary with order counts
        """
        return {
            "total_orders": self.count_orders(),
            "unsynced_orders": self.count_orders(OrderFilters(synced=False)),
        }


# Global store instance (singleton pattern)
_store: Optional[OrderStore] = None


def get_store() -> OrderStore:
    """
    Get or create global store instance.

    Creates the engine from settings and initializes tables on first use.

    Returns:
        OrderStore instance
    """
    global _store
    if _store is None:
        engine = create_db_engine()
        init_db(engine)
        _store = OrderStore(create_session_factory(engine))
    return _store
