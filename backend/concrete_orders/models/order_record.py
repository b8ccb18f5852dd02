"""Stored concrete order (SQLAlchemy table)."""

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, Text

from ..database import Base


class ConcreteOrder(Base):
    """
    One persisted order item.

    created_at is assigned by the store when the row is inserted and drives
    the duplicate detection windows.
    """
    __tablename__ = "concrete_orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_date = Column(String(10), nullable=True)  # YYYY-MM-DD
    factory_id = Column(Integer, nullable=True)
    product_code = Column(String(100), nullable=True)
    product_detail = Column(Text, nullable=True)
    product_quantity = Column(Float, nullable=True)
    product_unit = Column(String(20), nullable=True)
    cement_quantity = Column(Float, nullable=True)  # คิว
    loaded_quantity = Column(Float, nullable=True)
    difference = Column(Float, nullable=True)
    supervisor = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    raw_message = Column(Text, nullable=True)
    line_user_id = Column(String(64), nullable=True)
    line_group_id = Column(String(64), nullable=True)
    synced_to_sheets = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_order_date", "order_date"),
        Index("idx_factory_id", "factory_id"),
        Index("idx_synced_to_sheets", "synced_to_sheets"),
        Index("idx_created_at", "created_at"),
    )
