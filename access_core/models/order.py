"""
Order model.

One row per payment attempt, created when checkout starts.

Lifecycle (forward only, never back to pending):
- PENDING -> PAID       (webhook confirmation or reconciliation sweep)
- PENDING -> FAILED     (gateway reported failure)
- PENDING -> CANCELLED  (gateway reported cancellation)

Orders are an append-only financial record and are never deleted.
"""

import enum

from sqlalchemy import Column, String, Integer, Index

from access_core.db_base import Base
from access_core.models.base import TimestampMixin, generate_uuid


class OrderStatus(str, enum.Enum):
    """Payment attempt status."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


TERMINAL_NEGATIVE_STATUSES = frozenset({
    OrderStatus.FAILED.value,
    OrderStatus.CANCELLED.value,
})


class Order(Base, TimestampMixin):
    """A single checkout / payment attempt for one product."""

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    external_order_reference = Column(
        String(255),
        nullable=False,
        unique=True,
        comment="Order id issued by the payment gateway",
    )

    user_id = Column(String(255), nullable=False, index=True)
    product_id = Column(String(255), nullable=False, index=True)

    status = Column(
        String(20),
        nullable=False,
        default=OrderStatus.PENDING.value,
        comment="pending | paid | failed | cancelled",
    )

    amount = Column(
        Integer,
        nullable=False,
        comment="Amount in minor currency units",
    )

    currency = Column(String(3), nullable=False, default="INR")

    __table_args__ = (
        # Reconciliation candidate scan
        Index("ix_orders_status_created_at", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, ref={self.external_order_reference}, status={self.status})>"
