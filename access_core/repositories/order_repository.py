"""
Order store.

Status writes are conditional ``UPDATE .. WHERE status = 'pending'`` so
terminal orders are never revisited, and concurrent settlers learn from the
row count whether they performed the transition. Nothing here commits.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from access_core.models.base import utcnow
from access_core.models.order import Order, OrderStatus


def get_order(db: Session, order_id: str) -> Optional[Order]:
    return db.query(Order).filter(Order.id == order_id).first()


def get_order_by_reference(
    db: Session,
    external_order_reference: str,
    user_id: Optional[str] = None,
) -> Optional[Order]:
    """
    Look up an order by gateway reference.

    When ``user_id`` is given the lookup is ownership-scoped: another user's
    order is indistinguishable from a missing one.
    """
    query = db.query(Order).filter(Order.external_order_reference == external_order_reference)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    return query.first()


def list_stale_pending_orders(db: Session, older_than: datetime, limit: int) -> list[Order]:
    """Pending orders created before ``older_than``, oldest first."""
    return db.query(Order).filter(
        Order.status == OrderStatus.PENDING.value,
        Order.created_at < older_than,
    ).order_by(Order.created_at.asc()).limit(limit).all()


def _transition_from_pending(db: Session, order_id: str, target: OrderStatus) -> bool:
    updated = db.query(Order).filter(
        Order.id == order_id,
        Order.status == OrderStatus.PENDING.value,
    ).update(
        {Order.status: target.value, Order.updated_at: utcnow()},
        synchronize_session="fetch",
    )
    return updated == 1


def mark_order_paid(db: Session, order_id: str) -> bool:
    """pending -> paid. Returns True only for the caller that moved it."""
    return _transition_from_pending(db, order_id, OrderStatus.PAID)


def mark_order_terminal(db: Session, order_id: str, status: OrderStatus) -> bool:
    """pending -> failed | cancelled."""
    if status not in (OrderStatus.FAILED, OrderStatus.CANCELLED):
        raise ValueError(f"Not a terminal negative status: {status}")
    return _transition_from_pending(db, order_id, status)


def count_paid_users(db: Session) -> int:
    """Distinct users with at least one paid order."""
    return db.query(func.count(distinct(Order.user_id))).filter(
        Order.status == OrderStatus.PAID.value,
    ).scalar() or 0
