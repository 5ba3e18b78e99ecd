"""
Point-in-time order status for the purchasing user.

Success is decided strictly by the existence of an active entitlement tied
to the order, not by the order's own status, so a paid order whose grant
is not yet visible reads as ``pending``. Lookups are ownership-scoped and
any store failure reads as ``failed``.

A repeat purchase of the same product revokes the earlier order's grant, so
that earlier paid order reads as ``pending`` from then on; access is
reported through the newer order.
"""

import enum
import logging
from typing import Optional

from sqlalchemy.orm import Session

from access_core.models.order import TERMINAL_NEGATIVE_STATUSES
from access_core.repositories import entitlement_repository, order_repository

logger = logging.getLogger(__name__)


class OrderStatusResult(str, enum.Enum):
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"
    NOT_FOUND = "not_found"


def get_order_status(
    db: Session,
    user_id: Optional[str],
    external_order_reference: Optional[str],
) -> OrderStatusResult:
    """
    Resolve the caller's view of an order.

    Another user's order is reported as NOT_FOUND regardless of its state.
    """
    if not user_id or not external_order_reference:
        return OrderStatusResult.NOT_FOUND

    try:
        order = order_repository.get_order_by_reference(db, external_order_reference, user_id=user_id)
        if order is None:
            return OrderStatusResult.NOT_FOUND

        if entitlement_repository.get_entitlement_for_order(db, order.id) is not None:
            return OrderStatusResult.SUCCESS

        if order.status in TERMINAL_NEGATIVE_STATUSES:
            return OrderStatusResult.FAILED

        return OrderStatusResult.PENDING

    except Exception as e:
        logger.error(
            "Order status lookup failed",
            extra={
                "user_id": user_id,
                "external_order_reference": external_order_reference,
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )
        return OrderStatusResult.FAILED
