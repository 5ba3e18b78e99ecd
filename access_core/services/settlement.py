"""
Order settlement.

Shared by the webhook fast path and the reconciliation sweep. Settling an
order performs the conditional ``pending -> paid`` transition and the
order-keyed entitlement upsert in ONE transaction: either both are
committed or neither is, so an order is never left paid without its
entitlement. If the grant fails the order stays pending and the next sweep
retries it.

Running settlement twice for the same order, or concurrently from both
paths, yields exactly one entitlement and no error.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from access_core.models.order import Order, OrderStatus, TERMINAL_NEGATIVE_STATUSES
from access_core.platform.audit import (
    AuditAction,
    AuditActorType,
    AuditEvent,
    write_audit_log_sync,
)
from access_core.repositories import entitlement_repository, order_repository

logger = logging.getLogger(__name__)


class SettlementSource(str, enum.Enum):
    WEBHOOK = "webhook"
    RECONCILIATION = "reconciliation"


class SettlementStatus(str, enum.Enum):
    SETTLED = "settled"  # this call moved the order to paid
    ALREADY_SETTLED = "already_settled"  # order was already paid
    REJECTED = "rejected"  # order is failed / cancelled


@dataclass
class SettlementResult:
    order_id: str
    status: SettlementStatus
    entitlement_created: bool = False
    entitlement_id: Optional[str] = None


_AUDIT_BY_SOURCE = {
    SettlementSource.WEBHOOK: (AuditAction.PAYMENT_CAPTURED, AuditActorType.WEBHOOK),
    SettlementSource.RECONCILIATION: (AuditAction.ORDER_RECONCILED, AuditActorType.SYSTEM),
}


def settle_order(
    db: Session,
    order: Order,
    source: SettlementSource,
    correlation_id: Optional[str] = None,
) -> SettlementResult:
    """
    Settle a captured order: mark it paid and grant its entitlement.

    Raises whatever the store raised after rolling back; the order is then
    still pending.
    """
    try:
        transitioned = order_repository.mark_order_paid(db, order.id)

        if not transitioned:
            db.refresh(order)
            if order.status in TERMINAL_NEGATIVE_STATUSES:
                db.commit()
                logger.warning(
                    "Capture reported for terminal order; not granting",
                    extra={"order_id": order.id, "status": order.status, "source": source.value},
                )
                return SettlementResult(order_id=order.id, status=SettlementStatus.REJECTED)

        grant = entitlement_repository.upsert_entitlement_for_order(db, order)
        db.commit()

    except Exception:
        db.rollback()
        raise

    status = SettlementStatus.SETTLED if transitioned else SettlementStatus.ALREADY_SETTLED
    entitlement_id = grant.entitlement.id if grant.entitlement is not None else None

    logger.info(
        "Order settled",
        extra={
            "order_id": order.id,
            "user_id": order.user_id,
            "product_id": order.product_id,
            "source": source.value,
            "settlement_status": status.value,
            "entitlement_created": grant.created,
        },
    )

    if transitioned:
        action, actor_type = _AUDIT_BY_SOURCE[source]
        event = AuditEvent(
            action=action,
            entity_type="order",
            entity_id=order.id,
            actor_type=actor_type,
            metadata={
                "external_order_reference": order.external_order_reference,
                "user_id": order.user_id,
                "product_id": order.product_id,
                "entitlement_id": entitlement_id,
            },
        )
        if correlation_id:
            event.correlation_id = correlation_id
        write_audit_log_sync(db, event)

    return SettlementResult(
        order_id=order.id,
        status=status,
        entitlement_created=grant.created,
        entitlement_id=entitlement_id,
    )


def fail_order(
    db: Session,
    order: Order,
    status: OrderStatus,
    reason: Optional[str] = None,
) -> bool:
    """
    pending -> failed | cancelled. Returns True if this call moved it.

    Paid orders are terminal and are left untouched.
    """
    try:
        transitioned = order_repository.mark_order_terminal(db, order.id, status)
        db.commit()
    except Exception:
        db.rollback()
        raise

    if not transitioned:
        logger.info(
            "Order not pending; terminal transition skipped",
            extra={"order_id": order.id, "requested_status": status.value},
        )
        return False

    logger.info(
        "Order marked terminal",
        extra={"order_id": order.id, "status": status.value, "reason": reason},
    )
    write_audit_log_sync(db, AuditEvent(
        action=AuditAction.ORDER_CANCELLED if status == OrderStatus.CANCELLED else AuditAction.ORDER_FAILED,
        entity_type="order",
        entity_id=order.id,
        actor_type=AuditActorType.WEBHOOK,
        metadata={"external_order_reference": order.external_order_reference, "reason": reason},
    ))
    return True
