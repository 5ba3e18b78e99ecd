"""
Entitlement store.

Point reads for the resolver and the idempotent grant used by settlement.
The grant's idempotency boundary is the UNIQUE constraint on
``entitlements.order_id``: the insert is ``ON CONFLICT (order_id) DO
NOTHING``, so a second grant for the same order (sequential or concurrent)
is a no-op rather than an error. Nothing here commits; callers own the
transaction.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from access_core.entitlements.errors import EntitlementConflictError
from access_core.models.base import generate_uuid, utcnow
from access_core.models.entitlement import Entitlement, EntitlementStatus
from access_core.models.order import Order
from access_core.repositories.base import insert_on_conflict_do_nothing

logger = logging.getLogger(__name__)


class GrantResult(str, enum.Enum):
    CREATED = "created"
    CONFLICT_IGNORED = "conflict_ignored"


@dataclass
class GrantOutcome:
    result: GrantResult
    entitlement: Optional[Entitlement]
    superseded: int = 0

    @property
    def created(self) -> bool:
        return self.result == GrantResult.CREATED


def get_active_entitlement(db: Session, user_id: str, product_id: str) -> Optional[Entitlement]:
    """Single-row lookup of the active grant for (user_id, product_id)."""
    return db.query(Entitlement).filter(
        Entitlement.user_id == user_id,
        Entitlement.product_id == product_id,
        Entitlement.status == EntitlementStatus.ACTIVE.value,
    ).first()


def get_entitlement_for_order(
    db: Session,
    order_id: str,
    active_only: bool = True,
) -> Optional[Entitlement]:
    query = db.query(Entitlement).filter(Entitlement.order_id == order_id)
    if active_only:
        query = query.filter(Entitlement.status == EntitlementStatus.ACTIVE.value)
    return query.first()


def _supersede_other_grants(db: Session, order: Order) -> int:
    """Revoke active grants for the same pair that belong to other orders."""
    return db.query(Entitlement).filter(
        Entitlement.user_id == order.user_id,
        Entitlement.product_id == order.product_id,
        Entitlement.status == EntitlementStatus.ACTIVE.value,
        Entitlement.order_id != order.id,
    ).update(
        {Entitlement.status: EntitlementStatus.REVOKED.value},
        synchronize_session="fetch",
    )


def upsert_entitlement_for_order(db: Session, order: Order) -> GrantOutcome:
    """
    Grant access for a settled order, at most once per order.

    Returns CREATED when this call inserted the row and CONFLICT_IGNORED
    when a row for the order already existed. Raises
    EntitlementConflictError only if a concurrent writer activated a grant
    for the same pair from a different order between supersede and insert.
    """
    existing = get_entitlement_for_order(db, order.id, active_only=False)
    if existing is not None:
        return GrantOutcome(GrantResult.CONFLICT_IGNORED, existing)

    superseded = _supersede_other_grants(db, order)
    if superseded:
        logger.info(
            "Superseded prior entitlement",
            extra={
                "order_id": order.id,
                "user_id": order.user_id,
                "product_id": order.product_id,
                "superseded": superseded,
            },
        )

    try:
        inserted = insert_on_conflict_do_nothing(
            db,
            Entitlement.__table__,
            {
                "id": generate_uuid(),
                "user_id": order.user_id,
                "product_id": order.product_id,
                "order_id": order.id,
                "status": EntitlementStatus.ACTIVE.value,
                "granted_at": utcnow(),
            },
            index_elements=["order_id"],
        )
    except IntegrityError as e:
        raise EntitlementConflictError(order.user_id, order.product_id, order.id) from e

    entitlement = get_entitlement_for_order(db, order.id, active_only=False)
    if inserted:
        return GrantOutcome(GrantResult.CREATED, entitlement, superseded)

    logger.info(
        "Entitlement grant already present",
        extra={"order_id": order.id, "user_id": order.user_id},
    )
    return GrantOutcome(GrantResult.CONFLICT_IGNORED, entitlement, superseded)
