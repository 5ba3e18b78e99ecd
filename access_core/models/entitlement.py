"""
Entitlement model.

A persisted grant of access for one user to one product, tied to the
order that settled it.

Storage-level invariants:
- order_id is UNIQUE: granting twice for the same order is a no-op.
- at most one ACTIVE row per (user_id, product_id), enforced by a
  partial unique index. Superseded rows stay as revoked history.
"""

import enum

from sqlalchemy import Column, String, DateTime, Index, UniqueConstraint, text

from access_core.db_base import Base
from access_core.models.base import generate_uuid, utcnow


class EntitlementStatus(str, enum.Enum):
    ACTIVE = "active"
    REVOKED = "revoked"


class Entitlement(Base):
    """Granted access for (user_id, product_id), keyed by settling order."""

    __tablename__ = "entitlements"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    user_id = Column(String(255), nullable=False)
    product_id = Column(String(255), nullable=False)

    order_id = Column(
        String(36),
        nullable=False,
        comment="Internal id of the settling order (one entitlement per order)",
    )

    status = Column(
        String(20),
        nullable=False,
        default=EntitlementStatus.ACTIVE.value,
    )

    granted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("order_id", name="uq_entitlements_order_id"),
        Index(
            "uq_entitlements_active_user_product",
            "user_id", "product_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
        Index("ix_entitlements_user_product_status", "user_id", "product_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Entitlement(order_id={self.order_id}, user_id={self.user_id}, status={self.status})>"
