"""
User add-on grants.

Support or system granted capability extensions outside the base plan.
Identifiers here are billing-domain add-ons; the suggestion policy
translates them through a fixed adapter map before use.
"""

import enum

from sqlalchemy import Column, String, DateTime, Text, UniqueConstraint

from access_core.db_base import Base
from access_core.models.base import generate_uuid, utcnow


class AddOnStatus(str, enum.Enum):
    ACTIVE = "active"
    REVOKED = "revoked"


class AddOnGrantedBy(str, enum.Enum):
    SYSTEM = "system"
    ADMIN = "admin"


class UserAddOn(Base):
    __tablename__ = "user_addons"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(255), nullable=False, index=True)
    addon = Column(String(100), nullable=False, comment="Billing add-on identifier")
    status = Column(String(20), nullable=False, default=AddOnStatus.ACTIVE.value)
    granted_by = Column(String(20), nullable=False)
    reason = Column(Text, nullable=False)
    granted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        # Existing row wins on a repeated grant
        UniqueConstraint("user_id", "addon", name="uq_user_addons_user_addon"),
    )
