"""
Entitlement resolution for product access.

EntitlementResolver is the single source of truth for "may user U access
product P". Product-gated reads and downloads go through
``guard_product_access``; nothing else queries the entitlement store for
access decisions.

Fail-closed: missing ids or any store failure resolve to "no access".
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from access_core.entitlements.errors import EntitlementStoreError
from access_core.repositories import entitlement_repository as entitlement_store

logger = logging.getLogger(__name__)


class GuardReason(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"  # no authenticated identity
    FORBIDDEN = "FORBIDDEN"  # identity present, access not granted


@dataclass(frozen=True)
class GuardResult:
    """Outcome of an access guard."""
    allowed: bool
    reason: Optional[GuardReason] = None

    @classmethod
    def allow(cls) -> "GuardResult":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: GuardReason) -> "GuardResult":
        return cls(allowed=False, reason=reason)

    def to_dict(self) -> dict:
        if self.allowed:
            return {"allowed": True}
        return {"allowed": False, "reason": self.reason.value}


def require_user(user_id: Optional[str]) -> GuardResult:
    """Allow any authenticated identity."""
    if not user_id:
        return GuardResult.deny(GuardReason.UNAUTHORIZED)
    return GuardResult.allow()


def require_owner(user_id: Optional[str], owner_id: Optional[str]) -> GuardResult:
    """Allow only the owner of a resource."""
    if not user_id:
        return GuardResult.deny(GuardReason.UNAUTHORIZED)
    if not owner_id or user_id != owner_id:
        return GuardResult.deny(GuardReason.FORBIDDEN)
    return GuardResult.allow()


class EntitlementResolver:
    """
    Resolves active product entitlements.

    Performs at most one point read per check and holds no state beyond
    the session.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    def _lookup(self, user_id: str, product_id: str) -> bool:
        try:
            return entitlement_store.get_active_entitlement(self.db, user_id, product_id) is not None
        except SQLAlchemyError as e:
            raise EntitlementStoreError("read", e) from e

    def has_active_entitlement(self, user_id: Optional[str], product_id: Optional[str]) -> bool:
        """
        True only when an active entitlement row exists for the pair.

        Absent ids short-circuit to False without touching storage; store
        errors are logged and resolve to False.
        """
        if not user_id or not product_id:
            return False

        try:
            return self._lookup(user_id, product_id)
        except Exception as e:
            logger.error(
                "Entitlement lookup failed; denying access",
                extra={
                    "user_id": user_id,
                    "product_id": product_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return False

    def guard_product_access(self, user_id: Optional[str], product_id: Optional[str]) -> GuardResult:
        """
        UNAUTHORIZED without identity, FORBIDDEN without an active
        entitlement, otherwise allowed.
        """
        if not user_id:
            return GuardResult.deny(GuardReason.UNAUTHORIZED)

        if not self.has_active_entitlement(user_id, product_id):
            logger.info(
                "Product access denied",
                extra={"user_id": user_id, "product_id": product_id},
            )
            return GuardResult.deny(GuardReason.FORBIDDEN)

        return GuardResult.allow()
