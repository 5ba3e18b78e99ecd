"""
Add-ons: billing-to-suggestion adapter and support-only grants.

Billing add-on identifiers are translated through a fixed adapter map
before they are compared with suggestion-domain requirements. Unmapped
billing add-ons grant nothing here and are dropped, never inferred.
"""

import logging
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from access_core.models.user_addon import AddOnGrantedBy
from access_core.platform.audit import (
    AuditAction,
    AuditActorType,
    AuditEvent,
    write_audit_log_sync,
)
from access_core.policy.registry import SuggestionAddOn
from access_core.repositories import addon_repository

logger = logging.getLogger(__name__)

DASHBOARD_CUSTOMIZATION = "dashboard_customization"

KNOWN_BILLING_ADDONS = frozenset({DASHBOARD_CUSTOMIZATION})

ADDON_ADAPTER_MAP: Mapping[str, str] = MappingProxyType({
    DASHBOARD_CUSTOMIZATION: SuggestionAddOn.CUSTOM_DASHBOARD_REQUEST.value,
})


def map_billing_addons(billing_addons: Optional[Iterable[str]]) -> list[str]:
    """Translate billing add-ons, dropping unmapped ones. Order kept, no duplicates."""
    mapped: list[str] = []
    for addon in billing_addons or ():
        suggestion_addon = ADDON_ADAPTER_MAP.get(addon)
        if suggestion_addon and suggestion_addon not in mapped:
            mapped.append(suggestion_addon)
    return mapped


def get_user_billing_addons(db: Session, user_id: Optional[str]) -> list[str]:
    """Active billing add-ons for a user; empty on missing id or store error."""
    if not user_id:
        return []
    try:
        return addon_repository.list_active_addons(db, user_id)
    except SQLAlchemyError as e:
        logger.error(
            "Failed to read user add-ons",
            extra={"user_id": user_id, "error": str(e)},
        )
        return []


def grant_addon(
    db: Session,
    user_id: str,
    addon: str,
    granted_by: AddOnGrantedBy,
    reason: str,
    actor_id: Optional[str] = None,
) -> bool:
    """
    Grant a billing add-on. Support / system use only.

    Idempotent: an existing grant for (user_id, addon) is left untouched and
    reported as success. Only a new grant is audited. Returns False on
    invalid input or a store failure.
    """
    if not user_id or not addon:
        return False

    if addon not in KNOWN_BILLING_ADDONS:
        logger.warning(
            "Refusing to grant unknown add-on",
            extra={"user_id": user_id, "addon": addon},
        )
        return False

    try:
        _, created = addon_repository.grant_addon(db, user_id, addon, granted_by, reason)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "Add-on grant failed",
            extra={"user_id": user_id, "addon": addon, "error": str(e)},
        )
        return False

    if not created:
        logger.info("Add-on already granted", extra={"user_id": user_id, "addon": addon})
        return True

    logger.info(
        "Add-on granted",
        extra={"user_id": user_id, "addon": addon, "granted_by": granted_by.value},
    )
    write_audit_log_sync(db, AuditEvent(
        action=AuditAction.ADDON_GRANTED,
        entity_type="addon",
        entity_id=addon,
        actor_type=AuditActorType(granted_by.value),
        actor_id=actor_id,
        metadata={"user_id": user_id, "reason": reason},
    ))
    return True
