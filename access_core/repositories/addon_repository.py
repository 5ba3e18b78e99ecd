"""User add-on grants store. Repeated grants keep the existing row."""

from typing import Optional

from sqlalchemy.orm import Session

from access_core.models.base import generate_uuid, utcnow
from access_core.models.user_addon import AddOnGrantedBy, AddOnStatus, UserAddOn
from access_core.repositories.base import insert_on_conflict_do_nothing


def get_addon(db: Session, user_id: str, addon: str) -> Optional[UserAddOn]:
    return db.query(UserAddOn).filter(
        UserAddOn.user_id == user_id,
        UserAddOn.addon == addon,
    ).first()


def list_active_addons(db: Session, user_id: str) -> list[str]:
    """Billing add-on identifiers currently active for the user."""
    rows = db.query(UserAddOn.addon).filter(
        UserAddOn.user_id == user_id,
        UserAddOn.status == AddOnStatus.ACTIVE.value,
    ).all()
    return [row.addon for row in rows]


def grant_addon(
    db: Session,
    user_id: str,
    addon: str,
    granted_by: AddOnGrantedBy,
    reason: str,
) -> tuple[UserAddOn, bool]:
    """
    Insert the grant unless one exists for (user_id, addon).

    Returns the stored row and whether this call created it.
    """
    inserted = insert_on_conflict_do_nothing(
        db,
        UserAddOn.__table__,
        {
            "id": generate_uuid(),
            "user_id": user_id,
            "addon": addon,
            "status": AddOnStatus.ACTIVE.value,
            "granted_by": granted_by.value,
            "reason": reason,
            "granted_at": utcnow(),
        },
        index_elements=["user_id", "addon"],
    )
    return get_addon(db, user_id, addon), bool(inserted)
