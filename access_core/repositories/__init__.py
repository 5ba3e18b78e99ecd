"""
Entitlement store contract over SQLAlchemy.

Point reads, conditional order transitions and the order-keyed
idempotent entitlement grant.
"""

from access_core.repositories.addon_repository import (
    get_addon,
    grant_addon,
    list_active_addons,
)
from access_core.repositories.entitlement_repository import (
    GrantOutcome,
    GrantResult,
    get_active_entitlement,
    get_entitlement_for_order,
    upsert_entitlement_for_order,
)
from access_core.repositories.order_repository import (
    count_paid_users,
    get_order,
    get_order_by_reference,
    list_stale_pending_orders,
    mark_order_paid,
    mark_order_terminal,
)

__all__ = [
    "GrantOutcome",
    "GrantResult",
    "count_paid_users",
    "get_active_entitlement",
    "get_addon",
    "get_entitlement_for_order",
    "get_order",
    "get_order_by_reference",
    "grant_addon",
    "list_active_addons",
    "list_stale_pending_orders",
    "mark_order_paid",
    "mark_order_terminal",
    "upsert_entitlement_for_order",
]
