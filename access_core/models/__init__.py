"""
Database models for orders, entitlements, add-ons and webhook events.

Importing this package registers every table on ``Base.metadata``.
"""

from access_core.models.base import TimestampMixin, generate_uuid, utcnow
from access_core.models.order import Order, OrderStatus, TERMINAL_NEGATIVE_STATUSES
from access_core.models.entitlement import Entitlement, EntitlementStatus
from access_core.models.user_addon import UserAddOn, AddOnStatus, AddOnGrantedBy
from access_core.models.webhook_event import WebhookEvent
from access_core.platform.audit import AuditLog

__all__ = [
    "TimestampMixin",
    "generate_uuid",
    "utcnow",
    "Order",
    "OrderStatus",
    "TERMINAL_NEGATIVE_STATUSES",
    "Entitlement",
    "EntitlementStatus",
    "UserAddOn",
    "AddOnStatus",
    "AddOnGrantedBy",
    "WebhookEvent",
    "AuditLog",
]
