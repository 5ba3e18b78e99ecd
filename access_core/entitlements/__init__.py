"""
Product entitlements: resolver, guards and error types.
"""

from access_core.entitlements.errors import (
    EntitlementConflictError,
    EntitlementError,
    EntitlementStoreError,
)
from access_core.entitlements.resolver import (
    EntitlementResolver,
    GuardReason,
    GuardResult,
    require_owner,
    require_user,
)

__all__ = [
    "EntitlementConflictError",
    "EntitlementError",
    "EntitlementStoreError",
    "EntitlementResolver",
    "GuardReason",
    "GuardResult",
    "require_owner",
    "require_user",
]
