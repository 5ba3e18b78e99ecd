"""
Platform-wide feature flags derived from the paid-user count.

Pure functions of one integer and one threshold; the count itself comes
from the periodically refreshed platform snapshot, never from a per-request
aggregate.
"""

from typing import Optional

from access_core.config import PLATFORM_UNLOCK_PAID_USERS


def is_platform_unlocked(
    paid_users_count: Optional[int],
    threshold: int = PLATFORM_UNLOCK_PAID_USERS,
) -> bool:
    """True once paid users reach the threshold. Unknown count means locked."""
    if paid_users_count is None or paid_users_count < 0:
        return False
    return paid_users_count >= threshold
