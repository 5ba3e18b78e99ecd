"""
Suggestion access rule registry.

Static configuration: which plan tiers may submit which suggestion type,
whether the platform-wide unlock is required, and which add-on (if any)
must be held. Built once at import time and exposed read-only. A lookup
miss is a distinct denial, never "no restriction".
"""

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional


class CapabilityType(str, enum.Enum):
    """Suggestion intents. Values are stable identifiers; never rename."""
    BUG_REPORT = "bug_report"
    ERROR_REPORT = "error_report"
    FEATURE_SUGGESTION = "feature_suggestion"
    UX_FEEDBACK = "ux_feedback"
    CUSTOM_REQUEST = "custom_request"
    COMMUNITY_PROPOSAL = "community_proposal"


class PlanTier(str, enum.Enum):
    FREE = "free"
    PAID = "paid"


class SuggestionAddOn(str, enum.Enum):
    CUSTOM_DASHBOARD_REQUEST = "custom_dashboard_request"


@dataclass(frozen=True)
class AccessRule:
    """Declarative access requirements for one capability type."""
    requires_platform_unlock: bool
    allowed_plans: FrozenSet[str]
    required_addon: Optional[str] = None


_ANY_PLAN = frozenset({PlanTier.FREE.value, PlanTier.PAID.value})
_PAID_ONLY = frozenset({PlanTier.PAID.value})

ACCESS_RULE_REGISTRY: Mapping[str, AccessRule] = MappingProxyType({
    # Free users: always open
    CapabilityType.BUG_REPORT.value: AccessRule(
        requires_platform_unlock=False,
        allowed_plans=_ANY_PLAN,
    ),
    CapabilityType.ERROR_REPORT.value: AccessRule(
        requires_platform_unlock=False,
        allowed_plans=_ANY_PLAN,
    ),
    # Paid users once the platform is unlocked
    CapabilityType.FEATURE_SUGGESTION.value: AccessRule(
        requires_platform_unlock=True,
        allowed_plans=_PAID_ONLY,
    ),
    CapabilityType.UX_FEEDBACK.value: AccessRule(
        requires_platform_unlock=True,
        allowed_plans=_PAID_ONLY,
    ),
    # Monetized: support-granted add-on
    CapabilityType.CUSTOM_REQUEST.value: AccessRule(
        requires_platform_unlock=True,
        allowed_plans=_PAID_ONLY,
        required_addon=SuggestionAddOn.CUSTOM_DASHBOARD_REQUEST.value,
    ),
    CapabilityType.COMMUNITY_PROPOSAL.value: AccessRule(
        requires_platform_unlock=True,
        allowed_plans=_PAID_ONLY,
    ),
})


def get_access_rule(capability_type: Optional[str]) -> Optional[AccessRule]:
    if not capability_type:
        return None
    return ACCESS_RULE_REGISTRY.get(capability_type)
