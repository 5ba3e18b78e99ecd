"""
Layered capability policy: plan tier, platform unlock and add-ons.

This module provides:
- ACCESS_RULE_REGISTRY: static suggestion access rules
- evaluate / evaluate_suggestion_access: fixed-order policy evaluation
- is_platform_unlocked: paid-user threshold flag
- map_billing_addons / grant_addon: add-on adapter and support grants
- BILLING_PLANS_REGISTRY, has_feature, get_feature_limit, plan_tier
- PlatformSnapshotCache / refresh_platform_snapshot
"""

from access_core.policy.registry import (
    ACCESS_RULE_REGISTRY,
    AccessRule,
    CapabilityType,
    PlanTier,
    SuggestionAddOn,
    get_access_rule,
)
from access_core.policy.feature_flags import is_platform_unlocked
from access_core.policy.addons import (
    ADDON_ADAPTER_MAP,
    get_user_billing_addons,
    grant_addon,
    map_billing_addons,
)
from access_core.policy.evaluator import (
    POLICY_CHECKS,
    Decision,
    DenyReason,
    EvaluationContext,
    SuggestionAccessRequest,
    evaluate,
    evaluate_suggestion_access,
)
from access_core.policy.plans import (
    BILLING_PLANS_REGISTRY,
    BillingFeature,
    BillingPlanId,
    get_feature_limit,
    has_feature,
    plan_tier,
)
from access_core.policy.platform_snapshot import (
    PlatformSnapshot,
    PlatformSnapshotCache,
    get_platform_snapshot_cache,
    refresh_platform_snapshot,
)

__all__ = [
    "ACCESS_RULE_REGISTRY",
    "AccessRule",
    "CapabilityType",
    "PlanTier",
    "SuggestionAddOn",
    "get_access_rule",
    "is_platform_unlocked",
    "ADDON_ADAPTER_MAP",
    "get_user_billing_addons",
    "grant_addon",
    "map_billing_addons",
    "POLICY_CHECKS",
    "Decision",
    "DenyReason",
    "EvaluationContext",
    "SuggestionAccessRequest",
    "evaluate",
    "evaluate_suggestion_access",
    "BILLING_PLANS_REGISTRY",
    "BillingFeature",
    "BillingPlanId",
    "get_feature_limit",
    "has_feature",
    "plan_tier",
    "PlatformSnapshot",
    "PlatformSnapshotCache",
    "get_platform_snapshot_cache",
    "refresh_platform_snapshot",
]
