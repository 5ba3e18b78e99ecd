"""
Billing plan registry and feature lookups.

Feature-based access: callers ask ``has_feature`` / ``get_feature_limit``
and never branch on plan ids. Unknown plans and features resolve to zero
access.
"""

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from access_core.policy.registry import PlanTier


class BillingPlanId(str, enum.Enum):
    FREE = "free"
    CREATOR_STARTER = "creator_starter"
    CREATOR_PRO = "creator_pro"
    CREATOR_BUSINESS = "creator_business"


class BillingFeature(str, enum.Enum):
    INSIGHTS_BASIC = "insights_basic"
    INSIGHTS_ADVANCED = "insights_advanced"
    INSIGHT_HISTORY = "insight_history"
    EXPORT_CSV = "export_csv"
    EXPORT_PDF = "export_pdf"
    PRODUCT_LIMIT = "product_limit"
    PRIORITY_SUPPORT = "priority_support"
    CUSTOM_DOMAIN = "custom_domain"


@dataclass(frozen=True)
class FeatureDefinition:
    """Either a boolean feature or a numeric limit."""
    kind: str  # "boolean" | "limit"
    enabled: bool = False
    limit: int = 0

    @classmethod
    def boolean(cls, enabled: bool = True) -> "FeatureDefinition":
        return cls(kind="boolean", enabled=enabled)

    @classmethod
    def limited(cls, limit: int) -> "FeatureDefinition":
        return cls(kind="limit", limit=limit)


NO_ACCESS = FeatureDefinition.boolean(False)


@dataclass(frozen=True)
class BillingPlan:
    id: str
    name: str
    description: str
    monthly_price: int  # minor units
    features: Mapping[str, FeatureDefinition]
    currency: str = "INR"


def _features(**items: FeatureDefinition) -> Mapping[str, FeatureDefinition]:
    return MappingProxyType(dict(items))


_ON = FeatureDefinition.boolean()

BILLING_PLANS_REGISTRY: Mapping[str, BillingPlan] = MappingProxyType({
    BillingPlanId.FREE.value: BillingPlan(
        id=BillingPlanId.FREE.value,
        name="Free",
        description="Explore Creator OS",
        monthly_price=0,
        features=_features(
            insights_basic=_ON,
            product_limit=FeatureDefinition.limited(3),
        ),
    ),
    BillingPlanId.CREATOR_STARTER.value: BillingPlan(
        id=BillingPlanId.CREATOR_STARTER.value,
        name="Entry Control",
        description="Unlock consistent creation",
        monthly_price=69900,
        features=_features(
            insights_basic=_ON,
            insights_advanced=_ON,
            product_limit=FeatureDefinition.limited(10),
        ),
    ),
    BillingPlanId.CREATOR_PRO.value: BillingPlan(
        id=BillingPlanId.CREATOR_PRO.value,
        name="Priority Outcome",
        description="Move faster with clarity",
        monthly_price=119900,
        features=_features(
            insights_basic=_ON,
            insights_advanced=_ON,
            insight_history=_ON,
            product_limit=FeatureDefinition.limited(50),
            export_csv=_ON,
            priority_support=_ON,
        ),
    ),
    BillingPlanId.CREATOR_BUSINESS.value: BillingPlan(
        id=BillingPlanId.CREATOR_BUSINESS.value,
        name="Elite Control",
        description="Full control. No friction.",
        monthly_price=199900,
        features=_features(
            insights_basic=_ON,
            insights_advanced=_ON,
            insight_history=_ON,
            product_limit=FeatureDefinition.limited(9999),
            export_csv=_ON,
            export_pdf=_ON,
            priority_support=_ON,
            custom_domain=_ON,
        ),
    ),
})


def get_plan(plan_id: Optional[str]) -> Optional[BillingPlan]:
    if not plan_id:
        return None
    return BILLING_PLANS_REGISTRY.get(plan_id)


def get_feature_entitlement(plan_id: Optional[str], feature: str) -> FeatureDefinition:
    plan = get_plan(plan_id)
    if plan is None:
        return NO_ACCESS
    return plan.features.get(feature, NO_ACCESS)


def has_feature(plan_id: Optional[str], feature: str) -> bool:
    definition = get_feature_entitlement(plan_id, feature)
    if definition.kind == "limit":
        return definition.limit > 0
    return definition.enabled


def get_feature_limit(plan_id: Optional[str], feature: str) -> int:
    definition = get_feature_entitlement(plan_id, feature)
    if definition.kind == "limit":
        return definition.limit
    return 0


def plan_tier(plan_id: Optional[str]) -> str:
    """Collapse a billing plan into the policy tier; unknown plans are free."""
    plan = get_plan(plan_id)
    if plan is None or plan.monthly_price <= 0:
        return PlanTier.FREE.value
    return PlanTier.PAID.value
