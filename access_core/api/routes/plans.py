"""
Billing plan feature lookup.

Answers "does plan P include feature F, and up to what limit" from the
static plan registry. Unknown plans and features resolve to no access.
"""

from fastapi import APIRouter, Depends

from access_core.api.schemas.access import PlanFeatureResponse
from access_core.config import RATE_LIMIT_NAMESPACE_API
from access_core.middleware.rate_limit import rate_limit_dependency
from access_core.policy.plans import get_feature_limit, has_feature, plan_tier

router = APIRouter(prefix="/plans", tags=["plans"])


@router.get("/{plan_id}/features/{feature}", response_model=PlanFeatureResponse)
def plan_feature(
    plan_id: str,
    feature: str,
    _rate_limit=Depends(rate_limit_dependency(RATE_LIMIT_NAMESPACE_API)),
) -> PlanFeatureResponse:
    return PlanFeatureResponse(
        plan_id=plan_id,
        feature=feature,
        tier=plan_tier(plan_id),
        enabled=has_feature(plan_id, feature),
        limit=get_feature_limit(plan_id, feature),
    )
