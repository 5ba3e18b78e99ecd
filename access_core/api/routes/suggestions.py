"""
Suggestion access endpoint.

The caller supplies the suggestion type and plan; the platform paid-user
count comes from the snapshot cache and add-ons from the add-on store.
A missing snapshot evaluates as a locked platform.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from access_core.api.dependencies.db import get_db_session
from access_core.api.schemas.access import (
    SuggestionAccessRequestBody,
    SuggestionAccessResponse,
)
from access_core.config import RATE_LIMIT_NAMESPACE_API
from access_core.middleware.rate_limit import rate_limit_dependency
from access_core.platform.errors import AuthenticationError, ValidationError
from access_core.platform.identity import get_current_user_id
from access_core.policy.addons import get_user_billing_addons
from access_core.policy.evaluator import SuggestionAccessRequest, evaluate_suggestion_access
from access_core.policy.plans import plan_tier
from access_core.policy.platform_snapshot import PlatformSnapshotCache, get_platform_snapshot_cache
from access_core.policy.registry import PlanTier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/suggestions", tags=["suggestions"])

_PLAN_TIERS = frozenset(tier.value for tier in PlanTier)


def _platform_cache(request: Request) -> PlatformSnapshotCache:
    return getattr(request.app.state, "platform_cache", None) or get_platform_snapshot_cache()


def _resolve_tier(body: SuggestionAccessRequestBody) -> str:
    if body.plan_id:
        return plan_tier(body.plan_id)
    if body.user_plan_type in _PLAN_TIERS:
        return body.user_plan_type
    raise ValidationError(
        "plan_id or user_plan_type ('free' | 'paid') is required",
        {"field": "user_plan_type"},
    )


@router.post("/access", response_model=SuggestionAccessResponse, response_model_exclude_none=True)
def suggestion_access(
    body: SuggestionAccessRequestBody,
    request: Request,
    user_id: Optional[str] = Depends(get_current_user_id),
    db: Session = Depends(get_db_session),
    _rate_limit=Depends(rate_limit_dependency(RATE_LIMIT_NAMESPACE_API)),
) -> SuggestionAccessResponse:
    if not user_id:
        raise AuthenticationError()

    access_request = SuggestionAccessRequest(
        suggestion_type=body.suggestion_type,
        user_plan_type=_resolve_tier(body),
        paid_users_count=_platform_cache(request).paid_users_count(),
        active_addons=tuple(get_user_billing_addons(db, user_id)),
    )
    decision = evaluate_suggestion_access(access_request)

    if not decision["allowed"]:
        logger.info(
            "Suggestion access denied",
            extra={
                "user_id": user_id,
                "suggestion_type": body.suggestion_type,
                "reason": decision["reason"],
            },
        )
    return SuggestionAccessResponse(**decision)
