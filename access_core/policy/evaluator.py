"""
Suggestion / feature access policy evaluation.

Composes three independent layers into one decision:

1. Platform gate   - rule requires the platform unlock and it is locked
2. Plan eligibility - the user's plan tier is not in the rule's plans
3. Add-on          - rule requires an add-on the user does not hold

The checks run in that fixed order and the first denial wins. A
capability without a registry rule is denied with ``unknown_capability``.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, Optional

from access_core.config import PLATFORM_UNLOCK_PAID_USERS
from access_core.policy.addons import map_billing_addons
from access_core.policy.feature_flags import is_platform_unlocked
from access_core.policy.registry import AccessRule, get_access_rule

logger = logging.getLogger(__name__)


class DenyReason(str, Enum):
    PLATFORM_LOCKED = "platform_locked"
    PLAN_NOT_ALLOWED = "plan_not_allowed"
    ADDON_REQUIRED = "addon_required"
    UNKNOWN_CAPABILITY = "unknown_capability"


@dataclass(frozen=True)
class Decision:
    """allow | deny(reason)"""
    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(allowed=False, reason=reason)


@dataclass(frozen=True)
class EvaluationContext:
    """
    Caller state for one evaluation.

    Attributes:
        user_plan:         Plan tier ("free" or "paid").
        user_addons:       Suggestion-domain add-on identifiers.
        platform_unlocked: Output of is_platform_unlocked for the snapshot.
    """
    user_plan: str
    user_addons: FrozenSet[str] = field(default_factory=frozenset)
    platform_unlocked: bool = False


PolicyCheck = Callable[[AccessRule, EvaluationContext], Optional[DenyReason]]


def check_platform_gate(rule: AccessRule, context: EvaluationContext) -> Optional[DenyReason]:
    if rule.requires_platform_unlock and not context.platform_unlocked:
        return DenyReason.PLATFORM_LOCKED
    return None


def check_plan_eligibility(rule: AccessRule, context: EvaluationContext) -> Optional[DenyReason]:
    if context.user_plan not in rule.allowed_plans:
        return DenyReason.PLAN_NOT_ALLOWED
    return None


def check_addon_requirement(rule: AccessRule, context: EvaluationContext) -> Optional[DenyReason]:
    if rule.required_addon and rule.required_addon not in context.user_addons:
        return DenyReason.ADDON_REQUIRED
    return None


# Order is part of the contract: the platform gate dominates plan and add-ons.
POLICY_CHECKS: tuple[PolicyCheck, ...] = (
    check_platform_gate,
    check_plan_eligibility,
    check_addon_requirement,
)


def evaluate(
    capability_type: str,
    rule: Optional[AccessRule],
    context: EvaluationContext,
) -> Decision:
    """Run POLICY_CHECKS in order; the first denial short-circuits."""
    if rule is None:
        return Decision.deny(DenyReason.UNKNOWN_CAPABILITY)

    for check in POLICY_CHECKS:
        reason = check(rule, context)
        if reason is not None:
            logger.debug(
                "Capability denied",
                extra={"capability_type": capability_type, "reason": reason.value},
            )
            return Decision.deny(reason)

    return Decision.allow()


# ---------------------------------------------------------------------------
# Suggestion access contract
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SuggestionAccessRequest:
    """
    Input contract for suggestion access.

    ``active_addons`` are billing-domain identifiers; they are translated
    through the add-on adapter before evaluation.
    """
    suggestion_type: str
    user_plan_type: str
    paid_users_count: Optional[int]
    active_addons: tuple[str, ...] = ()


def evaluate_suggestion_access(
    request: SuggestionAccessRequest,
    threshold: int = PLATFORM_UNLOCK_PAID_USERS,
) -> dict:
    """
    Evaluate a suggestion request into the response contract.

    Returns ``{"allowed": True}`` or ``{"allowed": False, "reason": ...}``
    with ``required_paid_users`` on platform_locked and ``required_addon``
    on addon_required.
    """
    rule = get_access_rule(request.suggestion_type)
    context = EvaluationContext(
        user_plan=request.user_plan_type,
        user_addons=frozenset(map_billing_addons(request.active_addons)),
        platform_unlocked=is_platform_unlocked(request.paid_users_count, threshold),
    )

    decision = evaluate(request.suggestion_type, rule, context)
    if decision.allowed:
        return {"allowed": True}

    response = {"allowed": False, "reason": decision.reason.value}
    if decision.reason == DenyReason.PLATFORM_LOCKED:
        response["required_paid_users"] = threshold
    elif decision.reason == DenyReason.ADDON_REQUIRED:
        response["required_addon"] = rule.required_addon
    return response

