"""
Tests for the layered suggestion access policy.

Verifies:
- The platform gate dominates plan and add-on checks
- Plan eligibility, then add-on requirement, in fixed order
- Unknown capabilities are denied, never treated as unrestricted
- Billing add-ons pass through the adapter map; unmapped ones grant nothing
- Denial hints (required_paid_users, required_addon)
- The registry is read-only
"""

import itertools

import pytest

from access_core.config import PLATFORM_UNLOCK_PAID_USERS
from access_core.policy import (
    ACCESS_RULE_REGISTRY,
    POLICY_CHECKS,
    AccessRule,
    CapabilityType,
    Decision,
    DenyReason,
    EvaluationContext,
    SuggestionAccessRequest,
    evaluate,
    evaluate_suggestion_access,
    get_access_rule,
    is_platform_unlocked,
    map_billing_addons,
)
from access_core.policy.addons import DASHBOARD_CUSTOMIZATION
from access_core.policy.evaluator import (
    check_addon_requirement,
    check_plan_eligibility,
    check_platform_gate,
)
from access_core.policy.registry import SuggestionAddOn

CUSTOM_ADDON = SuggestionAddOn.CUSTOM_DASHBOARD_REQUEST.value


def _request(suggestion_type, plan="paid", paid_users=PLATFORM_UNLOCK_PAID_USERS, addons=()):
    return SuggestionAccessRequest(
        suggestion_type=suggestion_type,
        user_plan_type=plan,
        paid_users_count=paid_users,
        active_addons=tuple(addons),
    )


# ============================================================================
# PLATFORM UNLOCK FLAG
# ============================================================================

class TestIsPlatformUnlocked:

    def test_threshold_boundary(self):
        assert is_platform_unlocked(999, threshold=1000) is False
        assert is_platform_unlocked(1000, threshold=1000) is True
        assert is_platform_unlocked(5000, threshold=1000) is True

    def test_unknown_count_is_locked(self):
        assert is_platform_unlocked(None) is False

    def test_negative_count_is_locked(self):
        assert is_platform_unlocked(-1, threshold=0) is False


# ============================================================================
# REGISTRY
# ============================================================================

class TestRegistry:

    def test_every_capability_has_a_rule(self):
        for capability in CapabilityType:
            assert get_access_rule(capability.value) is not None

    def test_unknown_lookup_is_none(self):
        assert get_access_rule("telepathy") is None
        assert get_access_rule(None) is None
        assert get_access_rule("") is None

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            ACCESS_RULE_REGISTRY["bug_report"] = AccessRule(False, frozenset())

    def test_rules_are_frozen(self):
        rule = get_access_rule("bug_report")
        with pytest.raises(AttributeError):
            rule.requires_platform_unlock = True

    def test_custom_request_requires_addon(self):
        assert get_access_rule("custom_request").required_addon == CUSTOM_ADDON


# ============================================================================
# EVALUATION ORDER
# ============================================================================

class TestEvaluate:

    def test_check_order_is_fixed(self):
        assert POLICY_CHECKS == (check_platform_gate, check_plan_eligibility, check_addon_requirement)

    def test_unknown_capability_denied(self):
        context = EvaluationContext(user_plan="paid", user_addons=frozenset({CUSTOM_ADDON}), platform_unlocked=True)

        assert evaluate("telepathy", None, context) == Decision.deny(DenyReason.UNKNOWN_CAPABILITY)

    @pytest.mark.parametrize("capability", [c.value for c in CapabilityType])
    @pytest.mark.parametrize("plan,has_addon", list(itertools.product(["free", "paid"], [False, True])))
    def test_locked_platform_dominates(self, capability, plan, has_addon):
        """With the platform locked, every unlock-gated rule denies platform_locked."""
        rule = get_access_rule(capability)
        context = EvaluationContext(
            user_plan=plan,
            user_addons=frozenset({CUSTOM_ADDON}) if has_addon else frozenset(),
            platform_unlocked=False,
        )

        decision = evaluate(capability, rule, context)

        if rule.requires_platform_unlock:
            assert decision.reason == DenyReason.PLATFORM_LOCKED
        else:
            assert decision.allowed is True

    def test_plan_checked_before_addon(self):
        rule = get_access_rule("custom_request")
        context = EvaluationContext(user_plan="free", platform_unlocked=True)

        assert evaluate("custom_request", rule, context).reason == DenyReason.PLAN_NOT_ALLOWED

    def test_addon_required_after_plan_passes(self):
        rule = get_access_rule("custom_request")
        context = EvaluationContext(user_plan="paid", platform_unlocked=True)

        assert evaluate("custom_request", rule, context).reason == DenyReason.ADDON_REQUIRED

    def test_all_layers_satisfied(self):
        rule = get_access_rule("custom_request")
        context = EvaluationContext(
            user_plan="paid",
            user_addons=frozenset({CUSTOM_ADDON}),
            platform_unlocked=True,
        )

        assert evaluate("custom_request", rule, context).allowed is True

    def test_unrecognised_plan_tier_denied(self):
        rule = get_access_rule("bug_report")
        context = EvaluationContext(user_plan="enterprise", platform_unlocked=True)

        assert evaluate("bug_report", rule, context).reason == DenyReason.PLAN_NOT_ALLOWED


# ============================================================================
# ADD-ON ADAPTER
# ============================================================================

class TestAddonAdapter:

    def test_known_addon_mapped(self):
        assert map_billing_addons([DASHBOARD_CUSTOMIZATION]) == [CUSTOM_ADDON]

    def test_unmapped_addons_dropped(self):
        assert map_billing_addons(["priority_support", "white_label"]) == []

    def test_duplicates_collapsed(self):
        assert map_billing_addons([DASHBOARD_CUSTOMIZATION, DASHBOARD_CUSTOMIZATION]) == [CUSTOM_ADDON]

    def test_none_is_empty(self):
        assert map_billing_addons(None) == []

    def test_suggestion_identifier_is_not_accepted_as_billing_addon(self):
        """Only billing identifiers are translated; raw suggestion ids grant nothing."""
        response = evaluate_suggestion_access(_request("custom_request", addons=[CUSTOM_ADDON]))

        assert response["reason"] == "addon_required"


# ============================================================================
# SUGGESTION ACCESS CONTRACT
# ============================================================================

class TestEvaluateSuggestionAccess:

    @pytest.mark.parametrize("suggestion_type", ["bug_report", "error_report"])
    def test_free_user_can_report_problems_while_locked(self, suggestion_type):
        assert evaluate_suggestion_access(_request(suggestion_type, plan="free", paid_users=0)) == {"allowed": True}

    def test_locked_platform_returns_required_paid_users(self):
        response = evaluate_suggestion_access(_request("feature_suggestion", paid_users=10), threshold=1000)

        assert response == {
            "allowed": False,
            "reason": "platform_locked",
            "required_paid_users": 1000,
        }

    def test_missing_snapshot_is_locked(self):
        response = evaluate_suggestion_access(_request("ux_feedback", paid_users=None))

        assert response["reason"] == "platform_locked"

    def test_free_user_denied_paid_suggestion_once_unlocked(self):
        response = evaluate_suggestion_access(_request("feature_suggestion", plan="free"))

        assert response == {"allowed": False, "reason": "plan_not_allowed"}

    def test_paid_user_allowed_once_unlocked(self):
        assert evaluate_suggestion_access(_request("community_proposal")) == {"allowed": True}

    def test_addon_required_names_the_addon(self):
        response = evaluate_suggestion_access(_request("custom_request"))

        assert response == {
            "allowed": False,
            "reason": "addon_required",
            "required_addon": CUSTOM_ADDON,
        }

    def test_billing_addon_unlocks_custom_request(self):
        response = evaluate_suggestion_access(_request("custom_request", addons=[DASHBOARD_CUSTOMIZATION]))

        assert response == {"allowed": True}

    def test_unknown_suggestion_type(self):
        response = evaluate_suggestion_access(_request("telepathy", addons=[DASHBOARD_CUSTOMIZATION]))

        assert response == {"allowed": False, "reason": "unknown_capability"}
