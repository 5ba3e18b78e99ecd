"""
Tests for EntitlementResolver and the access guards.

Verifies:
- Absent ids resolve to False without touching storage
- Only ACTIVE rows grant access
- Store failures are fail-closed
- Guard reasons distinguish UNAUTHORIZED from FORBIDDEN
"""

from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import OperationalError

from access_core.entitlements import resolver as resolver_module
from access_core.entitlements.resolver import (
    EntitlementResolver,
    GuardReason,
    GuardResult,
    require_owner,
    require_user,
)
from access_core.models import EntitlementStatus


# ============================================================================
# HAS ACTIVE ENTITLEMENT
# ============================================================================

class TestHasActiveEntitlement:

    @pytest.mark.parametrize("user_id,product_id", [
        (None, "product-1"),
        ("", "product-1"),
        ("user-1", None),
        ("user-1", ""),
        (None, None),
    ])
    def test_missing_ids_short_circuit(self, user_id, product_id):
        """No storage read happens when either id is absent."""
        db = Mock()
        with patch.object(resolver_module.entitlement_store, "get_active_entitlement") as lookup:
            assert EntitlementResolver(db).has_active_entitlement(user_id, product_id) is False
            lookup.assert_not_called()
        db.query.assert_not_called()

    def test_active_entitlement_grants(self, db_session, make_order, make_entitlement):
        order = make_order()
        make_entitlement(order)

        assert EntitlementResolver(db_session).has_active_entitlement("user-1", "product-1") is True

    def test_revoked_entitlement_denies(self, db_session, make_order, make_entitlement):
        order = make_order()
        make_entitlement(order, status=EntitlementStatus.REVOKED)

        assert EntitlementResolver(db_session).has_active_entitlement("user-1", "product-1") is False

    def test_other_users_entitlement_denies(self, db_session, make_order, make_entitlement):
        make_entitlement(make_order(user_id="user-2"))

        assert EntitlementResolver(db_session).has_active_entitlement("user-1", "product-1") is False

    def test_other_product_denies(self, db_session, make_order, make_entitlement):
        make_entitlement(make_order(product_id="product-2"))

        assert EntitlementResolver(db_session).has_active_entitlement("user-1", "product-1") is False

    def test_store_error_is_fail_closed(self):
        """Database errors resolve to no access instead of propagating."""
        db = Mock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        assert EntitlementResolver(db).has_active_entitlement("user-1", "product-1") is False

    def test_unexpected_error_is_fail_closed(self):
        with patch.object(
            resolver_module.entitlement_store,
            "get_active_entitlement",
            side_effect=RuntimeError("boom"),
        ):
            assert EntitlementResolver(Mock()).has_active_entitlement("user-1", "product-1") is False


# ============================================================================
# GUARDS
# ============================================================================

class TestGuardProductAccess:

    def test_no_identity_is_unauthorized(self, db_session):
        result = EntitlementResolver(db_session).guard_product_access(None, "product-1")

        assert result == GuardResult.deny(GuardReason.UNAUTHORIZED)

    def test_identity_without_entitlement_is_forbidden(self, db_session):
        result = EntitlementResolver(db_session).guard_product_access("user-1", "product-1")

        assert result.allowed is False
        assert result.reason == GuardReason.FORBIDDEN

    def test_entitled_user_allowed(self, db_session, make_order, make_entitlement):
        make_entitlement(make_order())

        result = EntitlementResolver(db_session).guard_product_access("user-1", "product-1")

        assert result.allowed is True
        assert result.to_dict() == {"allowed": True}

    def test_store_error_is_forbidden_not_unauthorized(self):
        db = Mock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("down"))

        result = EntitlementResolver(db).guard_product_access("user-1", "product-1")

        assert result.to_dict() == {"allowed": False, "reason": "FORBIDDEN"}


class TestRequireUser:

    def test_missing_user(self):
        assert require_user(None).reason == GuardReason.UNAUTHORIZED
        assert require_user("").reason == GuardReason.UNAUTHORIZED

    def test_present_user(self):
        assert require_user("user-1").allowed is True


class TestRequireOwner:

    def test_missing_user_is_unauthorized(self):
        assert require_owner(None, "user-1").reason == GuardReason.UNAUTHORIZED

    def test_different_owner_is_forbidden(self):
        assert require_owner("user-1", "user-2").reason == GuardReason.FORBIDDEN

    def test_missing_owner_is_forbidden(self):
        assert require_owner("user-1", None).reason == GuardReason.FORBIDDEN

    def test_owner_allowed(self):
        assert require_owner("user-1", "user-1").allowed is True
