"""Tests for support-only add-on grants."""

from unittest.mock import Mock

from sqlalchemy.exc import OperationalError

from access_core.models import AddOnGrantedBy, UserAddOn
from access_core.platform.audit import AuditLog
from access_core.policy.addons import (
    DASHBOARD_CUSTOMIZATION,
    get_user_billing_addons,
    grant_addon,
)


class TestGrantAddon:

    def test_grant_is_idempotent_and_audited_once(self, db_session):
        first = grant_addon(db_session, "user-1", DASHBOARD_CUSTOMIZATION, AddOnGrantedBy.ADMIN, "support ticket 42", actor_id="agent-7")
        second = grant_addon(db_session, "user-1", DASHBOARD_CUSTOMIZATION, AddOnGrantedBy.SYSTEM, "retry")

        assert first is True
        assert second is True
        assert db_session.query(UserAddOn).count() == 1

        row = db_session.query(UserAddOn).one()
        assert row.granted_by == "admin"
        assert row.reason == "support ticket 42"

        audits = db_session.query(AuditLog).filter(AuditLog.action == "addon.granted").all()
        assert len(audits) == 1
        assert audits[0].actor_type == "admin"
        assert audits[0].actor_id == "agent-7"

    def test_unknown_addon_refused(self, db_session):
        assert grant_addon(db_session, "user-1", "white_label", AddOnGrantedBy.ADMIN, "n/a") is False
        assert db_session.query(UserAddOn).count() == 0

    def test_missing_user_refused(self, db_session):
        assert grant_addon(db_session, "", DASHBOARD_CUSTOMIZATION, AddOnGrantedBy.ADMIN, "n/a") is False

    def test_store_error_returns_false(self):
        db = Mock()
        db.get_bind.return_value.dialect.name = "sqlite"
        db.execute.side_effect = OperationalError("INSERT", {}, Exception("locked"))

        assert grant_addon(db, "user-1", DASHBOARD_CUSTOMIZATION, AddOnGrantedBy.SYSTEM, "auto") is False
        db.rollback.assert_called_once()


class TestGetUserBillingAddons:

    def test_lists_active_addons(self, db_session):
        grant_addon(db_session, "user-1", DASHBOARD_CUSTOMIZATION, AddOnGrantedBy.ADMIN, "ticket")

        assert get_user_billing_addons(db_session, "user-1") == [DASHBOARD_CUSTOMIZATION]
        assert get_user_billing_addons(db_session, "user-2") == []

    def test_missing_user(self, db_session):
        assert get_user_billing_addons(db_session, None) == []

    def test_store_error_is_empty(self):
        db = Mock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("down"))

        assert get_user_billing_addons(db, "user-1") == []
