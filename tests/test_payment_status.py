"""
Tests for the order status query.

Success is decided by the entitlement, never by the order row alone.
"""

from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from access_core.models import EntitlementStatus, OrderStatus
from access_core.repositories import upsert_entitlement_for_order
from access_core.services.payment_status import OrderStatusResult, get_order_status


class TestGetOrderStatus:

    def test_paid_order_without_entitlement_is_pending(self, db_session, make_order):
        """Race window: order already paid, entitlement not yet visible."""
        order = make_order(status=OrderStatus.PAID)

        assert get_order_status(db_session, "user-1", order.external_order_reference) == OrderStatusResult.PENDING

    def test_entitled_order_is_success(self, db_session, make_order, make_entitlement):
        order = make_order(status=OrderStatus.PAID)
        make_entitlement(order)

        assert get_order_status(db_session, "user-1", order.external_order_reference) == OrderStatusResult.SUCCESS

    def test_revoked_entitlement_is_not_success(self, db_session, make_order, make_entitlement):
        order = make_order(status=OrderStatus.PAID)
        make_entitlement(order, status=EntitlementStatus.REVOKED)

        assert get_order_status(db_session, "user-1", order.external_order_reference) == OrderStatusResult.PENDING

    def test_order_superseded_by_repeat_purchase_reads_pending(self, db_session, make_order):
        first = make_order(status=OrderStatus.PAID, reference="order_first")
        second = make_order(status=OrderStatus.PAID, reference="order_second")
        upsert_entitlement_for_order(db_session, first)
        db_session.commit()
        upsert_entitlement_for_order(db_session, second)
        db_session.commit()

        assert get_order_status(db_session, "user-1", "order_first") == OrderStatusResult.PENDING
        assert get_order_status(db_session, "user-1", "order_second") == OrderStatusResult.SUCCESS

    def test_pending_order(self, db_session, make_order):
        order = make_order()

        assert get_order_status(db_session, "user-1", order.external_order_reference) == OrderStatusResult.PENDING

    @pytest.mark.parametrize("status", [OrderStatus.FAILED, OrderStatus.CANCELLED])
    def test_terminal_negative_order_is_failed(self, db_session, make_order, status):
        order = make_order(status=status)

        assert get_order_status(db_session, "user-1", order.external_order_reference) == OrderStatusResult.FAILED

    def test_other_users_order_is_not_found(self, db_session, make_order, make_entitlement):
        """Ownership scoping hides the existence of someone else's order."""
        order = make_order(user_id="owner")
        make_entitlement(order)

        assert get_order_status(db_session, "intruder", order.external_order_reference) == OrderStatusResult.NOT_FOUND

    def test_unknown_reference_is_not_found(self, db_session):
        assert get_order_status(db_session, "user-1", "order_missing") == OrderStatusResult.NOT_FOUND

    @pytest.mark.parametrize("user_id,reference", [(None, "order_x"), ("user-1", None), ("", "")])
    def test_missing_inputs_are_not_found(self, user_id, reference):
        db = Mock()

        assert get_order_status(db, user_id, reference) == OrderStatusResult.NOT_FOUND
        db.query.assert_not_called()

    def test_store_error_is_failed(self):
        db = Mock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("timeout"))

        assert get_order_status(db, "user-1", "order_x") == OrderStatusResult.FAILED
