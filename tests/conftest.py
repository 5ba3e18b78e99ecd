"""
Shared pytest fixtures.

Store-level tests run against an in-memory SQLite database created from
the ORM metadata. The payment gateway is replaced by FakeGateway.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import access_core.middleware.rate_limit as rate_limit_module
from access_core.database import create_schema
from access_core.integrations.payments.gateway_client import GatewayPayment, PaymentGatewayError
from access_core.models import Entitlement, EntitlementStatus, Order, OrderStatus


NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
def engine():
    """In-memory SQLite shared across threads (TestClient runs sync routes in a pool)."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# FACTORIES
# ============================================================================

@pytest.fixture
def make_order(db_session):
    """Create and commit an order; ``age`` is how long ago it was created."""

    def _make(
        user_id: str = "user-1",
        product_id: str = "product-1",
        status: OrderStatus = OrderStatus.PENDING,
        age: timedelta = timedelta(minutes=15),
        reference: Optional[str] = None,
        amount: int = 49900,
    ) -> Order:
        created_at = NOW - age
        order = Order(
            id=str(uuid.uuid4()),
            external_order_reference=reference or f"order_{uuid.uuid4().hex[:14]}",
            user_id=user_id,
            product_id=product_id,
            status=status.value,
            amount=amount,
            created_at=created_at,
            updated_at=created_at,
        )
        db_session.add(order)
        db_session.commit()
        return order

    return _make


@pytest.fixture
def make_entitlement(db_session):
    def _make(order: Order, status: EntitlementStatus = EntitlementStatus.ACTIVE) -> Entitlement:
        entitlement = Entitlement(
            id=str(uuid.uuid4()),
            user_id=order.user_id,
            product_id=order.product_id,
            order_id=order.id,
            status=status.value,
            granted_at=NOW,
        )
        db_session.add(entitlement)
        db_session.commit()
        return entitlement

    return _make


def active_entitlements(db_session, user_id: str, product_id: str) -> List[Entitlement]:
    return db_session.query(Entitlement).filter(
        Entitlement.user_id == user_id,
        Entitlement.product_id == product_id,
        Entitlement.status == EntitlementStatus.ACTIVE.value,
    ).all()


# ============================================================================
# PAYMENT GATEWAY
# ============================================================================

class FakeGateway:
    """In-memory stand-in for PaymentGatewayClient."""

    def __init__(self, payments: Optional[Dict[str, List[str]]] = None):
        self.payments: Dict[str, List[str]] = payments or {}
        self.failing: Dict[str, PaymentGatewayError] = {}
        self.calls: List[str] = []
        self.closed = False

    def set_payments(self, reference: str, *statuses: str) -> None:
        self.payments[reference] = list(statuses)

    def fail_for(self, reference: str, code: str = "503") -> None:
        self.failing[reference] = PaymentGatewayError("gateway unavailable", code=code)

    async def list_payments(self, external_order_reference: str) -> List[GatewayPayment]:
        self.calls.append(external_order_reference)
        if external_order_reference in self.failing:
            raise self.failing[external_order_reference]
        return [
            GatewayPayment(payment_id=f"pay_{i}", status=status)
            for i, status in enumerate(self.payments.get(external_order_reference, []))
        ]

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True


@pytest.fixture
def fake_gateway():
    return FakeGateway()


# ============================================================================
# PROCESS STATE
# ============================================================================

@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Each test starts with fresh token buckets."""
    rate_limit_module._rate_limiter_instance = None
    yield
    rate_limit_module._rate_limiter_instance = None
