"""
Payment webhook fast path.

Steps, in order:
1. Verify the HMAC-SHA256 signature over the raw body
2. Record the event id in the webhook ledger (duplicates are ignored)
3. ``payment.captured``            -> settle the order
   ``payment.failed`` / ``order.failed`` -> order failed
   ``payment.cancelled``           -> order cancelled

The ledger row is written in the same transaction as the order change, so
a delivery whose processing failed is retried on redelivery. Rate limiting
happens before this processor is reached.
"""

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from access_core.config import get_webhook_secret
from access_core.integrations.payments.gateway_client import PaymentGatewayClient
from access_core.models.base import generate_uuid, utcnow
from access_core.models.order import OrderStatus
from access_core.models.webhook_event import WebhookEvent
from access_core.repositories import order_repository
from access_core.repositories.base import insert_on_conflict_do_nothing
from access_core.services.settlement import SettlementSource, fail_order, settle_order

logger = logging.getLogger(__name__)

CAPTURED_EVENTS = frozenset({"payment.captured"})
FAILED_EVENTS = frozenset({"payment.failed", "order.failed"})
CANCELLED_EVENTS = frozenset({"payment.cancelled"})


class InvalidWebhookError(Exception):
    """Signature or payload rejected."""

    def __init__(self, message: str, code: str = "INVALID_WEBHOOK"):
        super().__init__(message)
        self.code = code


class WebhookNotConfiguredError(Exception):
    """No webhook secret configured; every delivery is rejected."""


class WebhookOutcome(str, enum.Enum):
    PROCESSED = "processed"
    DUPLICATE_IGNORED = "duplicate_ignored"
    IGNORED = "ignored"  # event type this service does not act on
    ORDER_NOT_FOUND = "order_not_found"


@dataclass
class WebhookResult:
    event_id: str
    event_type: str
    outcome: WebhookOutcome
    order_id: Optional[str] = None


def _payment_entity(event: dict) -> dict:
    payload = event.get("payload") or {}
    entity = (payload.get("payment") or {}).get("entity")
    if entity is None:
        entity = (payload.get("order") or {}).get("entity")
    return entity if isinstance(entity, dict) else {}


class WebhookProcessor:
    """Applies verified gateway events to orders and entitlements."""

    def __init__(self, db_session: Session, secret: Optional[str] = None):
        self.db = db_session
        self.secret = secret if secret is not None else get_webhook_secret()

    def verify(self, raw_body: bytes, signature: Optional[str]) -> dict:
        """Check the signature and parse the event body."""
        if not self.secret:
            raise WebhookNotConfiguredError("PAYMENT_WEBHOOK_SECRET is not configured")

        if not PaymentGatewayClient.verify_webhook_signature(raw_body, signature, self.secret):
            logger.warning("Webhook signature rejected", extra={"has_signature": bool(signature)})
            raise InvalidWebhookError("Invalid webhook signature", code="INVALID_SIGNATURE")

        try:
            event = json.loads(raw_body)
        except ValueError:
            raise InvalidWebhookError("Webhook body is not valid JSON", code="INVALID_PAYLOAD")

        if not isinstance(event, dict) or not event.get("id"):
            raise InvalidWebhookError("Webhook event id missing", code="MISSING_EVENT_ID")
        return event

    def _record_event(self, event: dict) -> bool:
        """Add the event to the ledger; False if it was already recorded."""
        inserted = insert_on_conflict_do_nothing(
            self.db,
            WebhookEvent.__table__,
            {
                "id": generate_uuid(),
                "event_id": str(event["id"]),
                "event_type": str(event.get("event") or ""),
                "payload": event,
                "received_at": utcnow(),
            },
            index_elements=["event_id"],
        )
        return inserted == 1

    def process(self, raw_body: bytes, signature: Optional[str]) -> WebhookResult:
        event = self.verify(raw_body, signature)
        event_id = str(event["id"])
        event_type = str(event.get("event") or "")

        try:
            first_delivery = self._record_event(event)
            if not first_delivery:
                self.db.rollback()
                logger.info("Duplicate webhook ignored", extra={"event_id": event_id})
                return WebhookResult(event_id, event_type, WebhookOutcome.DUPLICATE_IGNORED)

            if event_type in CAPTURED_EVENTS:
                return self._handle_captured(event_id, event_type, _payment_entity(event))

            if event_type in FAILED_EVENTS or event_type in CANCELLED_EVENTS:
                target = OrderStatus.CANCELLED if event_type in CANCELLED_EVENTS else OrderStatus.FAILED
                return self._handle_terminal(event_id, event_type, _payment_entity(event), target)

            self.db.commit()
            return WebhookResult(event_id, event_type, WebhookOutcome.IGNORED)

        except Exception:
            self.db.rollback()
            raise

    def _find_order(self, entity: dict):
        reference = entity.get("order_id") or entity.get("id")
        if not reference:
            return None
        return order_repository.get_order_by_reference(self.db, str(reference))

    def _handle_captured(self, event_id: str, event_type: str, entity: dict) -> WebhookResult:
        notes: Any = entity.get("notes") or {}
        user_id = notes.get("user_id") if isinstance(notes, dict) else None
        product_id = notes.get("product_id") if isinstance(notes, dict) else None
        reference = entity.get("order_id")

        if not user_id or not product_id or not reference:
            raise InvalidWebhookError("Captured payment payload incomplete", code="INVALID_PAYMENT_PAYLOAD")

        order = self._find_order(entity)
        if order is None:
            self.db.commit()
            logger.warning(
                "Captured payment for unknown order",
                extra={"event_id": event_id, "external_order_reference": reference},
            )
            return WebhookResult(event_id, event_type, WebhookOutcome.ORDER_NOT_FOUND)

        if order.user_id != user_id or order.product_id != product_id:
            logger.warning(
                "Captured payment notes do not match order",
                extra={"event_id": event_id, "order_id": order.id},
            )
            raise InvalidWebhookError("Payment notes do not match order", code="ORDER_MISMATCH")

        settle_order(self.db, order, SettlementSource.WEBHOOK, correlation_id=event_id)
        return WebhookResult(event_id, event_type, WebhookOutcome.PROCESSED, order_id=order.id)

    def _handle_terminal(
        self,
        event_id: str,
        event_type: str,
        entity: dict,
        target: OrderStatus,
    ) -> WebhookResult:
        order = self._find_order(entity)
        if order is None:
            self.db.commit()
            return WebhookResult(event_id, event_type, WebhookOutcome.ORDER_NOT_FOUND)

        fail_order(self.db, order, target, reason=event_type)
        return WebhookResult(event_id, event_type, WebhookOutcome.PROCESSED, order_id=order.id)
