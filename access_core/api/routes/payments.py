"""
Payment endpoints: status check, checkout verification, reconciliation
trigger and gateway webhook.

- GET  /payments/status?orderId=...  caller's view of an order
- POST /payments/verify              checkout callback signature check
- POST /payments/reconcile           cron only (Authorization: Bearer <CRON_SECRET>)
- POST /payments/webhook             gateway events (signature verified)
"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from access_core.api.dependencies.db import get_db_session
from access_core.api.schemas.payments import (
    CheckoutVerifyRequest,
    CheckoutVerifyResponse,
    OrderStatusResponse,
    ReconcileResponse,
    WebhookResponse,
)
from access_core.config import (
    RATE_LIMIT_NAMESPACE_API,
    RATE_LIMIT_NAMESPACE_PAYMENT,
    RATE_LIMIT_NAMESPACE_WEBHOOK,
    get_checkout_secret,
    get_cron_secret,
)
from access_core.entitlements.errors import EntitlementConflictError
from access_core.integrations.payments.gateway_client import PaymentGatewayClient
from access_core.jobs.reconcile_payments import PaymentReconciliationJob
from access_core.middleware.rate_limit import rate_limit_dependency
from access_core.platform.errors import AuthenticationError, ConflictError, ValidationError
from access_core.platform.identity import extract_bearer_token, get_current_user_id
from access_core.services.payment_status import get_order_status
from access_core.services.webhook_processor import (
    InvalidWebhookError,
    WebhookNotConfiguredError,
    WebhookProcessor,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

WEBHOOK_SIGNATURE_HEADER = "x-razorpay-signature"


@router.get("/status", response_model=OrderStatusResponse)
def payment_status(
    order_id: Optional[str] = Query(None, alias="orderId"),
    user_id: Optional[str] = Depends(get_current_user_id),
    db: Session = Depends(get_db_session),
    _rate_limit=Depends(rate_limit_dependency(RATE_LIMIT_NAMESPACE_API)),
) -> OrderStatusResponse:
    """
    Ownership-scoped order status.

    ``success`` only once the order's entitlement is visible.
    """
    if not order_id or not order_id.strip():
        raise ValidationError("orderId is required", {"field": "orderId"})
    if not user_id:
        raise AuthenticationError()

    result = get_order_status(db, user_id, order_id.strip())
    return OrderStatusResponse(order_id=order_id.strip(), status=result.value)


@router.post("/verify", response_model=CheckoutVerifyResponse)
def verify_checkout(
    body: CheckoutVerifyRequest,
    user_id: Optional[str] = Depends(get_current_user_id),
    db: Session = Depends(get_db_session),
    _rate_limit=Depends(rate_limit_dependency(RATE_LIMIT_NAMESPACE_PAYMENT)),
) -> CheckoutVerifyResponse:
    """
    Check the checkout callback signature and report the order's status.

    A valid signature settles nothing: access is granted by the webhook or
    the reconciliation sweep, so the status reads ``pending`` until then.
    """
    if not user_id:
        raise AuthenticationError()

    secret = get_checkout_secret()
    if not secret:
        logger.error("Checkout verification requested but PAYMENT_GATEWAY_KEY_SECRET is not configured")
        raise AuthenticationError("Checkout verification unavailable")

    if not PaymentGatewayClient.verify_checkout_signature(body.order_id, body.payment_id, body.signature, secret):
        logger.warning(
            "Checkout signature rejected",
            extra={"user_id": user_id, "external_order_reference": body.order_id},
        )
        raise ValidationError("Invalid checkout signature", {"reason": "INVALID_SIGNATURE"})

    result = get_order_status(db, user_id, body.order_id)
    return CheckoutVerifyResponse(
        order_id=body.order_id,
        payment_id=body.payment_id,
        verified=True,
        status=result.value,
    )


def _require_cron_secret(request: Request) -> None:
    secret = get_cron_secret()
    token = extract_bearer_token(request.headers.get("authorization"))
    if not secret or not token or not hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8")):
        logger.warning("Rejected reconciliation trigger", extra={"path": request.url.path})
        raise AuthenticationError("Invalid cron credentials")


def _gateway_factory(request: Request):
    return getattr(request.app.state, "gateway_factory", None) or PaymentGatewayClient


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_payments(
    request: Request,
    db: Session = Depends(get_db_session),
) -> ReconcileResponse:
    """Run one reconciliation sweep. Idempotent; safe to trigger redundantly."""
    _require_cron_secret(request)

    async with _gateway_factory(request)() as gateway:
        result = await PaymentReconciliationJob(db, gateway).run()

    return ReconcileResponse(**result.to_dict())


@router.post("/webhook", response_model=WebhookResponse)
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db_session),
    _rate_limit=Depends(rate_limit_dependency(RATE_LIMIT_NAMESPACE_WEBHOOK)),
) -> WebhookResponse:
    """Apply a gateway event. Rate limited before the body is read."""
    raw_body = await request.body()
    signature = request.headers.get(WEBHOOK_SIGNATURE_HEADER)

    try:
        result = WebhookProcessor(db).process(raw_body, signature)
    except WebhookNotConfiguredError:
        logger.error("Webhook received but PAYMENT_WEBHOOK_SECRET is not configured")
        raise AuthenticationError("Webhook verification unavailable")
    except InvalidWebhookError as e:
        raise ValidationError(str(e), {"reason": e.code})
    except EntitlementConflictError as e:
        # Order left pending; the gateway redelivers or the sweep settles it
        raise ConflictError(e.message, {"reason": e.error_code, "order_id": e.order_id})

    return WebhookResponse(
        status=result.outcome.value,
        event_id=result.event_id,
        order_id=result.order_id,
    )
