"""
Payment gateway REST client.

Read-only access to the gateway's authoritative payment records plus the
signature checks used by the webhook and checkout confirmation paths.

Configuration (environment variables):
- PAYMENT_GATEWAY_BASE_URL:   API base (default: "https://api.razorpay.com")
- PAYMENT_GATEWAY_KEY_ID:     Basic-auth key id
- PAYMENT_GATEWAY_KEY_SECRET: Basic-auth key secret, also signs checkout callbacks
- PAYMENT_GATEWAY_TIMEOUT_SECONDS: Per-request timeout (default: "10")
"""

import hashlib
import hmac
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from access_core.config import CAPTURED_PAYMENT_STATUS

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_BASE_URL = "https://api.razorpay.com"


@dataclass(frozen=True)
class GatewayPayment:
    """One payment attempt recorded by the gateway for an order."""
    payment_id: str
    status: str
    amount: Optional[int] = None
    currency: Optional[str] = None

    @property
    def is_captured(self) -> bool:
        return self.status == CAPTURED_PAYMENT_STATUS


class PaymentGatewayError(Exception):
    """Error from the payment gateway API."""

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class PaymentGatewayClient:
    """
    Client for the payment gateway REST API.

    Handles:
    - Listing payment attempts for an order (reconciliation)
    - Webhook signature verification
    - Checkout callback signature verification
    """

    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the gateway client.

        Args:
            key_id: API key id (from env if not provided)
            key_secret: API key secret (from env if not provided)
            base_url: API base URL (from env if not provided)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.key_id = key_id or os.getenv("PAYMENT_GATEWAY_KEY_ID", "")
        self.key_secret = key_secret or os.getenv("PAYMENT_GATEWAY_KEY_SECRET", "")
        self.base_url = (base_url or os.getenv("PAYMENT_GATEWAY_BASE_URL", DEFAULT_GATEWAY_BASE_URL)).rstrip("/")
        if timeout is None:
            timeout = float(os.getenv("PAYMENT_GATEWAY_TIMEOUT_SECONDS", "10"))

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.key_id, self.key_secret),
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get(self, path: str) -> Dict[str, Any]:
        """
        GET a gateway resource.

        Raises:
            PaymentGatewayError: If the API call fails
        """
        try:
            response = await self._client.get(path)
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            logger.error("Payment gateway HTTP error", extra={
                "path": path,
                "status_code": e.response.status_code,
                "response": e.response.text[:500],
            })
            raise PaymentGatewayError(
                f"Payment gateway error: {e.response.status_code}",
                code=str(e.response.status_code),
            )
        except httpx.RequestError as e:
            logger.error("Payment gateway request error", extra={
                "path": path,
                "error": str(e),
            })
            raise PaymentGatewayError(f"Request failed: {str(e)}")
        except ValueError as e:
            raise PaymentGatewayError(f"Invalid gateway response: {str(e)}")

    async def list_payments(self, external_order_reference: str) -> list[GatewayPayment]:
        """
        List payment attempts the gateway holds for an order.

        Args:
            external_order_reference: Gateway order id

        Returns:
            Payment attempts, possibly empty
        """
        if not external_order_reference:
            raise PaymentGatewayError("external_order_reference is required", code="INVALID_REQUEST")

        data = await self._get(f"/v1/orders/{external_order_reference}/payments")
        items = data.get("items") or []

        payments = []
        for item in items:
            if not isinstance(item, dict):
                continue
            payments.append(GatewayPayment(
                payment_id=str(item.get("id", "")),
                status=str(item.get("status", "")),
                amount=item.get("amount"),
                currency=item.get("currency"),
            ))
        return payments

    @staticmethod
    def verify_webhook_signature(
        payload: bytes,
        signature: Optional[str],
        secret: Optional[str] = None,
    ) -> bool:
        """
        Verify a webhook HMAC-SHA256 hex signature over the raw body.

        Args:
            payload: Raw request body bytes
            signature: Signature header value
            secret: Webhook secret (uses PAYMENT_WEBHOOK_SECRET env var if not provided)

        Returns:
            True if signature is valid
        """
        secret = secret or os.getenv("PAYMENT_WEBHOOK_SECRET")
        if not secret:
            logger.error("PAYMENT_WEBHOOK_SECRET not configured for webhook verification")
            return False
        if not signature:
            return False

        expected = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))

    @staticmethod
    def verify_checkout_signature(
        external_order_reference: str,
        payment_id: str,
        signature: Optional[str],
        secret: Optional[str] = None,
    ) -> bool:
        """Verify the checkout callback signature over ``order_id|payment_id``."""
        secret = secret or os.getenv("PAYMENT_GATEWAY_KEY_SECRET")
        if not secret or not signature or not external_order_reference or not payment_id:
            return False

        message = f"{external_order_reference}|{payment_id}".encode("utf-8")
        expected = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
