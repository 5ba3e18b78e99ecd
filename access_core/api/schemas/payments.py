"""Request / response schemas for the payment endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field


class OrderStatusResponse(BaseModel):
    order_id: str
    status: str  # success | pending | failed | not_found


class ReconcileResponse(BaseModel):
    started_at: str
    completed_at: Optional[str] = None
    scanned: int
    fixed: int
    already_settled: int
    still_pending: int
    errors: List[str] = Field(default_factory=list)


class WebhookResponse(BaseModel):
    status: str
    event_id: str
    order_id: Optional[str] = None


class CheckoutVerifyRequest(BaseModel):
    """Checkout callback fields signed by the gateway over ``order_id|payment_id``."""
    order_id: str = Field(..., min_length=1)
    payment_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class CheckoutVerifyResponse(BaseModel):
    order_id: str
    payment_id: str
    verified: bool
    status: str  # same values as OrderStatusResponse.status
