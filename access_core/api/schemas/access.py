"""Request / response schemas for product and suggestion access."""

from typing import Optional

from pydantic import BaseModel, Field


class ProductAccessResponse(BaseModel):
    allowed: bool
    product_id: str


class SuggestionAccessRequestBody(BaseModel):
    """
    Suggestion access query.

    Either ``plan_id`` (billing plan, collapsed to a tier server-side) or
    ``user_plan_type`` ("free" | "paid") must be given. Paid-user count and
    add-ons are always resolved server-side.
    """
    suggestion_type: str = Field(..., min_length=1)
    plan_id: Optional[str] = None
    user_plan_type: Optional[str] = None


class SuggestionAccessResponse(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    required_paid_users: Optional[int] = None
    required_addon: Optional[str] = None


class PlanFeatureResponse(BaseModel):
    plan_id: str
    feature: str
    tier: str  # free | paid
    enabled: bool
    limit: int
