"""
Product access endpoint.

Every product-gated read goes through EntitlementResolver.guard_product_access;
this endpoint exposes the same decision.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from access_core.api.dependencies.db import get_db_session
from access_core.api.schemas.access import ProductAccessResponse
from access_core.config import RATE_LIMIT_NAMESPACE_API
from access_core.entitlements.resolver import EntitlementResolver, GuardReason
from access_core.middleware.rate_limit import rate_limit_dependency
from access_core.platform.errors import AuthenticationError, PermissionDeniedError
from access_core.platform.identity import get_current_user_id

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/{product_id}/access", response_model=ProductAccessResponse)
def product_access(
    product_id: str,
    user_id: Optional[str] = Depends(get_current_user_id),
    db: Session = Depends(get_db_session),
    _rate_limit=Depends(rate_limit_dependency(RATE_LIMIT_NAMESPACE_API)),
) -> ProductAccessResponse:
    result = EntitlementResolver(db).guard_product_access(user_id, product_id)

    if result.allowed:
        return ProductAccessResponse(allowed=True, product_id=product_id)

    if result.reason == GuardReason.UNAUTHORIZED:
        raise AuthenticationError(details={"reason": GuardReason.UNAUTHORIZED.value})
    raise PermissionDeniedError(
        "No active entitlement for this product",
        details={"reason": GuardReason.FORBIDDEN.value, "product_id": product_id},
    )
