"""
Entitlement error hierarchy.

Provides:
- EntitlementError: base for all entitlement failures
- EntitlementStoreError: backing store read/write failed (fail-closed)
- EntitlementConflictError: a concurrent writer holds the active grant for the pair
"""

from typing import Optional


class EntitlementError(Exception):
    """Base exception for entitlement-related failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EntitlementStoreError(EntitlementError):
    """
    Raised when the entitlement store cannot be read or written.

    Callers at the resolver boundary translate this into a denial.
    """

    def __init__(self, operation: str, cause: Optional[Exception] = None):
        self.operation = operation
        self.cause = cause
        self.error_code = "ENTITLEMENT_STORE_FAILED"
        super().__init__(f"Entitlement store {operation} failed: {cause}")

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "operation": self.operation,
        }


class EntitlementConflictError(EntitlementError):
    """Raised when the one-active-per-pair index rejects a grant."""

    def __init__(self, user_id: str, product_id: str, order_id: str):
        self.user_id = user_id
        self.product_id = product_id
        self.order_id = order_id
        self.error_code = "ENTITLEMENT_CONFLICT"
        super().__init__(
            f"Active entitlement for user {user_id} / product {product_id} "
            f"held by another order (granting order {order_id})"
        )

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "order_id": self.order_id,
        }
