from access_core.integrations.payments.gateway_client import (
    GatewayPayment,
    PaymentGatewayClient,
    PaymentGatewayError,
)

__all__ = ["GatewayPayment", "PaymentGatewayClient", "PaymentGatewayError"]
