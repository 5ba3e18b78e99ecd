"""Order settlement, status queries and webhook processing."""
