"""Configuration module for the access-control core."""

from access_core.config.access import (
    CAPTURED_PAYMENT_STATUS,
    PLATFORM_SNAPSHOT_TTL_SECONDS,
    PLATFORM_UNLOCK_PAID_USERS,
    RATE_LIMIT_NAMESPACE_API,
    RATE_LIMIT_NAMESPACE_PAYMENT,
    RATE_LIMIT_NAMESPACE_WEBHOOK,
    RECONCILE_BATCH_LIMIT,
    RECONCILE_STALE_AFTER,
    WEBHOOK_GLOBAL_KEY,
    get_checkout_secret,
    get_cron_secret,
    get_rate_limit_interval_ms,
    get_rate_limit_tokens,
    get_webhook_secret,
    is_rate_limit_enabled,
)

__all__ = [
    "CAPTURED_PAYMENT_STATUS",
    "PLATFORM_SNAPSHOT_TTL_SECONDS",
    "PLATFORM_UNLOCK_PAID_USERS",
    "RATE_LIMIT_NAMESPACE_API",
    "RATE_LIMIT_NAMESPACE_PAYMENT",
    "RATE_LIMIT_NAMESPACE_WEBHOOK",
    "RECONCILE_BATCH_LIMIT",
    "RECONCILE_STALE_AFTER",
    "WEBHOOK_GLOBAL_KEY",
    "get_checkout_secret",
    "get_cron_secret",
    "get_rate_limit_interval_ms",
    "get_rate_limit_tokens",
    "get_webhook_secret",
    "is_rate_limit_enabled",
]
