"""
Access-control configuration.

Rate-limit tiers, reconciliation timing and platform unlock thresholds.
Every value can be overridden through the environment; defaults match the
production tiers.
"""

import os
from datetime import timedelta

# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

RATE_LIMIT_NAMESPACE_API = "api"
RATE_LIMIT_NAMESPACE_PAYMENT = "payment"
RATE_LIMIT_NAMESPACE_WEBHOOK = "webhook"

# Webhook ingestion has no meaningful per-client key
WEBHOOK_GLOBAL_KEY = "webhook:global"

DEFAULT_RATE_LIMIT_TOKENS = {
    RATE_LIMIT_NAMESPACE_API: 60,
    RATE_LIMIT_NAMESPACE_PAYMENT: 10,
    RATE_LIMIT_NAMESPACE_WEBHOOK: 120,
}

DEFAULT_RATE_LIMIT_INTERVAL_MS = 60_000


def is_rate_limit_enabled() -> bool:
    """Kill switch for every rate limit dependency."""
    return os.getenv("RATE_LIMIT_ENABLED", "true").lower() in ("true", "1", "yes")


def get_rate_limit_tokens(namespace: str) -> int:
    """Bucket capacity for a namespace, e.g. ``RATE_LIMIT_PAYMENT_TOKENS``."""
    default = DEFAULT_RATE_LIMIT_TOKENS.get(namespace, DEFAULT_RATE_LIMIT_TOKENS[RATE_LIMIT_NAMESPACE_API])
    return int(os.getenv(f"RATE_LIMIT_{namespace.upper()}_TOKENS", str(default)))


def get_rate_limit_interval_ms() -> int:
    return int(os.getenv("RATE_LIMIT_INTERVAL_MS", str(DEFAULT_RATE_LIMIT_INTERVAL_MS)))


# ---------------------------------------------------------------------------
# Payment reconciliation
# ---------------------------------------------------------------------------

# Below this age a confirmation may still be in flight
RECONCILE_STALE_AFTER = timedelta(
    minutes=int(os.getenv("RECONCILE_STALE_AFTER_MINUTES", "10"))
)

# Upper bound on candidates per sweep
RECONCILE_BATCH_LIMIT = int(os.getenv("RECONCILE_BATCH_LIMIT", "500"))

# Gateway marker for a settled payment attempt
CAPTURED_PAYMENT_STATUS = "captured"


# ---------------------------------------------------------------------------
# Platform unlock
# ---------------------------------------------------------------------------

PLATFORM_UNLOCK_PAID_USERS = int(os.getenv("PLATFORM_UNLOCK_PAID_USERS", "1000"))

PLATFORM_SNAPSHOT_TTL_SECONDS = int(os.getenv("PLATFORM_SNAPSHOT_TTL_SECONDS", "900"))


# ---------------------------------------------------------------------------
# Secrets
# ---------------------------------------------------------------------------

def get_cron_secret() -> str:
    return os.getenv("CRON_SECRET", "")


def get_webhook_secret() -> str:
    return os.getenv("PAYMENT_WEBHOOK_SECRET", "")


def get_checkout_secret() -> str:
    return os.getenv("PAYMENT_GATEWAY_KEY_SECRET", "")
