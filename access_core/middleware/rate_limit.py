"""
Rate limiting using in-process token buckets.

Protects mutation endpoints from abuse with one token bucket per key.
Buckets start full, refill continuously at ``capacity / interval`` and each
allowed request spends exactly one token.

Features:
- Per-IP buckets for the ``api`` and ``payment`` namespaces
- One global bucket (``webhook:global``) for webhook ingestion
- Returns 429 with Retry-After header when exceeded
- Emits rate_limit.triggered via structured logging
- Clients without an identifiable IP share the ``unknown`` bucket

Configuration (environment variables):
- RATE_LIMIT_API_TOKENS:     api bucket capacity (default: "60")
- RATE_LIMIT_PAYMENT_TOKENS: payment bucket capacity (default: "10")
- RATE_LIMIT_WEBHOOK_TOKENS: webhook bucket capacity (default: "120")
- RATE_LIMIT_INTERVAL_MS:    Full refill interval (default: "60000")
- RATE_LIMIT_ENABLED:        Kill switch (default: "true")

Buckets live in process memory only. Each instance of the service enforces
its own limits and a restart resets them; this is a best-effort abuse
guard, not a distributed limiter.

Usage (FastAPI dependency injection):
    from access_core.middleware.rate_limit import rate_limit_dependency

    @router.post("/payments/webhook")
    async def payment_webhook(
        request: Request,
        _rate_limit=Depends(rate_limit_dependency("webhook")),
    ):
        ...
"""

import heapq
import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

from fastapi import Request

from access_core.config import (
    RATE_LIMIT_NAMESPACE_WEBHOOK,
    WEBHOOK_GLOBAL_KEY,
    get_rate_limit_interval_ms,
    get_rate_limit_tokens,
    is_rate_limit_enabled,
)
from access_core.platform.errors import RateLimitError

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT_IP = "unknown"

DEFAULT_MAX_BUCKETS = 10_000


# ---------------------------------------------------------------------------
# Configuration / state dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RateLimitConfig:
    """
    Bucket shape.

    Attributes:
        capacity:    Maximum tokens; also the burst size.
        interval_ms: Time for an empty bucket to refill completely.
    """

    capacity: int
    interval_ms: int

    def __post_init__(self):
        if self.capacity <= 0:
            raise ValueError("capacity must be positive")
        if self.interval_ms <= 0:
            raise ValueError("interval_ms must be positive")


@dataclass
class RateBucket:
    tokens: float
    last_refill_ms: float
    interval_ms: int
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


# ---------------------------------------------------------------------------
# RateLimiter class
# ---------------------------------------------------------------------------

class RateLimiter:
    """
    Token-bucket rate limiter keyed by caller-supplied strings.

    The refill-then-spend sequence runs under the bucket's own lock, so
    concurrent calls for the same key serialize while different keys never
    contend. A registry lock only guards lazy bucket creation.

    Keys come from client-controlled headers, so the bucket map is bounded:
    when it reaches ``max_buckets``, buckets idle for a full interval (and
    therefore full again) are dropped, then the least recently used ones.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], float]] = None,
        max_buckets: int = DEFAULT_MAX_BUCKETS,
    ):
        if max_buckets <= 0:
            raise ValueError("max_buckets must be positive")
        self._clock = clock or _monotonic_ms
        self._max_buckets = max_buckets
        self._buckets: dict[str, RateBucket] = {}
        self._registry_lock = threading.Lock()

    def _get_bucket(self, key: str, config: RateLimitConfig) -> RateBucket:
        bucket = self._buckets.get(key)
        if bucket is not None:
            return bucket
        with self._registry_lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                now_ms = self._clock()
                if len(self._buckets) >= self._max_buckets:
                    self._evict_locked(now_ms)
                bucket = RateBucket(
                    tokens=float(config.capacity),
                    last_refill_ms=now_ms,
                    interval_ms=config.interval_ms,
                )
                self._buckets[key] = bucket
            return bucket

    def _evict_locked(self, now_ms: float) -> None:
        idle = [
            key for key, bucket in self._buckets.items()
            if now_ms - bucket.last_refill_ms >= bucket.interval_ms
        ]
        for key in idle:
            del self._buckets[key]

        overflow = len(self._buckets) - self._max_buckets + 1
        if overflow <= 0:
            return
        # At least a tenth per pass
        count = max(overflow, self._max_buckets // 10)
        for key in heapq.nsmallest(count, self._buckets, key=lambda k: self._buckets[k].last_refill_ms):
            del self._buckets[key]
        logger.warning(
            "Rate limiter evicted active buckets",
            extra={"evicted": count, "max_buckets": self._max_buckets},
        )

    @staticmethod
    def _refill(bucket: RateBucket, config: RateLimitConfig, now_ms: float) -> None:
        elapsed = now_ms - bucket.last_refill_ms
        if elapsed <= 0:
            return
        bucket.tokens = min(
            float(config.capacity),
            bucket.tokens + (elapsed / config.interval_ms) * config.capacity,
        )
        bucket.last_refill_ms = now_ms

    def allow(self, key: str, config: RateLimitConfig) -> bool:
        """
        Spend one token for ``key`` if available.

        Returns False without debiting when the bucket holds less than one
        token.
        """
        bucket = self._get_bucket(key, config)
        with bucket.lock:
            self._refill(bucket, config, self._clock())
            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                return True
            return False

    def retry_after_seconds(self, key: str, config: RateLimitConfig) -> int:
        """Whole seconds until ``key`` has one token again (at least 1)."""
        bucket = self._get_bucket(key, config)
        with bucket.lock:
            self._refill(bucket, config, self._clock())
            deficit = max(0.0, 1.0 - bucket.tokens)
        wait_ms = deficit / config.capacity * config.interval_ms
        return max(1, math.ceil(wait_ms / 1000.0))

    def bucket_count(self) -> int:
        return len(self._buckets)

    def reset(self) -> None:
        """Drop every bucket."""
        with self._registry_lock:
            self._buckets.clear()


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def get_client_ip(headers: Mapping[str, str]) -> str:
    """
    Client IP for bucket keys.

    First x-forwarded-for entry, else x-real-ip, else ``"unknown"``.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return UNKNOWN_CLIENT_IP


def rate_limit_key(namespace: str, headers: Mapping[str, str]) -> str:
    if namespace == RATE_LIMIT_NAMESPACE_WEBHOOK:
        return WEBHOOK_GLOBAL_KEY
    return f"{namespace}:{get_client_ip(headers)}"


def get_rate_limit_config(namespace: str) -> RateLimitConfig:
    return RateLimitConfig(
        capacity=get_rate_limit_tokens(namespace),
        interval_ms=get_rate_limit_interval_ms(),
    )


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_rate_limiter_instance: Optional[RateLimiter] = None
_instance_lock = threading.Lock()


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide :class:`RateLimiter` singleton."""
    global _rate_limiter_instance
    if _rate_limiter_instance is None:
        with _instance_lock:
            if _rate_limiter_instance is None:
                _rate_limiter_instance = RateLimiter()
    return _rate_limiter_instance


def enforce_rate_limit(namespace: str, headers: Mapping[str, str], path: str = "") -> None:
    """
    Spend a token for the caller or raise RateLimitError.

    Used directly by handlers that must rate-limit before reading the body.
    """
    if not is_rate_limit_enabled():
        return

    limiter = get_rate_limiter()
    config = get_rate_limit_config(namespace)
    key = rate_limit_key(namespace, headers)

    if limiter.allow(key, config):
        return

    retry_after = limiter.retry_after_seconds(key, config)
    logger.warning(
        "Rate limit triggered",
        extra={
            "action": "rate_limit.triggered",
            "namespace": namespace,
            "key": key,
            "capacity": config.capacity,
            "interval_ms": config.interval_ms,
            "retry_after": retry_after,
            "path": path,
        },
    )
    raise RateLimitError(
        message="Too many requests. Please wait before retrying.",
        retry_after=retry_after,
    )


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------

def rate_limit_dependency(namespace: str) -> Callable:
    """
    Create a FastAPI dependency that enforces the namespace's bucket.

    Returns an async function suitable for use with ``Depends()``.
    """

    async def _dependency(request: Request) -> None:
        enforce_rate_limit(namespace, request.headers, path=request.url.path)

    return _dependency
