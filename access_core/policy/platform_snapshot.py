"""
Platform paid-user snapshot.

The platform unlock is evaluated against a periodically recomputed count
of paying users, never against a per-request aggregate. The snapshot is
shared through Redis when REDIS_URL is configured and kept in process
memory otherwise. A missing or unreadable snapshot means "locked".
"""

import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

import redis
from sqlalchemy.orm import Session

from access_core.config import PLATFORM_SNAPSHOT_TTL_SECONDS
from access_core.policy.feature_flags import is_platform_unlocked
from access_core.repositories.order_repository import count_paid_users

logger = logging.getLogger(__name__)

CACHE_SCHEMA_VERSION = 1
SNAPSHOT_KEY = "platform:paid_users:v1"


@dataclass(frozen=True)
class PlatformSnapshot:
    paid_users_count: int
    computed_at: datetime

    @property
    def unlocked(self) -> bool:
        return is_platform_unlocked(self.paid_users_count)


class PlatformSnapshotCache:
    """Redis-backed snapshot cache with in-memory fallback."""

    def __init__(self, redis_url: Optional[str] = None, ttl_seconds: int = PLATFORM_SNAPSHOT_TTL_SECONDS) -> None:
        self._ttl_seconds = ttl_seconds
        self._redis: Optional[redis.Redis] = None
        self._mem: Dict[str, tuple[float, dict]] = {}
        self._lock = threading.Lock()
        redis_url = redis_url or os.getenv("REDIS_URL")

        if redis_url:
            try:
                self._redis = redis.from_url(
                    redis_url,
                    decode_responses=True,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                )
                self._redis.ping()
            except redis.RedisError as e:
                logger.warning("Redis unavailable for platform snapshot: %s", e)
                self._redis = None

    def get(self) -> Optional[PlatformSnapshot]:
        if self._redis is not None:
            try:
                raw = self._redis.get(SNAPSHOT_KEY)
            except redis.RedisError as e:
                logger.warning("Platform snapshot read failed: %s", e)
                return None
            if not raw:
                return None
            return _decode_snapshot(json.loads(raw))

        with self._lock:
            data = self._mem.get(SNAPSHOT_KEY)
            if not data:
                return None
            cached_at, payload = data
            if time.time() - cached_at > self._ttl_seconds:
                self._mem.pop(SNAPSHOT_KEY, None)
                return None
        return _decode_snapshot(payload)

    def set(self, snapshot: PlatformSnapshot) -> None:
        payload = _encode_snapshot(snapshot)
        if self._redis is not None:
            try:
                self._redis.setex(SNAPSHOT_KEY, self._ttl_seconds, json.dumps(payload))
            except redis.RedisError as e:
                logger.warning("Platform snapshot write failed: %s", e)
            return

        with self._lock:
            self._mem[SNAPSHOT_KEY] = (time.time(), payload)

    def invalidate(self) -> None:
        if self._redis is not None:
            try:
                self._redis.delete(SNAPSHOT_KEY)
            except redis.RedisError as e:
                logger.warning("Platform snapshot delete failed: %s", e)
        with self._lock:
            self._mem.pop(SNAPSHOT_KEY, None)

    def paid_users_count(self) -> Optional[int]:
        """Snapshot count, or None when no snapshot is available."""
        snapshot = self.get()
        return snapshot.paid_users_count if snapshot else None


def _encode_snapshot(snapshot: PlatformSnapshot) -> dict:
    return {
        "schema_version": CACHE_SCHEMA_VERSION,
        "paid_users_count": snapshot.paid_users_count,
        "computed_at": snapshot.computed_at.isoformat(),
    }


def _decode_snapshot(raw: dict) -> Optional[PlatformSnapshot]:
    if int(raw.get("schema_version", CACHE_SCHEMA_VERSION)) != CACHE_SCHEMA_VERSION:
        return None
    return PlatformSnapshot(
        paid_users_count=int(raw["paid_users_count"]),
        computed_at=datetime.fromisoformat(raw["computed_at"]),
    )


def refresh_platform_snapshot(db: Session, cache: PlatformSnapshotCache) -> PlatformSnapshot:
    """Recompute the paid-user count from the order store and publish it."""
    snapshot = PlatformSnapshot(
        paid_users_count=count_paid_users(db),
        computed_at=datetime.now(timezone.utc),
    )
    cache.set(snapshot)
    logger.info(
        "Platform snapshot refreshed",
        extra={
            "paid_users_count": snapshot.paid_users_count,
            "unlocked": snapshot.unlocked,
        },
    )
    return snapshot


_cache_instance: Optional[PlatformSnapshotCache] = None


def get_platform_snapshot_cache() -> PlatformSnapshotCache:
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = PlatformSnapshotCache()
    return _cache_instance
