"""
Tests for the platform paid-user snapshot.

The in-memory backend is used throughout; Redis failures are simulated
with a Mock client.
"""

from datetime import datetime, timezone
from unittest.mock import Mock, patch

import redis

from access_core.jobs.refresh_platform_snapshot import run_snapshot_refresh
from access_core.models import OrderStatus
from access_core.policy.platform_snapshot import (
    PlatformSnapshot,
    PlatformSnapshotCache,
    refresh_platform_snapshot,
)


def _memory_cache(ttl_seconds=900):
    with patch.dict("os.environ", {}, clear=False) as env:
        env.pop("REDIS_URL", None)
        return PlatformSnapshotCache(ttl_seconds=ttl_seconds)


class TestPlatformSnapshotCache:

    def test_missing_snapshot_reads_as_none(self):
        cache = _memory_cache()

        assert cache.get() is None
        assert cache.paid_users_count() is None

    def test_set_then_get(self):
        cache = _memory_cache()
        snapshot = PlatformSnapshot(paid_users_count=1200, computed_at=datetime(2026, 10, 19, tzinfo=timezone.utc))

        cache.set(snapshot)

        assert cache.get() == snapshot
        assert cache.get().unlocked is True

    def test_expired_snapshot_is_dropped(self):
        cache = _memory_cache(ttl_seconds=60)
        cache.set(PlatformSnapshot(paid_users_count=5, computed_at=datetime.now(timezone.utc)))

        with patch("access_core.policy.platform_snapshot.time.time", return_value=10**12):
            assert cache.get() is None

    def test_invalidate(self):
        cache = _memory_cache()
        cache.set(PlatformSnapshot(paid_users_count=5, computed_at=datetime.now(timezone.utc)))

        cache.invalidate()

        assert cache.get() is None

    def test_redis_read_failure_reads_as_locked(self):
        cache = _memory_cache()
        cache._redis = Mock()
        cache._redis.get.side_effect = redis.ConnectionError("down")

        assert cache.paid_users_count() is None

    def test_unreachable_redis_falls_back_to_memory(self):
        client = Mock()
        client.ping.side_effect = redis.ConnectionError("refused")

        with patch("access_core.policy.platform_snapshot.redis.from_url", return_value=client):
            cache = PlatformSnapshotCache(redis_url="redis://localhost:6390/0")

        cache.set(PlatformSnapshot(paid_users_count=3, computed_at=datetime.now(timezone.utc)))
        assert cache.paid_users_count() == 3
        client.setex.assert_not_called()


class TestRefresh:

    def test_refresh_counts_distinct_paid_users(self, db_session, make_order):
        make_order(user_id="a", status=OrderStatus.PAID)
        make_order(user_id="a", status=OrderStatus.PAID)
        make_order(user_id="b", status=OrderStatus.PAID)
        make_order(user_id="c")
        cache = _memory_cache()

        snapshot = refresh_platform_snapshot(db_session, cache)

        assert snapshot.paid_users_count == 2
        assert snapshot.unlocked is False
        assert cache.paid_users_count() == 2

    def test_job_returns_none_on_store_error(self):
        db = Mock()
        db.query.side_effect = RuntimeError("database unavailable")
        cache = _memory_cache()

        assert run_snapshot_refresh(db, cache) is None
        db.rollback.assert_called_once()
        assert cache.get() is None
