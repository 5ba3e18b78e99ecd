"""
Platform snapshot refresh job.

Recomputes the distinct paid-user count and publishes it to the platform
snapshot cache read by the suggestion policy. Should run at an interval
shorter than PLATFORM_SNAPSHOT_TTL_SECONDS, otherwise the snapshot expires
and the platform reads as locked until the next run.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from access_core.policy.platform_snapshot import (
    PlatformSnapshot,
    PlatformSnapshotCache,
    get_platform_snapshot_cache,
    refresh_platform_snapshot,
)

logger = logging.getLogger(__name__)


def run_snapshot_refresh(
    db_session: Session,
    cache: Optional[PlatformSnapshotCache] = None,
) -> Optional[PlatformSnapshot]:
    """Refresh the snapshot; returns None if the count could not be computed."""
    try:
        return refresh_platform_snapshot(db_session, cache or get_platform_snapshot_cache())
    except Exception as e:
        logger.error("Platform snapshot refresh failed", extra={"error": str(e)})
        db_session.rollback()
        return None


# Entry point for cron/scheduler
if __name__ == "__main__":
    import os
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker

    logging.basicConfig(level=logging.INFO)

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("DATABASE_URL environment variable is required")
        raise SystemExit(1)

    engine = create_engine(database_url)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    try:
        snapshot = run_snapshot_refresh(session)
        print(f"Platform snapshot: {snapshot}")
    finally:
        session.close()
