"""
Database engine and session factory.

Configuration (environment variables):
- DATABASE_URL: SQLAlchemy URL (default: "sqlite:///./access_core.db")
"""

import os
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from access_core.db_base import Base

DEFAULT_DATABASE_URL = "sqlite:///./access_core.db"


def build_engine(database_url: Optional[str] = None) -> Engine:
    url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    kwargs = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
    return create_engine(url, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def create_schema(engine: Engine) -> None:
    """Create every table registered on Base (local runs and tests)."""
    # Register models on the metadata
    import access_core.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """Yield a session and always close it."""
    session = factory()
    try:
        yield session
    finally:
        session.close()
