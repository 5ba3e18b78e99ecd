"""Helpers for getting database sessions from application state."""

from typing import Generator

from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session

from access_core.database import session_scope


def get_db_session(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request from ``app.state.session_factory``."""
    factory = getattr(request.app.state, "session_factory", None)
    if factory is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database session not available",
        )
    yield from session_scope(factory)
