"""Dialect helpers shared by the repositories."""

from typing import Any

from sqlalchemy.orm import Session


def dialect_name(db: Session) -> str:
    bind = db.get_bind()
    return str(getattr(getattr(bind, "dialect", None), "name", "")).lower()


def insert_on_conflict_do_nothing(
    db: Session,
    table: Any,
    values: dict[str, Any],
    index_elements: list[str],
) -> int:
    """
    Dialect-aware ``INSERT .. ON CONFLICT (index_elements) DO NOTHING``.

    Returns the number of rows inserted (0 when the conflict target already
    existed). Conflicts on any other unique index still raise IntegrityError.
    """
    if dialect_name(db) == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as _pg_insert

        stmt = _pg_insert(table).values(**values)
    else:
        from sqlalchemy.dialects.sqlite import insert as _sqlite_insert

        stmt = _sqlite_insert(table).values(**values)

    stmt = stmt.on_conflict_do_nothing(index_elements=index_elements)
    result = db.execute(stmt)
    return result.rowcount or 0
