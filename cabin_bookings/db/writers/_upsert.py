"""
Dialect-aware INSERT ... ON CONFLICT DO NOTHING.

Both PostgreSQL and SQLite support ``ON CONFLICT`` but SQLAlchemy exposes it
through dialect-specific ``insert`` constructs, so the statement is built for
whichever database the connection is talking to.
"""

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection


def insert_ignore_conflicts(
    conn: Connection,
    table: type,
    rows: list[dict[str, Any]],
    conflict_columns: list[str],
) -> int:
    """
    Insert rows, silently skipping any that collide on ``conflict_columns``.

    Args:
        conn: Active database connection (within transaction)
        table: SQLAlchemy ORM table class (e.g., PropertyInventory)
        rows: List of row dicts to insert
        conflict_columns: Columns of the primary key / unique constraint

    Returns:
        int: Number of rows actually inserted

    Example:
        >>> with engine.begin() as conn:
        ...     insert_ignore_conflicts(
        ...         conn=conn,
        ...         table=PropertyInventory,
        ...         rows=[{"property": "tahoe", "day": date(2025, 3, 7)}],
        ...         conflict_columns=["property", "day"],
        ...     )
    """
    if not rows:
        return 0

    if conn.dialect.name == "postgresql":
        stmt = postgresql.insert(table).values(rows)
    elif conn.dialect.name == "sqlite":
        stmt = sqlite.insert(table).values(rows)
    else:
        raise NotImplementedError(f"Unsupported dialect: {conn.dialect.name}")

    result = conn.execute(stmt.on_conflict_do_nothing(index_elements=conflict_columns))
    return result.rowcount
