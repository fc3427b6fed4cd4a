"""
SQLAlchemy engine singleton with production-ready connection pooling.

PostgreSQL is the production database; booking transactions there rely on
``SELECT ... FOR UPDATE`` row locks. SQLite is supported for development and
tests: it has no row locks, so booking transactions (those carrying the
``cabin_lock_timeout`` execution option) are opened with ``BEGIN IMMEDIATE``,
which takes the database write lock up front and gives the same
one-writer-at-a-time guarantee for the inventory rows. Every other transaction
is a plain deferred ``BEGIN``, so reads never queue behind a booking.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError

from cabin_bookings.config import DATABASE_URL, LOCK_TIMEOUT_SECONDS

# Execution option carrying a per-transaction lock wait (seconds)
LOCK_TIMEOUT_OPTION = "cabin_lock_timeout"

# PostgreSQL SQLSTATE codes
PG_LOCK_NOT_AVAILABLE = "55P03"
PG_DEADLOCK_DETECTED = "40P01"
PG_SERIALIZATION_FAILURE = "40001"


def _configure_sqlite(engine: Engine) -> None:
    """Make pysqlite transactions explicit; booking transactions are writer-exclusive."""

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection: Any, connection_record: Any) -> None:
        # Let SQLAlchemy's "begin" event emit BEGIN instead of pysqlite
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn: Connection) -> None:
        options = conn.get_execution_options()
        timeout = options.get(LOCK_TIMEOUT_OPTION, LOCK_TIMEOUT_SECONDS)
        # busy_timeout outlives the transaction on a pooled connection
        conn.exec_driver_sql(f"PRAGMA busy_timeout = {int(timeout * 1000)}")
        if LOCK_TIMEOUT_OPTION not in options:
            conn.exec_driver_sql("BEGIN")
            return
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **kwargs: Any) -> Engine:
    """
    Create an engine for the given database URL.

    Args:
        url: SQLAlchemy database URL
        **kwargs: Extra keyword arguments forwarded to ``create_engine``

    Returns:
        Engine: Configured SQLAlchemy engine
    """
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            future=True,
            connect_args={"check_same_thread": False, "timeout": LOCK_TIMEOUT_SECONDS},
            **kwargs,
        )
        _configure_sqlite(engine)
        return engine

    return create_engine(
        url,
        future=True,
        # Connection pool settings
        pool_size=10,  # Number of connections to maintain in the pool
        max_overflow=20,  # Additional connections when pool is exhausted
        pool_pre_ping=True,  # Verify connections before using (detect stale connections)
        pool_recycle=3600,  # Recycle connections after 1 hour (prevents stale connections)
        echo=False,
        **kwargs,
    )


def apply_lock_timeout(conn: Connection, seconds: float) -> None:
    """
    Bound how long the current transaction waits for row locks.

    On PostgreSQL this is ``SET LOCAL lock_timeout``; SQLite picks the value up
    from the ``cabin_lock_timeout`` execution option when the transaction begins.
    """
    if conn.dialect.name == "postgresql":
        conn.execute(text(f"SET LOCAL lock_timeout = '{int(seconds * 1000)}ms'"))


def is_lock_timeout(exc: DBAPIError) -> bool:
    """Return True when the error means a lock could not be acquired in time."""
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == PG_LOCK_NOT_AVAILABLE:
        return True
    return "database is locked" in str(orig).lower()


def is_serialization_conflict(exc: DBAPIError) -> bool:
    """Return True for deadlocks / serialization failures worth a client retry."""
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) in (PG_DEADLOCK_DETECTED, PG_SERIALIZATION_FAILURE)


if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set.")

engine: Engine = build_engine(DATABASE_URL)


def check_engine_health() -> bool:
    """
    Check if database engine is healthy and connections are working.

    This function is used by the /ready endpoint to verify database
    connectivity before allowing traffic to the service.

    Returns:
        bool: True if database is reachable and healthy, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
