"""
FastAPI dependency injection providers.

Routes receive the engine and the booking locker through ``Depends`` so tests
can swap them with ``app.dependency_overrides`` (e.g. a SQLite engine or a
locker with a short lock timeout).
"""

from __future__ import annotations

from typing import Generator

from fastapi import Depends
from sqlalchemy.engine import Engine

from cabin_bookings.bookings.locker import BookingLocker
from cabin_bookings.db.engine import engine


def get_db_engine() -> Generator[Engine, None, None]:
    """
    Provide the database engine.

    Yields:
        Engine: SQLAlchemy database engine

    Testing Example:
        >>> app.dependency_overrides[get_db_engine] = lambda: sqlite_engine
        >>> client = TestClient(app)
        >>> client.get("/bookings/tahoe/availability?checkin=2025-03-03&checkout=2025-03-05")
    """
    yield engine


def get_booking_locker(db_engine: Engine = Depends(get_db_engine)) -> BookingLocker:
    """
    Provide a booking locker bound to the request's engine.

    Settings (hold duration, lock timeout, pricing defaults) come from config.
    """
    return BookingLocker(db_engine)
