from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

import structlog
from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from cabin_bookings.models.bookings import Booking, BookingRoom
from cabin_bookings.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def insert_booking(conn: Connection, values: dict[str, Any], room_ids: Sequence[int]) -> None:
    """
    Insert a booking row and its room links.

    Args:
        conn (Connection): Connection inside the booking transaction.
        values (dict[str, Any]): Booking column values, including ``id``.
        room_ids (Sequence[int]): Rooms reserved by a room-mode booking.
    """
    now = utc_now()
    conn.execute(insert(Booking).values(created_at=now, updated_at=now, **values))
    if room_ids:
        conn.execute(
            insert(BookingRoom),
            [{"booking_id": values["id"], "room_id": room_id} for room_id in room_ids],
        )
    logger.debug("booking_row_inserted", booking_id=values["id"], room_ids=list(room_ids))


def update_booking_status(
    conn: Connection,
    booking_id: str,
    status: str,
    hold_expires_at: Optional[datetime] = None,
) -> None:
    conn.execute(
        update(Booking)
        .where(Booking.id == booking_id)
        .values(status=status, hold_expires_at=hold_expires_at, updated_at=utc_now())
    )
