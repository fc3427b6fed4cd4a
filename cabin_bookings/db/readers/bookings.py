from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from cabin_bookings.bookings.stay_rules import MemberBooking
from cabin_bookings.bookings.types import ACTIVE_STATUSES, BookingMode, BookingStatus
from cabin_bookings.models.bookings import Booking, BookingRoom


def get_active_bookings(
    conn: Connection, property: str, checkin: date, checkout: date
) -> list[Any]:
    """
    Fetch hold/complete bookings at a property overlapping [checkin, checkout).

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        property (str): Property name.
        checkin (date): Window start.
        checkout (date): Window end (exclusive).

    Returns:
        list[Row]: Booking rows
    """
    result = conn.execute(
        select(Booking)
        .where(Booking.property == property)
        .where(Booking.status.in_(ACTIVE_STATUSES))
        .where(Booking.checkin_date < checkout, Booking.checkout_date > checkin)
        .order_by(Booking.checkin_date, Booking.id)
    )
    return list(result.all())


def get_booking_room_ids(conn: Connection, booking_ids: Iterable[str]) -> dict[str, list[int]]:
    """
    Map booking ids to the ids of the rooms they reserve.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        booking_ids (Iterable[str]): Booking ids to look up.

    Returns:
        dict[str, list[int]]: Room ids per booking (buyouts are absent)
    """
    ids = list(booking_ids)
    if not ids:
        return {}
    result = conn.execute(
        select(BookingRoom.booking_id, BookingRoom.room_id)
        .where(BookingRoom.booking_id.in_(ids))
        .order_by(BookingRoom.room_id)
    )
    rooms: dict[str, list[int]] = defaultdict(list)
    for booking_id, room_id in result:
        rooms[booking_id].append(room_id)
    return dict(rooms)


def get_member_bookings(
    conn: Connection, user_id: str, property: str, since: date
) -> tuple[MemberBooking, ...]:
    """
    Fetch a member's active bookings at a property that have not ended before ``since``.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        user_id (str): Member id.
        property (str): Property name.
        since (date): Bookings checking out on or before this day are ignored.

    Returns:
        tuple[MemberBooking, ...]: Bookings ordered by check-in
    """
    rows = conn.execute(
        select(Booking.id, Booking.checkin_date, Booking.checkout_date, Booking.booking_mode)
        .where(Booking.user_id == user_id)
        .where(Booking.property == property)
        .where(Booking.status.in_(ACTIVE_STATUSES))
        .where(Booking.checkout_date > since)
        .order_by(Booking.checkin_date, Booking.id)
    ).all()
    room_ids = get_booking_room_ids(conn, [row.id for row in rows])
    return tuple(
        MemberBooking(
            id=row.id,
            checkin=row.checkin_date,
            checkout=row.checkout_date,
            mode=BookingMode(row.booking_mode),
            room_ids=tuple(room_ids.get(row.id, ())),
        )
        for row in rows
    )


def booking_to_dict(row: Any, room_ids: Iterable[int]) -> dict[str, Any]:
    return {
        "id": row.id,
        "reference": row.reference,
        "user_id": row.user_id,
        "property": row.property,
        "checkin_date": row.checkin_date,
        "checkout_date": row.checkout_date,
        "booking_mode": row.booking_mode,
        "guests_count": row.guests_count,
        "children_count": row.children_count,
        "status": row.status,
        "hold_expires_at": row.hold_expires_at,
        "total_price": row.total_price,
        "pricing_items": row.pricing_items,
        "idempotency_key": row.idempotency_key,
        "created_at": row.created_at,
        "room_ids": list(room_ids),
    }


def get_booking(
    conn: Connection, booking_id: str, for_update: bool = False
) -> Optional[dict[str, Any]]:
    """
    Fetch a booking with its room ids.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        booking_id (str): Booking id.
        for_update (bool): Lock the booking row for the rest of the transaction.

    Returns:
        Optional[dict]: Booking fields plus ``room_ids``, or None if not found
    """
    stmt = select(Booking).where(Booking.id == booking_id)
    if for_update:
        stmt = stmt.with_for_update()
    row = conn.execute(stmt).fetchone()
    if row is None:
        return None
    return booking_to_dict(row, get_booking_room_ids(conn, [row.id]).get(row.id, ()))


def get_booking_by_idempotency_key(conn: Connection, key: str) -> Optional[dict[str, Any]]:
    row = conn.execute(select(Booking).where(Booking.idempotency_key == key)).fetchone()
    if row is None:
        return None
    return booking_to_dict(row, get_booking_room_ids(conn, [row.id]).get(row.id, ()))


def get_expired_hold_ids(conn: Connection, now: datetime) -> list[str]:
    result = conn.execute(
        select(Booking.id)
        .where(Booking.status == BookingStatus.HOLD.value)
        .where(Booking.hold_expires_at.is_not(None))
        .where(Booking.hold_expires_at < now)
        .order_by(Booking.hold_expires_at)
    )
    return [row[0] for row in result]
