"""
Per-day inventory rows: creation, locking and flag changes.

All functions take a ``Connection`` that is already inside the booking
transaction. Inventory rows are created lazily with insert-or-ignore, then
locked with ``SELECT ... FOR UPDATE`` in (room, day) order so that two
transactions touching the same days always request locks in the same order.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.engine import Connection

from cabin_bookings.db.writers._upsert import insert_ignore_conflicts
from cabin_bookings.models.inventory import PropertyInventory, RoomInventory


def ensure_property_days(conn: Connection, property: str, days: Sequence[date]) -> None:
    insert_ignore_conflicts(
        conn,
        PropertyInventory,
        [
            {"property": property, "day": day, "buyout_held": False, "buyout_booked": False}
            for day in days
        ],
        conflict_columns=["property", "day"],
    )


def ensure_room_days(
    conn: Connection, property: str, room_ids: Sequence[int], days: Sequence[date]
) -> None:
    insert_ignore_conflicts(
        conn,
        RoomInventory,
        [
            {"room_id": room_id, "day": day, "property": property, "held": False, "booked": False}
            for room_id in sorted(room_ids)
            for day in days
        ],
        conflict_columns=["room_id", "day"],
    )


def lock_property_days(conn: Connection, property: str, days: Sequence[date]) -> list[Any]:
    """
    Lock the property's inventory rows for the given days.

    Every booking attempt at a property passes through here, so requests for
    overlapping days serialize on these rows.

    Args:
        conn: Connection inside the booking transaction
        property: Property name
        days: Nights being touched

    Returns:
        list[Row]: Locked rows in day order
    """
    result = conn.execute(
        select(PropertyInventory)
        .where(PropertyInventory.property == property)
        .where(PropertyInventory.day.in_(list(days)))
        .order_by(PropertyInventory.day)
        .with_for_update()
    )
    return list(result.all())


def lock_room_days(conn: Connection, room_ids: Sequence[int], days: Sequence[date]) -> list[Any]:
    result = conn.execute(
        select(RoomInventory)
        .where(RoomInventory.room_id.in_(sorted(room_ids)))
        .where(RoomInventory.day.in_(list(days)))
        .order_by(RoomInventory.room_id, RoomInventory.day)
        .with_for_update()
    )
    return list(result.all())


def occupied_room_days(conn: Connection, property: str, days: Sequence[date]) -> list[Any]:
    """Room-nights at the property that are held or booked on any of ``days``."""
    result = conn.execute(
        select(RoomInventory.room_id, RoomInventory.day, RoomInventory.booking_id)
        .where(RoomInventory.property == property)
        .where(RoomInventory.day.in_(list(days)))
        .where(or_(RoomInventory.held.is_(True), RoomInventory.booked.is_(True)))
        .order_by(RoomInventory.room_id, RoomInventory.day)
    )
    return list(result.all())


def reserve_property_days(
    conn: Connection,
    property: str,
    days: Sequence[date],
    booking_id: str,
    confirmed: bool,
) -> int:
    """
    Flag the property as bought out on ``days``.

    Only rows that are still free are updated; the caller compares the returned
    count with ``len(days)`` to detect inventory that changed underneath it.
    """
    flag = "buyout_booked" if confirmed else "buyout_held"
    result = conn.execute(
        update(PropertyInventory)
        .where(PropertyInventory.property == property)
        .where(PropertyInventory.day.in_(list(days)))
        .where(PropertyInventory.buyout_held.is_(False))
        .where(PropertyInventory.buyout_booked.is_(False))
        .values({flag: True, "buyout_booking_id": booking_id})
    )
    return result.rowcount


def reserve_room_days(
    conn: Connection,
    room_ids: Sequence[int],
    days: Sequence[date],
    booking_id: str,
    confirmed: bool,
) -> int:
    flag = "booked" if confirmed else "held"
    result = conn.execute(
        update(RoomInventory)
        .where(RoomInventory.room_id.in_(list(room_ids)))
        .where(RoomInventory.day.in_(list(days)))
        .where(RoomInventory.held.is_(False))
        .where(RoomInventory.booked.is_(False))
        .values({flag: True, "booking_id": booking_id})
    )
    return result.rowcount


def confirm_booking_days(conn: Connection, booking_id: str) -> None:
    """Turn every hold owned by the booking into a firm booking."""
    conn.execute(
        update(RoomInventory)
        .where(RoomInventory.booking_id == booking_id)
        .values(held=False, booked=True)
    )
    conn.execute(
        update(PropertyInventory)
        .where(PropertyInventory.buyout_booking_id == booking_id)
        .values(buyout_held=False, buyout_booked=True)
    )


def release_booking_days(conn: Connection, booking_id: str) -> int:
    """
    Clear exactly the inventory rows owned by the booking.

    Returns:
        int: Number of room-nights and property-nights released
    """
    rooms = conn.execute(
        update(RoomInventory)
        .where(RoomInventory.booking_id == booking_id)
        .where(or_(RoomInventory.held.is_(True), RoomInventory.booked.is_(True)))
        .values(held=False, booked=False, booking_id=None)
    )
    buyout = conn.execute(
        update(PropertyInventory)
        .where(PropertyInventory.buyout_booking_id == booking_id)
        .values(buyout_held=False, buyout_booked=False, buyout_booking_id=None)
    )
    return rooms.rowcount + buyout.rowcount
