"""
Readers for admin-managed property configuration.

Rows are returned as SQLAlchemy ``Row`` objects, which expose columns as
attributes, so the booking engine can consume them directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from cabin_bookings.models.catalog import Blackout, PricingRule, Room, RoomCategory, Season


@dataclass(frozen=True)
class Catalog:
    """Snapshot of one property's configuration."""

    property: str
    rooms: tuple[Any, ...]
    categories: tuple[Any, ...]
    seasons: tuple[Any, ...]
    pricing_rules: tuple[Any, ...]
    blackouts: tuple[Any, ...]

    @property
    def rooms_by_id(self) -> dict[int, Any]:
        return {room.id: room for room in self.rooms}


def get_rooms(conn: Connection, property: str) -> list[Any]:
    result = conn.execute(select(Room).where(Room.property == property).order_by(Room.id))
    return list(result.all())


def get_room_categories(conn: Connection) -> list[Any]:
    return list(conn.execute(select(RoomCategory).order_by(RoomCategory.id)).all())


def get_seasons(conn: Connection, property: str) -> list[Any]:
    """
    Fetch a property's seasons in id order.

    Season lookup is first-match, so the order here decides which season wins
    if an admin configures overlapping ranges.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        property (str): Property name.

    Returns:
        list[Row]: Season rows
    """
    result = conn.execute(select(Season).where(Season.property == property).order_by(Season.id))
    return list(result.all())


def get_pricing_rules(conn: Connection, property: str) -> list[Any]:
    result = conn.execute(
        select(PricingRule).where(PricingRule.property == property).order_by(PricingRule.id)
    )
    return list(result.all())


def get_blackouts(
    conn: Connection,
    property: str,
    checkin: Optional[date] = None,
    checkout: Optional[date] = None,
) -> list[Any]:
    """
    Fetch blackouts for a property, optionally only those touching [checkin, checkout).

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        property (str): Property name.
        checkin (Optional[date]): Window start (inclusive).
        checkout (Optional[date]): Window end (exclusive).

    Returns:
        list[Row]: Blackout rows
    """
    stmt = select(Blackout).where(Blackout.property == property)
    if checkin is not None and checkout is not None:
        # Blackout end_date is inclusive
        stmt = stmt.where(Blackout.start_date < checkout, Blackout.end_date >= checkin)
    return list(conn.execute(stmt.order_by(Blackout.start_date)).all())


def load_catalog(conn: Connection, property: str) -> Catalog:
    return Catalog(
        property=property,
        rooms=tuple(get_rooms(conn, property)),
        categories=tuple(get_room_categories(conn)),
        seasons=tuple(get_seasons(conn, property)),
        pricing_rules=tuple(get_pricing_rules(conn, property)),
        blackouts=tuple(get_blackouts(conn, property)),
    )
