"""
Writers for property configuration (rooms, seasons, pricing rules, blackouts).

Configuration is cached per property by the read paths, so every write here
invalidates that property's cache entry after the transaction commits.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy import insert
from sqlalchemy.engine import Engine

from cabin_bookings.bookings.types import BookingMode, RateBasis
from cabin_bookings.models.catalog import Blackout, PricingRule, Room, RoomCategory, Season
from cabin_bookings.services.catalog_cache import catalog_cache

logger = structlog.get_logger(__name__)


def create_room_category(engine: Engine, name: str, description: Optional[str] = None) -> int:
    with engine.begin() as conn:
        result = conn.execute(insert(RoomCategory).values(name=name, description=description))
        category_id = result.inserted_primary_key[0]

    # Categories are shared, so every property's snapshot is stale
    catalog_cache.clear()
    logger.info("room_category_created", category_id=category_id, name=name)
    return category_id


def create_room(
    engine: Engine,
    property: str,
    name: str,
    capacity_max: int,
    min_billable_occupancy: int = 1,
    room_category_id: Optional[int] = None,
    single_beds: int = 0,
    queen_beds: int = 0,
    king_beds: int = 0,
    is_active: bool = True,
    description: Optional[str] = None,
) -> int:
    """
    Create a room at a property.

    Args:
        engine (Engine): SQLAlchemy engine to open a transaction.
        property (str): Property the room belongs to.
        name (str): Display name.
        capacity_max (int): Maximum guests plus children.
        min_billable_occupancy (int): Adults billed even if fewer stay.
        room_category_id (Optional[int]): Category for category-level pricing.

    Returns:
        int: New room id
    """
    with engine.begin() as conn:
        result = conn.execute(
            insert(Room).values(
                property=property,
                name=name,
                description=description,
                room_category_id=room_category_id,
                capacity_max=capacity_max,
                min_billable_occupancy=min_billable_occupancy,
                single_beds=single_beds,
                queen_beds=queen_beds,
                king_beds=king_beds,
                is_active=is_active,
            )
        )
        room_id = result.inserted_primary_key[0]

    catalog_cache.invalidate(property)
    logger.info("room_created", property=property, room_id=room_id, name=name)
    return room_id


def create_season(
    engine: Engine,
    property: str,
    name: str,
    start: tuple[int, int],
    end: tuple[int, int],
    advance_booking_days: Optional[int] = None,
    max_nights: Optional[int] = None,
    is_default: bool = False,
    description: Optional[str] = None,
) -> int:
    """
    Create a recurring season.

    Args:
        engine (Engine): SQLAlchemy engine to open a transaction.
        property (str): Property the season belongs to.
        name (str): Display name, e.g. "Winter".
        start (tuple[int, int]): (month, day) of the first night.
        end (tuple[int, int]): (month, day) of the last night; before ``start`` to wrap the year.
        advance_booking_days (Optional[int]): Booking horizon in days, None/0 for unbounded.
        max_nights (Optional[int]): Stay length override.

    Returns:
        int: New season id
    """
    with engine.begin() as conn:
        result = conn.execute(
            insert(Season).values(
                property=property,
                name=name,
                description=description,
                start_month=start[0],
                start_day=start[1],
                end_month=end[0],
                end_day=end[1],
                advance_booking_days=advance_booking_days,
                max_nights=max_nights,
                is_default=is_default,
            )
        )
        season_id = result.inserted_primary_key[0]

    catalog_cache.invalidate(property)
    logger.info("season_created", property=property, season_id=season_id, name=name)
    return season_id


def create_pricing_rule(
    engine: Engine,
    property: str,
    booking_mode: BookingMode,
    rate_basis: RateBasis,
    amount: Decimal,
    children_amount: Optional[Decimal] = None,
    season_id: Optional[int] = None,
    room_id: Optional[int] = None,
    room_category_id: Optional[int] = None,
) -> int:
    if room_id is not None and room_category_id is not None:
        raise ValueError("A pricing rule targets a room or a category, not both")

    with engine.begin() as conn:
        result = conn.execute(
            insert(PricingRule).values(
                property=property,
                season_id=season_id,
                room_id=room_id,
                room_category_id=room_category_id,
                booking_mode=BookingMode(booking_mode).value,
                rate_basis=RateBasis(rate_basis).value,
                amount=amount,
                children_amount=children_amount,
            )
        )
        rule_id = result.inserted_primary_key[0]

    catalog_cache.invalidate(property)
    logger.info(
        "pricing_rule_created",
        property=property,
        rule_id=rule_id,
        season_id=season_id,
        room_id=room_id,
        room_category_id=room_category_id,
    )
    return rule_id


def create_blackout(
    engine: Engine,
    property: str,
    start_date: date,
    end_date: date,
    reason: Optional[str] = None,
) -> int:
    if end_date < start_date:
        raise ValueError("Blackout end_date must not be before start_date")

    with engine.begin() as conn:
        result = conn.execute(
            insert(Blackout).values(
                property=property, start_date=start_date, end_date=end_date, reason=reason
            )
        )
        blackout_id = result.inserted_primary_key[0]

    catalog_cache.invalidate(property)
    logger.info(
        "blackout_created",
        property=property,
        blackout_id=blackout_id,
        start_date=start_date.isoformat(),
        end_date=end_date.isoformat(),
    )
    return blackout_id
