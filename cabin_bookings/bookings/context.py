"""
Assembly of the booking engine components from loaded configuration.

Both the read paths (availability, quotes, validation) and the locker build
the same calendar / resolver / availability objects; this module is the one
place that knows how.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.engine import Connection

from cabin_bookings.bookings.availability import AvailabilityIndex
from cabin_bookings.bookings.pricing import PricingDefaults, PricingResolver
from cabin_bookings.bookings.season_calendar import SeasonCalendar
from cabin_bookings.bookings.stay_rules import StayContext
from cabin_bookings.bookings.types import BookingMode, StayRequest
from cabin_bookings.db.readers.bookings import (
    get_active_bookings,
    get_booking_room_ids,
    get_member_bookings,
)
from cabin_bookings.db.readers.catalog import Catalog


@dataclass(frozen=True)
class EngineSettings:
    """Tunables shared by every component, normally taken from config."""

    pricing_defaults: PricingDefaults = field(default_factory=PricingDefaults)
    default_max_nights: int = 4
    default_horizon_days: int = 365
    buyout_max_occupancy: int = 17
    currency: str = "USD"

    @classmethod
    def from_config(cls) -> "EngineSettings":
        from cabin_bookings import config

        return cls(
            pricing_defaults=PricingDefaults.from_config(),
            default_max_nights=config.DEFAULT_MAX_NIGHTS,
            default_horizon_days=config.DEFAULT_BOOKING_HORIZON_DAYS,
            buyout_max_occupancy=config.BUYOUT_MAX_OCCUPANCY,
            currency=config.CURRENCY,
        )


def build_calendar(catalog: Catalog, settings: EngineSettings) -> SeasonCalendar:
    return SeasonCalendar(
        catalog.property,
        catalog.seasons,
        default_max_nights=settings.default_max_nights,
        default_horizon_days=settings.default_horizon_days,
    )


def build_resolver(catalog: Catalog, settings: EngineSettings) -> PricingResolver:
    return PricingResolver(
        catalog.pricing_rules, defaults=settings.pricing_defaults, currency=settings.currency
    )


def load_availability(
    conn: Connection, catalog: Catalog, checkin: date, checkout: date
) -> AvailabilityIndex:
    """
    Build an availability index for [checkin, checkout) from current bookings.

    Args:
        conn: Open connection (no locks are taken)
        catalog: Property configuration
        checkin: Window start
        checkout: Window end (exclusive)

    Returns:
        AvailabilityIndex: Index over the overlapping active bookings
    """
    bookings = get_active_bookings(conn, catalog.property, checkin, checkout)
    links = get_booking_room_ids(conn, [b.id for b in bookings])
    return AvailabilityIndex(catalog.property, catalog.rooms, bookings, links, catalog.blackouts)


def load_stay_context(
    conn: Connection,
    catalog: Catalog,
    request: StayRequest,
    today: date,
    settings: EngineSettings,
    availability: Optional[AvailabilityIndex] = None,
) -> StayContext:
    if availability is None:
        end = max(request.checkout, request.checkin)
        availability = load_availability(conn, catalog, request.checkin, end)

    member_bookings = (
        get_member_bookings(conn, request.member.id, catalog.property, since=today)
        if request.member is not None
        else ()
    )

    return StayContext(
        today=today,
        calendar=build_calendar(catalog, settings),
        resolver=build_resolver(catalog, settings),
        availability=availability,
        rooms=catalog.rooms_by_id,
        member_bookings=member_bookings,
        buyout_max_occupancy=settings.buyout_max_occupancy,
    )


def selected_rooms(catalog: Catalog, request: StayRequest) -> list:
    """Room rows for the request (empty for buyout); unknown ids are skipped."""
    if request.mode != BookingMode.ROOM:
        return []
    rooms = catalog.rooms_by_id
    return [rooms[room_id] for room_id in request.room_ids if room_id in rooms]
