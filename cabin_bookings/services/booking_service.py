"""
Booking service: the call contracts used by the HTTP layer and scripts.

Read paths (availability, quotes, validation) use the cached property
catalog and never take locks. Writes go through ``BookingLocker``.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Sequence

import structlog
from sqlalchemy.engine import Engine

from cabin_bookings.bookings.availability import DayAvailability
from cabin_bookings.bookings.context import (
    EngineSettings,
    build_calendar,
    build_resolver,
    load_availability,
    load_stay_context,
    selected_rooms,
)
from cabin_bookings.bookings.errors import (
    BookingOutcome,
    BookingRejected,
    FailureReason,
    PricingUnavailable,
)
from cabin_bookings.bookings.locker import BookingLocker, reject_unknown_rooms
from cabin_bookings.bookings.stay_rules import request_parameter_error, validate
from cabin_bookings.bookings.types import BookingMode, Member, Property, StayRequest
from cabin_bookings.metrics import quotes_total
from cabin_bookings.services.catalog_cache import get_catalog
from cabin_bookings.utils.datetime import iter_nights, utc_today

logger = structlog.get_logger(__name__)


def _require_dates(checkin: date, checkout: date) -> None:
    if checkout <= checkin:
        raise BookingRejected(
            FailureReason.INVALID_PARAMETERS, "Check-out date must be after check-in date"
        )


def get_available_rooms(
    engine: Engine, property: Property, checkin: date, checkout: date
) -> list[int]:
    """
    List the ids of rooms free for every night of [checkin, checkout).

    Args:
        engine: SQLAlchemy engine
        property: Property to search
        checkin: First night
        checkout: Departure day

    Returns:
        list[int]: Available room ids in ascending order

    Raises:
        BookingRejected: invalid_parameters when the date range is empty
    """
    _require_dates(checkin, checkout)
    property = Property(property).value
    catalog = get_catalog(engine, property)

    with engine.connect() as conn:
        index = load_availability(conn, catalog, checkin, checkout)

    return [room.id for room in index.available_rooms(checkin, checkout)]


def get_daily_availability(
    engine: Engine, property: Property, start: date, end: date
) -> dict[date, DayAvailability]:
    """Per-night availability calendar for [start, end)."""
    _require_dates(start, end)
    property = Property(property).value
    catalog = get_catalog(engine, property)

    with engine.connect() as conn:
        index = load_availability(conn, catalog, start, end)

    return index.daily_availability(start, end)


def get_selectable_days(
    engine: Engine,
    property: Property,
    start: date,
    end: date,
    today: Optional[date] = None,
    settings: Optional[EngineSettings] = None,
) -> dict[date, bool]:
    """
    Whether each night of [start, end) may currently be picked in a date chooser.

    A night in a season with an advance booking limit is selectable only
    within that many days of today.
    """
    _require_dates(start, end)
    settings = settings or EngineSettings.from_config()
    today = today or utc_today()
    calendar = build_calendar(get_catalog(engine, Property(property).value), settings)
    return {night: calendar.date_selectable(night, today) for night in iter_nights(start, end)}


def compute_quote(
    engine: Engine,
    property: Property,
    checkin: date,
    checkout: date,
    mode: BookingMode,
    guests: int,
    children: int = 0,
    room_ids: Optional[Sequence[int]] = None,
    settings: Optional[EngineSettings] = None,
) -> dict[str, Any]:
    """
    Price a prospective stay.

    Args:
        engine: SQLAlchemy engine
        property: Property of the stay
        checkin: First night
        checkout: Departure day
        mode: room or buyout
        guests: Adult guests
        children: Children
        room_ids: Selected rooms (room mode)
        settings: Pricing defaults and limits (defaults to config)

    Returns:
        dict: ``{"total", "breakdown", ...}`` on success, ``{"error", "reason"}`` otherwise
    """
    settings = settings or EngineSettings.from_config()
    property = Property(property).value
    mode = BookingMode(mode)
    request = StayRequest(
        property=Property(property),
        checkin=checkin,
        checkout=checkout,
        mode=mode,
        guests=guests,
        children=children,
        room_ids=tuple(room_ids or ()),
    )

    def failed(reason: FailureReason, message: str) -> dict[str, Any]:
        quotes_total.labels(property=property, mode=mode.value, status=reason.value).inc()
        logger.info("quote_failed", property=property, mode=mode.value, reason=reason.value)
        return {"error": message, "reason": reason.value}

    error = request_parameter_error(request)
    if error is not None:
        return failed(FailureReason.INVALID_PARAMETERS, error)

    catalog = get_catalog(engine, property)
    try:
        reject_unknown_rooms(catalog, request.room_ids)
    except BookingRejected as exc:
        return failed(exc.reason, exc.message)
    rooms = selected_rooms(catalog, request)

    try:
        quote = build_resolver(catalog, settings).compute_price(
            property,
            mode,
            checkin,
            checkout,
            guests,
            children,
            rooms,
            build_calendar(catalog, settings),
        )
    except PricingUnavailable as exc:
        return failed(FailureReason.PRICING_UNAVAILABLE, str(exc))

    quotes_total.labels(property=property, mode=mode.value, status="success").inc()
    return quote.as_dict()


def validate_stay(
    engine: Engine,
    property: Property,
    checkin: date,
    checkout: date,
    mode: BookingMode,
    member: Optional[Member],
    room_ids: Optional[Sequence[int]] = None,
    guests: int = 1,
    children: int = 0,
    today: Optional[date] = None,
    settings: Optional[EngineSettings] = None,
) -> dict[str, str]:
    """
    Advisory check of a proposed stay against every stay rule.

    Returns:
        dict[str, str]: Violation messages by rule name; empty when the stay passes.
        Malformed requests return a single ``invalid_parameters`` entry.
    """
    settings = settings or EngineSettings.from_config()
    request = StayRequest(
        property=Property(property),
        checkin=checkin,
        checkout=checkout,
        mode=BookingMode(mode),
        guests=guests,
        children=children,
        room_ids=tuple(room_ids or ()),
        member=member,
    )

    error = request_parameter_error(request)
    if error is not None:
        return {FailureReason.INVALID_PARAMETERS.value: error}

    catalog = get_catalog(engine, request.property.value)
    with engine.connect() as conn:
        context = load_stay_context(conn, catalog, request, today or utc_today(), settings)

    violations = validate(request, context)
    if violations:
        logger.debug(
            "stay_validation_failed",
            property=request.property.value,
            violations=sorted(violations),
        )
    return violations


def create_booking(
    engine: Engine,
    member: Member,
    property: Property,
    checkin: date,
    checkout: date,
    mode: BookingMode,
    guests: int,
    children: int = 0,
    room_ids: Optional[Sequence[int]] = None,
    payment_confirmed: bool = False,
    idempotency_key: Optional[str] = None,
    locker: Optional[BookingLocker] = None,
) -> BookingOutcome:
    """
    Commit a booking through the locker.

    Args:
        engine: SQLAlchemy engine
        member: Requesting member and tier
        property: Property of the stay
        checkin: First night
        checkout: Departure day
        mode: room or buyout
        guests: Adult guests
        children: Children
        room_ids: Rooms to reserve (room mode)
        payment_confirmed: Create as ``complete`` rather than ``hold``
        idempotency_key: Replay key for client retries
        locker: Pre-configured locker (defaults to one using config)

    Returns:
        BookingOutcome: Booking on success, failure reason otherwise
    """
    locker = locker or BookingLocker(engine)
    request = StayRequest(
        property=Property(property),
        checkin=checkin,
        checkout=checkout,
        mode=BookingMode(mode),
        guests=guests,
        children=children,
        room_ids=tuple(room_ids or ()),
        member=member,
    )
    return locker.create_booking(
        request, payment_confirmed=payment_confirmed, idempotency_key=idempotency_key
    )


def confirm_booking(
    engine: Engine, booking_id: str, locker: Optional[BookingLocker] = None
) -> BookingOutcome:
    """Payment collaborator entry point: hold -> complete."""
    return (locker or BookingLocker(engine)).confirm_booking(booking_id)


def cancel_booking(
    engine: Engine, booking_id: str, locker: Optional[BookingLocker] = None
) -> BookingOutcome:
    """Cancellation entry point: releases the booking's rooms / buyout nights."""
    return (locker or BookingLocker(engine)).release_booking(booking_id)


def expire_holds(
    engine: Engine, now: Optional[datetime] = None, locker: Optional[BookingLocker] = None
) -> list[str]:
    """Release unpaid holds past their expiry; returns the released booking ids."""
    return (locker or BookingLocker(engine)).expire_holds(now)
