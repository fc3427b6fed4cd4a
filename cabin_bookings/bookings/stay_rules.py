"""
Stay-shape rules.

Each rule is an independent ``StayRule(name, check)`` evaluated against an
immutable ``StayRequest`` and a ``StayContext`` of already-loaded data. A
check returns a message when violated and None otherwise. ``validate`` runs
every rule and returns all violations at once so the caller can show them
together.

Rules never touch the database. The locker runs the same table again inside
its transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Optional, Sequence

from cabin_bookings.bookings.availability import AvailabilityIndex, intervals_overlap
from cabin_bookings.bookings.pricing import PricingResolver
from cabin_bookings.bookings.season_calendar import SeasonCalendar
from cabin_bookings.bookings.types import BookingMode, RateBasis, StayRequest
from cabin_bookings.utils.datetime import iter_nights

SATURDAY = 5


@dataclass(frozen=True)
class MemberBooking:
    """A member's existing active booking at the property."""

    id: str
    checkin: date
    checkout: date
    mode: BookingMode
    room_ids: tuple[int, ...] = ()

    @property
    def nights(self) -> int:
        return (self.checkout - self.checkin).days


@dataclass(frozen=True)
class StayContext:
    today: date
    calendar: SeasonCalendar
    resolver: PricingResolver
    availability: AvailabilityIndex
    rooms: dict[int, Any]
    member_bookings: tuple[MemberBooking, ...] = field(default_factory=tuple)
    buyout_max_occupancy: int = 17


@dataclass(frozen=True)
class StayRule:
    name: str
    check: Callable[[StayRequest, StayContext], Optional[str]]


def _fmt(d: date) -> str:
    return d.strftime("%B %d, %Y")


def request_parameter_error(req: StayRequest) -> Optional[str]:
    """
    Reject requests that are malformed rather than against the rules.

    Returns:
        Optional[str]: Message for the first problem found, or None
    """
    if req.checkin is None or req.checkout is None:
        return "Check-in and check-out dates are required"
    if req.checkout <= req.checkin:
        return "Check-out date must be after check-in date"
    if req.guests < 1:
        return "At least one adult guest is required"
    if req.children < 0:
        return "Children count cannot be negative"
    if req.mode == BookingMode.ROOM:
        if not req.room_ids:
            return "Select at least one room"
        if len(set(req.room_ids)) != len(req.room_ids):
            return "A room can only be selected once"
    elif req.room_ids:
        return "A full buyout does not take room selections"
    return None


def check_invalid_dates(req: StayRequest, ctx: StayContext) -> Optional[str]:
    if req.checkout <= req.checkin:
        return "Check-out date must be after check-in date"
    if req.checkin < ctx.today:
        return "Check-in date cannot be in the past"
    return None


def check_max_nights(req: StayRequest, ctx: StayContext) -> Optional[str]:
    if req.nights <= 0:
        return None
    season = ctx.calendar.season_for(req.checkin)
    limit = ctx.calendar.effective_max_nights(season)
    if req.nights > limit:
        label = f"during {season.name}" if season is not None else "at this property"
        return f"Maximum {limit} nights allowed {label}"
    return None


def check_weekend_rule(req: StayRequest, ctx: StayContext) -> Optional[str]:
    for night in iter_nights(req.checkin, req.checkout):
        if night.weekday() == SATURDAY and night + timedelta(days=1) >= req.checkout:
            return "Stays that include Saturday night must also include Sunday night"
    return None


def check_advance_booking_limit(req: StayRequest, ctx: StayContext) -> Optional[str]:
    if req.nights <= 0:
        return None

    max_date = ctx.calendar.max_booking_date(ctx.today)
    if req.checkin > max_date:
        return f"Maximum check-in date is {_fmt(max_date)}"

    checkin_season = ctx.calendar.season_for(req.checkin)
    checkout_season = ctx.calendar.season_for(req.checkout)
    seasons = [checkin_season]
    if checkout_season is not None and (
        checkin_season is None or checkout_season.id != checkin_season.id
    ):
        seasons.append(checkout_season)

    for season in seasons:
        limit = ctx.calendar.advance_limit(season)
        if limit is None:
            continue
        season_max = ctx.today + timedelta(days=limit)
        if req.checkin > season_max:
            return (
                f"{season.name} bookings can only be made {limit} days in advance. "
                f"Maximum check-in date is {_fmt(season_max)}"
            )
        if req.checkout > season_max:
            return (
                f"{season.name} bookings can only be made {limit} days in advance. "
                f"Maximum check-out date is {_fmt(season_max)}"
            )
    return None


def check_season_booking_mode(req: StayRequest, ctx: StayContext) -> Optional[str]:
    if req.mode != BookingMode.BUYOUT or req.nights <= 0:
        return None
    season = ctx.calendar.season_for(req.checkin)
    rule = ctx.resolver.resolve(
        req.property,
        season.id if season is not None else None,
        None,
        None,
        BookingMode.BUYOUT,
        RateBasis.BUYOUT_FIXED,
    )
    if rule is None:
        label = season.name if season is not None else "these dates"
        return f"Full buyouts are not offered during {label}"
    return None


def second_booking_window(
    first: MemberBooking, max_nights: int, today: date, max_booking_date: date
) -> tuple[date, date]:
    """
    Dates a family member's second room booking must fall within.

    The window keeps both bookings inside one ``max_nights`` span anchored at
    the first booking's check-in: ``[c1 - (max_nights - n1), c1 + max_nights]``,
    clamped to ``[today, max_booking_date]``.
    """
    earliest = first.checkin - timedelta(days=max_nights - first.nights)
    latest = first.checkin + timedelta(days=max_nights)
    return max(earliest, today), min(latest, max_booking_date)


def check_active_booking(req: StayRequest, ctx: StayContext) -> Optional[str]:
    if req.member is None or req.nights <= 0:
        return None

    tier = req.member.tier
    overlapping = [
        b
        for b in ctx.member_bookings
        if intervals_overlap(req.checkin, req.checkout, b.checkin, b.checkout)
    ]
    requested_rooms = len(req.room_ids) if req.mode == BookingMode.ROOM else 0

    if not tier.allows_multiple_rooms:
        if overlapping:
            return (
                "You can only have one active booking at a time. "
                "Please complete your existing booking first."
            )
        if requested_rooms > tier.max_rooms:
            return f"Your membership allows {tier.max_rooms} room per booking"
        return None

    if any(b.mode == BookingMode.BUYOUT for b in overlapping):
        return "You already have a full buyout for these dates"
    if overlapping and req.mode == BookingMode.BUYOUT:
        return "A full buyout cannot overlap your existing bookings"

    existing_rooms = sum(len(b.room_ids) for b in overlapping)
    if existing_rooms + requested_rooms > tier.max_rooms:
        return f"Your membership allows a maximum of {tier.max_rooms} rooms in the same time period"

    if existing_rooms:
        first = min(overlapping, key=lambda b: (b.checkin, b.id))
        max_nights = ctx.calendar.effective_max_nights(ctx.calendar.season_for(first.checkin))
        earliest, latest = second_booking_window(
            first, max_nights, ctx.today, ctx.calendar.max_booking_date(ctx.today)
        )
        if req.checkin < earliest or req.checkout > latest:
            return (
                f"Your additional room must be booked between {_fmt(earliest)} "
                f"and {_fmt(latest)}"
            )
    return None


def check_availability(req: StayRequest, ctx: StayContext) -> Optional[str]:
    if req.nights <= 0:
        return None
    if ctx.availability.blackout_conflict(req.checkin, req.checkout) is not None:
        return "The property is closed for some of the selected dates"
    if req.mode == BookingMode.BUYOUT and not ctx.availability.property_available_for_buyout(
        req.checkin, req.checkout
    ):
        return "The property already has bookings for the selected dates"
    return None


def check_capacity(req: StayRequest, ctx: StayContext) -> Optional[str]:
    if req.mode == BookingMode.BUYOUT:
        capacity = ctx.buyout_max_occupancy
    else:
        rooms = [ctx.rooms.get(room_id) for room_id in req.room_ids]
        if not rooms or any(r is None for r in rooms):
            return None
        capacity = sum(r.capacity_max for r in rooms)

    if req.occupancy > capacity:
        return f"Selected accommodation sleeps at most {capacity} guests"
    return None


STAY_RULES: tuple[StayRule, ...] = (
    StayRule("invalid_dates", check_invalid_dates),
    StayRule("max_nights", check_max_nights),
    StayRule("weekend_rule", check_weekend_rule),
    StayRule("advance_booking_limit", check_advance_booking_limit),
    StayRule("season_booking_mode", check_season_booking_mode),
    StayRule("active_booking", check_active_booking),
    StayRule("availability", check_availability),
    StayRule("capacity", check_capacity),
)


def validate(
    request: StayRequest,
    context: StayContext,
    rules: Sequence[StayRule] = STAY_RULES,
) -> dict[str, str]:
    """
    Evaluate every rule and collect the violations.

    Args:
        request: Proposed stay
        context: Loaded calendar, pricing, availability and member data
        rules: Rule table to apply

    Returns:
        dict[str, str]: Violation messages keyed by rule name (empty when valid)
    """
    violations: dict[str, str] = {}
    for rule in rules:
        message = rule.check(request, context)
        if message is not None:
            violations[rule.name] = message
    return violations
