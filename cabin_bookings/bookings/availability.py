"""
Read-only availability view over already-fetched bookings and blackouts.

The index never takes locks and may be stale by the time a booking is
submitted; ``BookingLocker`` re-checks everything authoritatively.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Optional, Sequence

from cabin_bookings.bookings.types import ACTIVE_STATUSES, BookingMode
from cabin_bookings.utils.datetime import iter_nights


def intervals_overlap(a1: date, a2: date, b1: date, b2: date) -> bool:
    """
    Half-open interval overlap: [a1, a2) and [b1, b2) share at least one night.

    Example:
        >>> intervals_overlap(date(2025, 1, 1), date(2025, 1, 3), date(2025, 1, 3), date(2025, 1, 5))
        False
    """
    return a1 < b2 and a2 > b1


def blackout_overlaps(blackout: Any, checkin: date, checkout: date) -> bool:
    # Blackout end_date is itself a blacked-out night
    return intervals_overlap(
        checkin, checkout, blackout.start_date, blackout.end_date + timedelta(days=1)
    )


@dataclass(frozen=True)
class DayAvailability:
    day: date
    booked_room_ids: frozenset[int]
    buyout: bool
    blackout: bool

    @property
    def available_for_buyout(self) -> bool:
        return not (self.buyout or self.blackout or self.booked_room_ids)


class AvailabilityIndex:
    """
    Availability of one property's rooms over a window.

    Args:
        property: Property the index covers
        rooms: Room rows of the property
        bookings: Bookings overlapping the window; inactive ones are ignored
        booking_room_ids: Room ids per booking id (room-mode bookings)
        blackouts: Blackout rows of the property

    Example:
        >>> index = AvailabilityIndex("tahoe", rooms, bookings, links, blackouts)
        >>> [r.id for r in index.available_rooms(date(2025, 3, 7), date(2025, 3, 9))]
        [1, 3]
    """

    def __init__(
        self,
        property: str,
        rooms: Sequence[Any],
        bookings: Iterable[Any],
        booking_room_ids: dict[Any, Iterable[int]],
        blackouts: Iterable[Any],
    ):
        self.property = property
        self.rooms = sorted(rooms, key=lambda r: r.id)
        self.bookings = [b for b in bookings if b.status in ACTIVE_STATUSES]
        self.booking_room_ids = {k: frozenset(v) for k, v in booking_room_ids.items()}
        self.blackouts = list(blackouts)

    def overlapping_bookings(self, checkin: date, checkout: date) -> list[Any]:
        return [
            b
            for b in self.bookings
            if intervals_overlap(checkin, checkout, b.checkin_date, b.checkout_date)
        ]

    def blackout_conflict(self, checkin: date, checkout: date) -> Optional[Any]:
        return next((b for b in self.blackouts if blackout_overlaps(b, checkin, checkout)), None)

    def buyout_conflict(self, checkin: date, checkout: date) -> bool:
        return any(
            b.booking_mode == BookingMode.BUYOUT
            for b in self.overlapping_bookings(checkin, checkout)
        )

    def booked_room_ids(self, checkin: date, checkout: date) -> set[int]:
        booked: set[int] = set()
        for booking in self.overlapping_bookings(checkin, checkout):
            booked |= self.booking_room_ids.get(booking.id, frozenset())
        return booked

    def available_rooms(self, checkin: date, checkout: date) -> list[Any]:
        """Active rooms free for every night of [checkin, checkout)."""
        if self.blackout_conflict(checkin, checkout) or self.buyout_conflict(checkin, checkout):
            return []
        booked = self.booked_room_ids(checkin, checkout)
        return [r for r in self.rooms if r.is_active and r.id not in booked]

    def room_available(self, room_id: int, checkin: date, checkout: date) -> bool:
        return any(r.id == room_id for r in self.available_rooms(checkin, checkout))

    def property_available_for_buyout(self, checkin: date, checkout: date) -> bool:
        """True when no active booking of any kind and no blackout overlaps."""
        if self.blackout_conflict(checkin, checkout):
            return False
        return not self.overlapping_bookings(checkin, checkout)

    def daily_availability(self, start: date, end: date) -> dict[date, DayAvailability]:
        """
        Per-night calendar view for [start, end).

        Returns:
            dict[date, DayAvailability]: Booked room ids, buyout flag and blackout flag per night
        """
        rooms_by_day: dict[date, set[int]] = defaultdict(set)
        buyout_days: set[date] = set()

        for booking in self.overlapping_bookings(start, end):
            for night in iter_nights(max(start, booking.checkin_date), min(end, booking.checkout_date)):
                if booking.booking_mode == BookingMode.BUYOUT:
                    buyout_days.add(night)
                else:
                    rooms_by_day[night] |= self.booking_room_ids.get(booking.id, frozenset())

        return {
            night: DayAvailability(
                day=night,
                booked_room_ids=frozenset(rooms_by_day.get(night, ())),
                buyout=night in buyout_days,
                blackout=self.blackout_conflict(night, night + timedelta(days=1)) is not None,
            )
            for night in iter_nights(start, end)
        }
