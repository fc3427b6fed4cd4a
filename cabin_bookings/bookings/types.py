"""Enumerations and value types shared by the booking engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class Property(str, Enum):
    """Bookable physical properties."""

    TAHOE = "tahoe"
    CLEAR_LAKE = "clear_lake"


class BookingMode(str, Enum):
    ROOM = "room"
    BUYOUT = "buyout"


class RateBasis(str, Enum):
    PER_PERSON_PER_NIGHT = "per_person_per_night"
    BUYOUT_FIXED = "buyout_fixed"


class BookingStatus(str, Enum):
    """
    Booking lifecycle.

    HOLD -> COMPLETE (payment confirmed)
    HOLD -> CANCELLED (payment failed, abandoned or expired)
    COMPLETE -> CANCELLED (member cancellation)
    """

    HOLD = "hold"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


# Statuses that occupy inventory and count towards quotas
ACTIVE_STATUSES: tuple[str, ...] = (BookingStatus.HOLD.value, BookingStatus.COMPLETE.value)


class MembershipTier(str, Enum):
    NONE = "none"
    SINGLE = "single"
    FAMILY = "family"
    LIFETIME = "lifetime"

    @property
    def max_rooms(self) -> int:
        """Combined concurrent rooms allowed for this tier."""
        return 2 if self in (MembershipTier.FAMILY, MembershipTier.LIFETIME) else 1

    @property
    def allows_multiple_rooms(self) -> bool:
        return self.max_rooms > 1


@dataclass(frozen=True)
class Member:
    """Requesting member as reported by the auth/subscription collaborator."""

    id: str
    tier: MembershipTier = MembershipTier.NONE


@dataclass(frozen=True)
class StayRequest:
    """
    Immutable description of a proposed stay.

    Dates are a half-open interval: ``checkout`` is the departure day and is
    not itself an occupied night.
    """

    property: Property
    checkin: date
    checkout: date
    mode: BookingMode
    guests: int = 1
    children: int = 0
    room_ids: tuple[int, ...] = field(default_factory=tuple)
    member: Optional[Member] = None

    @property
    def nights(self) -> int:
        return (self.checkout - self.checkin).days

    @property
    def occupancy(self) -> int:
        return self.guests + self.children
