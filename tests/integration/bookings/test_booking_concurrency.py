"""
Concurrency tests: racing requests for the same inventory from worker threads.

Each thread gets its own pooled connection, so the SQLite write lock taken by
``BEGIN IMMEDIATE`` is what serializes them.
"""

from __future__ import annotations

import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor

import pytest

from cabin_bookings.bookings.errors import FailureReason
from cabin_bookings.bookings.types import (
    BookingMode,
    Member,
    MembershipTier,
    Property,
    StayRequest,
)

RACERS = 6


@pytest.mark.integration
def test_one_winner_for_the_same_room(locker, tahoe, stay_dates) -> None:
    """Test that N members racing for one room-night produce exactly one booking."""
    checkin, checkout = stay_dates
    start = threading.Barrier(RACERS)

    def attempt(i: int):
        request = StayRequest(
            property=Property.TAHOE,
            checkin=checkin,
            checkout=checkout,
            mode=BookingMode.ROOM,
            guests=2,
            room_ids=(tahoe.room_a,),
            member=Member(id=f"racer-{i}", tier=MembershipTier.SINGLE),
        )
        start.wait()
        return locker.create_booking(request)

    with ThreadPoolExecutor(max_workers=RACERS) as pool:
        outcomes = list(pool.map(attempt, range(RACERS)))

    assert sum(o.ok for o in outcomes) == 1
    assert Counter(o.reason for o in outcomes if not o.ok) == {
        FailureReason.ROOM_UNAVAILABLE: RACERS - 1
    }


@pytest.mark.integration
def test_buyout_and_room_race_has_one_winner(locker, tahoe, single_member, family_member, stay_dates) -> None:
    """Test that a buyout and a room booking for the same nights never both succeed."""
    checkin, checkout = stay_dates
    start = threading.Barrier(2)
    requests = [
        StayRequest(
            property=Property.TAHOE,
            checkin=checkin,
            checkout=checkout,
            mode=BookingMode.BUYOUT,
            guests=8,
            member=family_member,
        ),
        StayRequest(
            property=Property.TAHOE,
            checkin=checkin,
            checkout=checkout,
            mode=BookingMode.ROOM,
            guests=1,
            room_ids=(tahoe.room_b,),
            member=single_member,
        ),
    ]

    def attempt(request: StayRequest):
        start.wait()
        return locker.create_booking(request)

    with ThreadPoolExecutor(max_workers=2) as pool:
        outcomes = list(pool.map(attempt, requests))

    winners = [o for o in outcomes if o.ok]
    losers = [o for o in outcomes if not o.ok]
    assert len(winners) == 1
    assert losers[0].reason in (
        FailureReason.PROPERTY_UNAVAILABLE,
        FailureReason.ROOMS_ALREADY_BOOKED,
    )
