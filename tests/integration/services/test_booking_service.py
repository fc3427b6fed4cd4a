"""
Integration tests for the booking service call contracts.
"""

from __future__ import annotations

import time
from datetime import timedelta

import pytest

from cabin_bookings.bookings.errors import BookingRejected, FailureReason
from cabin_bookings.bookings.types import BookingMode, Property
from cabin_bookings.db.engine import LOCK_TIMEOUT_OPTION
from cabin_bookings.db.writers.catalog import create_blackout, create_room
from cabin_bookings.services import booking_service


@pytest.mark.integration
def test_availability_round_trip(
    sqlite_engine, tahoe, locker, single_member, stay_dates
) -> None:
    """Test available -> booked -> cancelled -> available again."""
    checkin, checkout = stay_dates
    all_rooms = [tahoe.room_a, tahoe.room_b, tahoe.bunk_room]

    assert booking_service.get_available_rooms(sqlite_engine, Property.TAHOE, checkin, checkout) == all_rooms

    outcome = booking_service.create_booking(
        sqlite_engine,
        single_member,
        Property.TAHOE,
        checkin,
        checkout,
        BookingMode.ROOM,
        guests=2,
        room_ids=[tahoe.room_b],
        locker=locker,
    )
    assert outcome.ok

    assert booking_service.get_available_rooms(
        sqlite_engine, Property.TAHOE, checkin, checkout
    ) == [tahoe.room_a, tahoe.bunk_room]
    # The checkout day is free again
    assert booking_service.get_available_rooms(
        sqlite_engine, Property.TAHOE, checkout, checkout + timedelta(days=1)
    ) == all_rooms

    assert booking_service.cancel_booking(sqlite_engine, outcome.booking["id"], locker=locker).ok
    assert booking_service.get_available_rooms(sqlite_engine, Property.TAHOE, checkin, checkout) == all_rooms


@pytest.mark.integration
def test_availability_reads_are_repeatable(sqlite_engine, tahoe, stay_dates) -> None:
    """Test that two reads with no write in between return identical results."""
    checkin, checkout = stay_dates

    first = booking_service.get_available_rooms(sqlite_engine, Property.TAHOE, checkin, checkout)
    second = booking_service.get_available_rooms(sqlite_engine, Property.TAHOE, checkin, checkout)

    assert first == second == [tahoe.room_a, tahoe.room_b, tahoe.bunk_room]


@pytest.mark.integration
def test_availability_read_during_open_booking_transaction(
    sqlite_engine, tahoe, stay_dates
) -> None:
    """Test that availability reads do not wait on a booking transaction's write lock."""
    checkin, checkout = stay_dates

    with sqlite_engine.execution_options(**{LOCK_TIMEOUT_OPTION: 5}).begin():
        started = time.monotonic()
        room_ids = booking_service.get_available_rooms(
            sqlite_engine, Property.TAHOE, checkin, checkout
        )
        days = booking_service.get_daily_availability(
            sqlite_engine, Property.TAHOE, checkin, checkout
        )
        elapsed = time.monotonic() - started

    assert room_ids == [tahoe.room_a, tahoe.room_b, tahoe.bunk_room]
    assert len(days) == 2
    assert elapsed < 1


@pytest.mark.integration
def test_selectable_days_follow_advance_limit(sqlite_engine, tahoe, monday) -> None:
    """Test that nights past the season's 365-day advance limit are not selectable."""
    days = booking_service.get_selectable_days(
        sqlite_engine,
        Property.TAHOE,
        monday + timedelta(days=364),
        monday + timedelta(days=367),
        today=monday,
    )

    assert list(days.values()) == [True, True, False]


@pytest.mark.integration
def test_availability_rejects_empty_range(sqlite_engine, tahoe, stay_dates) -> None:
    checkin, _ = stay_dates

    with pytest.raises(BookingRejected) as exc_info:
        booking_service.get_available_rooms(sqlite_engine, Property.TAHOE, checkin, checkin)

    assert exc_info.value.reason == FailureReason.INVALID_PARAMETERS


@pytest.mark.integration
def test_daily_availability_calendar(sqlite_engine, tahoe, locker, family_member, stay_dates) -> None:
    """Test the calendar view after a buyout and a blackout."""
    checkin, checkout = stay_dates
    assert booking_service.create_booking(
        sqlite_engine,
        family_member,
        Property.TAHOE,
        checkin,
        checkout,
        BookingMode.BUYOUT,
        guests=9,
        locker=locker,
    ).ok
    create_blackout(sqlite_engine, "tahoe", checkout, checkout)

    days = booking_service.get_daily_availability(
        sqlite_engine, Property.TAHOE, checkin, checkout + timedelta(days=2)
    )

    assert [d.buyout for d in days.values()] == [True, True, False, False]
    assert [d.blackout for d in days.values()] == [False, False, True, False]
    assert days[checkout + timedelta(days=1)].available_for_buyout is True


@pytest.mark.integration
@pytest.mark.parametrize(
    "mode, guests, children, rooms, nightly",
    [
        # Room A bills its 2-adult minimum at the property rate
        (BookingMode.ROOM, 1, 0, ["room_a"], "100.00"),
        # Bunk category rate for 3 billed adults, property children rate
        (BookingMode.ROOM, 2, 1, ["bunk_room"], "140.00"),
        # Highest rate of the selection, minimums summed: 5 adults at 50
        (BookingMode.ROOM, 4, 0, ["room_a", "bunk_room"], "250.00"),
        (BookingMode.BUYOUT, 12, 2, [], "600.00"),
    ],
)
def test_compute_quote(
    sqlite_engine, tahoe, engine_settings, stay_dates, mode, guests, children, rooms, nightly
) -> None:
    checkin, checkout = stay_dates

    quote = booking_service.compute_quote(
        sqlite_engine,
        Property.TAHOE,
        checkin,
        checkout,
        mode,
        guests,
        children,
        room_ids=[getattr(tahoe, name) for name in rooms],
        settings=engine_settings,
    )

    assert quote["nights"] == 2
    assert [n["amount"] for n in quote["breakdown"]] == [nightly, nightly]
    assert quote["currency"] == "USD"


@pytest.mark.integration
def test_compute_quote_failures(sqlite_engine, tahoe, engine_settings, stay_dates) -> None:
    """Test that quote failures come back as a reason instead of raising."""
    checkin, checkout = stay_dates

    unknown = booking_service.compute_quote(
        sqlite_engine, Property.TAHOE, checkin, checkout, BookingMode.ROOM, 1, room_ids=[9999],
        settings=engine_settings,
    )
    reversed_dates = booking_service.compute_quote(
        sqlite_engine, Property.TAHOE, checkout, checkin, BookingMode.ROOM, 1,
        room_ids=[tahoe.room_a], settings=engine_settings,
    )
    unpriced_buyout = booking_service.compute_quote(
        sqlite_engine, Property.CLEAR_LAKE, checkin, checkout, BookingMode.BUYOUT, 4,
        settings=engine_settings,
    )

    assert unknown["reason"] == FailureReason.INVALID_PARAMETERS.value
    assert reversed_dates["reason"] == FailureReason.INVALID_PARAMETERS.value
    assert unpriced_buyout["reason"] == FailureReason.PRICING_UNAVAILABLE.value


@pytest.mark.integration
def test_compute_quote_rejects_inactive_room(sqlite_engine, tahoe, engine_settings, stay_dates) -> None:
    """Test that a room the booking path would refuse is not priced either."""
    checkin, checkout = stay_dates
    retired = create_room(sqlite_engine, "tahoe", "Old Loft", capacity_max=2, is_active=False)

    result = booking_service.compute_quote(
        sqlite_engine, Property.TAHOE, checkin, checkout, BookingMode.ROOM, 1,
        room_ids=[retired], settings=engine_settings,
    )

    assert result["reason"] == FailureReason.INVALID_PARAMETERS.value
    assert str(retired) in result["error"]


@pytest.mark.integration
def test_validate_stay(sqlite_engine, tahoe, locker, single_member, engine_settings, monday) -> None:
    """Test advisory validation reports every broken rule at once."""
    ok = booking_service.validate_stay(
        sqlite_engine,
        Property.TAHOE,
        monday,
        monday + timedelta(days=2),
        BookingMode.ROOM,
        single_member,
        room_ids=[tahoe.room_a],
        guests=2,
        settings=engine_settings,
    )
    assert ok == {}

    assert booking_service.create_booking(
        sqlite_engine,
        single_member,
        Property.TAHOE,
        monday,
        monday + timedelta(days=2),
        BookingMode.ROOM,
        guests=2,
        room_ids=[tahoe.room_a],
        locker=locker,
    ).ok

    # Saturday night without Sunday, a second booking and too many guests
    saturday = monday + timedelta(days=5)
    violations = booking_service.validate_stay(
        sqlite_engine,
        Property.TAHOE,
        monday + timedelta(days=1),
        saturday + timedelta(days=1),
        BookingMode.ROOM,
        single_member,
        room_ids=[tahoe.room_b],
        guests=3,
        settings=engine_settings,
    )

    assert set(violations) == {"max_nights", "weekend_rule", "active_booking", "capacity"}


@pytest.mark.integration
def test_validate_stay_malformed_request(sqlite_engine, tahoe, single_member, stay_dates) -> None:
    checkin, checkout = stay_dates

    violations = booking_service.validate_stay(
        sqlite_engine, Property.TAHOE, checkin, checkout, BookingMode.ROOM, single_member
    )

    assert list(violations) == [FailureReason.INVALID_PARAMETERS.value]
