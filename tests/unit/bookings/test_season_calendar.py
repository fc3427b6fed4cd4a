"""
Unit tests for recurring season arithmetic.
"""

from __future__ import annotations

from datetime import date
from types import SimpleNamespace
from typing import Optional

import pytest

from cabin_bookings.bookings.season_calendar import (
    SeasonCalendar,
    date_in_season,
    next_occurrence,
    season_occurrence,
)


def make_season(
    id: int,
    name: str,
    start: tuple[int, int],
    end: tuple[int, int],
    advance_booking_days: Optional[int] = None,
    max_nights: Optional[int] = None,
    is_default: bool = False,
) -> SimpleNamespace:
    return SimpleNamespace(
        id=id,
        name=name,
        start_month=start[0],
        start_day=start[1],
        end_month=end[0],
        end_day=end[1],
        advance_booking_days=advance_booking_days,
        max_nights=max_nights,
        is_default=is_default,
    )


@pytest.fixture
def summer() -> SimpleNamespace:
    return make_season(1, "Summer", (5, 1), (10, 31), advance_booking_days=None, max_nights=7)


@pytest.fixture
def winter() -> SimpleNamespace:
    return make_season(2, "Winter", (11, 1), (4, 30), advance_booking_days=60, is_default=True)


@pytest.fixture
def calendar(summer: SimpleNamespace, winter: SimpleNamespace) -> SeasonCalendar:
    return SeasonCalendar("tahoe", [summer, winter], default_max_nights=4, default_horizon_days=365)


@pytest.mark.unit
@pytest.mark.parametrize(
    "day, expected",
    [
        (date(2025, 11, 1), True),
        (date(2025, 12, 31), True),
        (date(2026, 1, 1), True),
        (date(2026, 4, 30), True),
        (date(2026, 5, 1), False),
        (date(2025, 10, 31), False),
    ],
)
def test_date_in_wrapping_season(day: date, expected: bool) -> None:
    """Test that a Nov 1 -> Apr 30 season matches across the new year, boundaries included."""
    assert date_in_season(day, (11, 1), (4, 30)) is expected


@pytest.mark.unit
def test_date_in_non_wrapping_season() -> None:
    """Test inclusive boundaries of a season inside one calendar year."""
    assert date_in_season(date(2025, 5, 1), (5, 1), (10, 31))
    assert date_in_season(date(2025, 10, 31), (5, 1), (10, 31))
    assert not date_in_season(date(2025, 11, 1), (5, 1), (10, 31))


@pytest.mark.unit
def test_next_occurrence_is_strictly_after_reference() -> None:
    """Test that the reference day itself never counts as the next occurrence."""
    assert next_occurrence((11, 1), date(2025, 10, 31)) == date(2025, 11, 1)
    assert next_occurrence((11, 1), date(2025, 11, 1)) == date(2026, 11, 1)


@pytest.mark.unit
def test_next_occurrence_feb_29_rolls_to_leap_year() -> None:
    """Test that Feb 29 is only found in leap years."""
    assert next_occurrence((2, 29), date(2025, 1, 1)) == date(2028, 2, 29)
    assert next_occurrence((2, 29), date(2024, 2, 29)) == date(2028, 2, 29)
    assert next_occurrence((2, 29), date(2024, 2, 28)) == date(2024, 2, 29)


@pytest.mark.unit
def test_season_occurrence_for_wrapping_season(winter: SimpleNamespace) -> None:
    """Test that a January reference belongs to the occurrence that started the previous year."""
    assert season_occurrence(winter, date(2026, 1, 10)) == (date(2025, 11, 1), date(2026, 4, 30))
    assert season_occurrence(winter, date(2025, 11, 15)) == (date(2025, 11, 1), date(2026, 4, 30))


@pytest.mark.unit
def test_season_occurrence_clamps_feb_29_in_common_year() -> None:
    """Test that a Feb 29 boundary resolves to Feb 28 outside leap years."""
    season = make_season(3, "Late Winter", (1, 1), (2, 29))

    assert season_occurrence(season, date(2025, 1, 15)) == (date(2025, 1, 1), date(2025, 2, 28))
    assert season_occurrence(season, date(2028, 1, 15)) == (date(2028, 1, 1), date(2028, 2, 29))


@pytest.mark.unit
def test_season_for_returns_covering_season(calendar: SeasonCalendar) -> None:
    """Test season lookup on both sides of a boundary."""
    assert calendar.season_for(date(2025, 10, 31)).name == "Summer"
    assert calendar.season_for(date(2025, 11, 1)).name == "Winter"


@pytest.mark.unit
def test_next_season_is_the_other_season(calendar: SeasonCalendar) -> None:
    """Test that next_season skips the current season."""
    assert calendar.next_season(date(2025, 7, 1)).name == "Winter"
    assert calendar.next_season(date(2026, 1, 1)).name == "Summer"


@pytest.mark.unit
def test_max_booking_date_uses_current_season_limit(calendar: SeasonCalendar) -> None:
    """Test that a season with an advance limit caps check-in at today + limit."""
    assert calendar.max_booking_date(date(2025, 12, 1)) == date(2026, 1, 30)


@pytest.mark.unit
def test_max_booking_date_extends_to_next_season_limit(calendar: SeasonCalendar) -> None:
    """Test that an unlimited season opens up to today + the next season's limit when that is later."""
    # Summer ends Oct 31; Winter's 60-day window from Oct 15 reaches Dec 14
    assert calendar.max_booking_date(date(2025, 10, 15)) == date(2025, 12, 14)


@pytest.mark.unit
def test_max_booking_date_falls_back_to_season_end(calendar: SeasonCalendar) -> None:
    """Test that an unlimited season otherwise opens up to its own end."""
    assert calendar.max_booking_date(date(2025, 6, 1)) == date(2025, 10, 31)


@pytest.mark.unit
def test_max_booking_date_without_covering_season(summer: SimpleNamespace) -> None:
    """Test the default horizon when no season covers today."""
    calendar = SeasonCalendar("tahoe", [summer], default_max_nights=4, default_horizon_days=365)

    assert calendar.max_booking_date(date(2025, 1, 10)) == date(2026, 1, 10)


@pytest.mark.unit
def test_effective_max_nights(calendar: SeasonCalendar, summer: SimpleNamespace, winter: SimpleNamespace) -> None:
    """Test season max nights override and the property default."""
    assert calendar.effective_max_nights(summer) == 7
    assert calendar.effective_max_nights(winter) == 4
    assert calendar.effective_max_nights(None) == 4


@pytest.mark.unit
def test_date_selectable_respects_season_limit(calendar: SeasonCalendar) -> None:
    """Test that winter dates are only selectable inside the 60-day window."""
    today = date(2025, 10, 1)

    assert calendar.date_selectable(date(2025, 11, 30), today)
    assert not calendar.date_selectable(date(2025, 12, 1), today)
    # Summer has no limit of its own
    assert calendar.date_selectable(date(2026, 6, 1), today)
