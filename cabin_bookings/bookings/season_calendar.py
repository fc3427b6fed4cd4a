"""
Recurring season arithmetic.

Seasons are stored as (month, day) boundaries without a year and recur every
year. A season whose end (month, day) sorts before its start wraps the year
boundary, e.g. winter running Nov 1 -> Apr 30.

The two primitives, ``date_in_season`` and ``next_occurrence``, are plain
functions so the year-wrap math can be tested without any season rows.
``SeasonCalendar`` builds the per-property rules (current season, advance
booking horizon, max nights) on top of them.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Any, Optional, Sequence

import structlog

logger = structlog.get_logger(__name__)

MonthDay = tuple[int, int]


def month_day(d: date) -> MonthDay:
    return (d.month, d.day)


def season_bounds(season: Any) -> tuple[MonthDay, MonthDay]:
    """Return the ((start_month, start_day), (end_month, end_day)) of a season row."""
    return (season.start_month, season.start_day), (season.end_month, season.end_day)


def wraps_year(start_md: MonthDay, end_md: MonthDay) -> bool:
    return start_md > end_md


def date_in_season(d: date, start_md: MonthDay, end_md: MonthDay) -> bool:
    """
    Check whether a date falls inside a recurring [start, end] season.

    Both boundaries are inclusive. For a wrapping season a date matches when
    it is on/after the start OR on/before the end.

    Args:
        d: Date to test
        start_md: Season start as (month, day)
        end_md: Season end as (month, day)

    Returns:
        bool: True if the date is inside the season

    Example:
        >>> date_in_season(date(2025, 1, 15), (11, 1), (4, 30))
        True
        >>> date_in_season(date(2025, 6, 1), (11, 1), (4, 30))
        False
    """
    md = month_day(d)
    if wraps_year(start_md, end_md):
        return md >= start_md or md <= end_md
    return start_md <= md <= end_md


def _date_or_none(year: int, md: MonthDay) -> Optional[date]:
    month, day = md
    if day > calendar.monthrange(year, month)[1]:
        return None
    return date(year, month, day)


def _clamped_date(year: int, md: MonthDay) -> date:
    # Feb 29 boundaries clamp to Feb 28 in common years
    month, day = md
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def next_occurrence(md: MonthDay, reference: date) -> date:
    """
    Return the nearest calendar date strictly after ``reference`` with the given (month, day).

    Feb 29 rolls forward to the next leap year.

    Example:
        >>> next_occurrence((11, 1), date(2025, 10, 31))
        datetime.date(2025, 11, 1)
        >>> next_occurrence((11, 1), date(2025, 11, 1))
        datetime.date(2026, 11, 1)
    """
    year = reference.year
    while True:
        candidate = _date_or_none(year, md)
        if candidate is not None and candidate > reference:
            return candidate
        year += 1


def season_occurrence(season: Any, reference: date) -> tuple[date, date]:
    """
    Return the concrete (start, end) dates of the season occurrence anchored at ``reference``.

    For a wrapping season, a reference on/before the end (month, day) belongs
    to the occurrence that started the previous year; otherwise the occurrence
    starts this year and ends next year. Non-wrapping seasons always resolve
    within the reference year.

    Args:
        season: Season row (anything with start/end month and day attributes)
        reference: Anchor date, usually today

    Returns:
        tuple[date, date]: Inclusive start and end dates
    """
    start_md, end_md = season_bounds(season)
    year = reference.year

    if wraps_year(start_md, end_md):
        if month_day(reference) <= end_md:
            return _clamped_date(year - 1, start_md), _clamped_date(year, end_md)
        return _clamped_date(year, start_md), _clamped_date(year + 1, end_md)

    return _clamped_date(year, start_md), _clamped_date(year, end_md)


class SeasonCalendar:
    """
    Season lookups for a single property.

    Args:
        property: Property the seasons belong to (used for logging)
        seasons: Season rows, in priority order; the first match wins
        default_max_nights: Stay length limit when a season has no override
        default_horizon_days: Booking horizon used when no season covers today

    Example:
        >>> cal = SeasonCalendar("tahoe", seasons, default_max_nights=4, default_horizon_days=365)
        >>> cal.season_for(date(2025, 12, 20)).name
        'Winter'
    """

    def __init__(
        self,
        property: str,
        seasons: Sequence[Any],
        default_max_nights: int,
        default_horizon_days: int,
    ):
        self.property = property
        self.seasons = list(seasons)
        self.default_max_nights = default_max_nights
        self.default_horizon_days = default_horizon_days

    def season_for(self, d: date) -> Optional[Any]:
        for season in self.seasons:
            start_md, end_md = season_bounds(season)
            if date_in_season(d, start_md, end_md):
                return season
        return None

    def next_season(self, today: date) -> Optional[Any]:
        """
        Return the season (other than today's) whose next start is nearest after ``today``.

        Returns None when today is not covered or the property has a single season.
        """
        current = self.season_for(today)
        if current is None or len(self.seasons) < 2:
            return None

        upcoming = [
            (next_occurrence(season_bounds(s)[0], today), s)
            for s in self.seasons
            if s.id != current.id
        ]
        if not upcoming:
            return None
        upcoming.sort(key=lambda pair: pair[0])
        return upcoming[0][1]

    @staticmethod
    def advance_limit(season: Optional[Any]) -> Optional[int]:
        """Return a season's advance booking limit in days, or None when unbounded."""
        if season is None or not season.advance_booking_days:
            return None
        return season.advance_booking_days if season.advance_booking_days > 0 else None

    def max_booking_date(self, today: date) -> date:
        """
        Compute the latest check-in date a member may currently select.

        - Today's season has a positive advance limit: ``today + limit``.
        - Otherwise: the end of today's season occurrence, extended to
          ``today + next season's limit`` if that is later.
        - No season covers today: ``today + default_horizon_days``.

        Args:
            today: Reference date

        Returns:
            date: Maximum allowed check-in date
        """
        current = self.season_for(today)
        if current is None:
            logger.warning(
                "season_configuration_incomplete",
                property=self.property,
                date=today.isoformat(),
                fallback_days=self.default_horizon_days,
            )
            return today + timedelta(days=self.default_horizon_days)

        limit = self.advance_limit(current)
        if limit is not None:
            return today + timedelta(days=limit)

        _, season_end = season_occurrence(current, today)
        next_limit = self.advance_limit(self.next_season(today))
        if next_limit is not None:
            return max(season_end, today + timedelta(days=next_limit))
        return season_end

    def effective_max_nights(self, season: Optional[Any]) -> int:
        if season is not None and season.max_nights and season.max_nights > 0:
            return season.max_nights
        return self.default_max_nights

    def date_selectable(self, d: date, today: date) -> bool:
        """A date in a season with an advance limit is only selectable within that window."""
        limit = self.advance_limit(self.season_for(d))
        if limit is None:
            return True
        return d <= today + timedelta(days=limit)
