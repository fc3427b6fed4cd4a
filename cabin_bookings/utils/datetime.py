"""UTC datetime and calendar-night utilities."""

from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.

    This function should be used instead of datetime.now() or datetime.utcnow()
    to ensure all timestamps are timezone-aware and stored in UTC.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to a naive datetime read back from the database.

    SQLite does not store offsets, so timestamps written as UTC come back naive.
    """
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def iter_nights(checkin: date, checkout: date) -> Iterator[date]:
    """
    Yield every occupied night of a half-open stay [checkin, checkout).

    Example:
        >>> list(iter_nights(date(2025, 3, 7), date(2025, 3, 9)))
        [datetime.date(2025, 3, 7), datetime.date(2025, 3, 8)]
    """
    day = checkin
    while day < checkout:
        yield day
        day += timedelta(days=1)
