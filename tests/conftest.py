"""
Shared test configuration.

``cabin_bookings.config`` refuses to import without DATABASE_URL and
ALLOWED_ORIGINS, so defaults pointing at a throwaway SQLite file are set
before any application module is imported.
"""

from __future__ import annotations

import os
import tempfile
from datetime import date, timedelta
from typing import Generator

os.environ.setdefault(
    "DATABASE_URL", f"sqlite:///{os.path.join(tempfile.gettempdir(), 'cabin_bookings_test.db')}"
)
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")

import pytest  # noqa: E402

from cabin_bookings.services.catalog_cache import catalog_cache  # noqa: E402
from cabin_bookings.utils.datetime import utc_today  # noqa: E402


@pytest.fixture(autouse=True)
def clear_catalog_cache() -> Generator[None, None, None]:
    """Every test starts and ends with an empty property catalog cache."""
    catalog_cache.clear()
    yield
    catalog_cache.clear()


@pytest.fixture
def monday() -> date:
    """First Monday at least two weeks after today (UTC), so stays avoid weekends and the past."""
    start = utc_today() + timedelta(days=14)
    return start + timedelta(days=(7 - start.weekday()) % 7)


@pytest.fixture
def stay_dates(monday: date) -> tuple[date, date]:
    """A Monday -> Wednesday stay (two weekday nights)."""
    return monday, monday + timedelta(days=2)
