"""
Shared fixtures for database-backed tests.

Each test gets its own SQLite file so threaded tests exercise real
cross-connection locking, and a small "tahoe" catalog:

- Room A: sleeps 4, billed for at least 2 adults
- Room B: sleeps 2, billed for at least 1 adult
- Bunk Room: sleeps 6, billed for at least 3 adults, "Bunk" category
- Summer (May 1 - Oct 31) and Winter (Nov 1 - Apr 30) seasons, 365 day horizon, 4 nights max
- Property-wide room rate 50/adult, 20/child; Bunk category rate 40/adult
- Buyout 600/night
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy.engine import Engine

from cabin_bookings.bookings.context import EngineSettings
from cabin_bookings.bookings.locker import BookingLocker
from cabin_bookings.bookings.pricing import PricingDefaults
from cabin_bookings.bookings.types import BookingMode, Member, MembershipTier, RateBasis
from cabin_bookings.db.engine import build_engine
from cabin_bookings.db.writers.catalog import (
    create_pricing_rule,
    create_room,
    create_room_category,
    create_season,
)
from cabin_bookings.models.base import Base

# Register every table on Base.metadata
from cabin_bookings.models import bookings, catalog, inventory  # noqa: F401


@dataclass(frozen=True)
class SeededProperty:
    property: str
    room_a: int
    room_b: int
    bunk_room: int
    bunk_category: int
    summer: int
    winter: int


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """Fresh SQLite database with every table created."""
    engine = build_engine(f"sqlite:///{tmp_path / 'bookings.db'}")
    Base.metadata.create_all(engine)

    yield engine

    engine.dispose()


@pytest.fixture
def tahoe(sqlite_engine: Engine) -> SeededProperty:
    """Seed the tahoe catalog described in the module docstring."""
    bunk_category = create_room_category(sqlite_engine, "Bunk")
    room_a = create_room(sqlite_engine, "tahoe", "Room A", capacity_max=4, min_billable_occupancy=2)
    room_b = create_room(sqlite_engine, "tahoe", "Room B", capacity_max=2, min_billable_occupancy=1)
    bunk_room = create_room(
        sqlite_engine,
        "tahoe",
        "Bunk Room",
        capacity_max=6,
        min_billable_occupancy=3,
        room_category_id=bunk_category,
        single_beds=6,
    )

    summer = create_season(
        sqlite_engine, "tahoe", "Summer", (5, 1), (10, 31), advance_booking_days=365, max_nights=4
    )
    winter = create_season(
        sqlite_engine,
        "tahoe",
        "Winter",
        (11, 1),
        (4, 30),
        advance_booking_days=365,
        max_nights=4,
        is_default=True,
    )

    create_pricing_rule(
        sqlite_engine,
        "tahoe",
        BookingMode.ROOM,
        RateBasis.PER_PERSON_PER_NIGHT,
        Decimal("50.00"),
        children_amount=Decimal("20.00"),
    )
    create_pricing_rule(
        sqlite_engine,
        "tahoe",
        BookingMode.ROOM,
        RateBasis.PER_PERSON_PER_NIGHT,
        Decimal("40.00"),
        room_category_id=bunk_category,
    )
    create_pricing_rule(
        sqlite_engine,
        "tahoe",
        BookingMode.BUYOUT,
        RateBasis.BUYOUT_FIXED,
        Decimal("600.00"),
    )

    return SeededProperty(
        property="tahoe",
        room_a=room_a,
        room_b=room_b,
        bunk_room=bunk_room,
        bunk_category=bunk_category,
        summer=summer,
        winter=winter,
    )


@pytest.fixture
def engine_settings() -> EngineSettings:
    return EngineSettings(
        pricing_defaults=PricingDefaults(
            adult_amount=Decimal("45.00"), children_amount=Decimal("25.00")
        ),
        default_max_nights=4,
        default_horizon_days=365,
        buyout_max_occupancy=17,
        currency="USD",
    )


@pytest.fixture
def locker(sqlite_engine: Engine, engine_settings: EngineSettings) -> BookingLocker:
    return BookingLocker(sqlite_engine, settings=engine_settings, lock_timeout=5)


@pytest.fixture
def single_member() -> Member:
    return Member(id="member-single", tier=MembershipTier.SINGLE)


@pytest.fixture
def family_member() -> Member:
    return Member(id="member-family", tier=MembershipTier.FAMILY)
