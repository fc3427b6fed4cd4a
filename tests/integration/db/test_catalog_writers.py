"""
Integration tests for property configuration writers.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.engine import Engine

from cabin_bookings.bookings.types import BookingMode, RateBasis
from cabin_bookings.db.readers.catalog import load_catalog
from cabin_bookings.db.writers.catalog import (
    create_blackout,
    create_pricing_rule,
    create_room,
    create_season,
)
from cabin_bookings.services.catalog_cache import catalog_cache, get_catalog


@pytest.mark.integration
def test_load_catalog_reads_seeded_configuration(sqlite_engine: Engine, tahoe) -> None:
    """Test that a property snapshot contains only that property's rows."""
    create_room(sqlite_engine, "clear_lake", "Lake Room", capacity_max=2)

    with sqlite_engine.connect() as conn:
        catalog = load_catalog(conn, "tahoe")

    assert [r.name for r in catalog.rooms] == ["Room A", "Room B", "Bunk Room"]
    assert {s.name for s in catalog.seasons} == {"Summer", "Winter"}
    assert len(catalog.pricing_rules) == 3
    assert catalog.rooms_by_id[tahoe.bunk_room].room_category_id == tahoe.bunk_category
    assert [c.name for c in catalog.categories] == ["Bunk"]


@pytest.mark.integration
def test_writes_invalidate_cached_catalog(sqlite_engine: Engine, tahoe) -> None:
    """Test that a new blackout is visible immediately through the cache."""
    before = get_catalog(sqlite_engine, "tahoe")
    assert before.blackouts == ()
    assert catalog_cache.get("tahoe") is before

    create_blackout(sqlite_engine, "tahoe", date(2030, 7, 1), date(2030, 7, 3), reason="Wedding")

    assert catalog_cache.get("tahoe") is None
    after = get_catalog(sqlite_engine, "tahoe")
    assert [(b.start_date, b.end_date) for b in after.blackouts] == [
        (date(2030, 7, 1), date(2030, 7, 3))
    ]


@pytest.mark.integration
def test_pricing_rule_amounts_round_trip(sqlite_engine: Engine, tahoe) -> None:
    rule_id = create_pricing_rule(
        sqlite_engine,
        "tahoe",
        BookingMode.ROOM,
        RateBasis.PER_PERSON_PER_NIGHT,
        Decimal("72.50"),
        children_amount=Decimal("30.00"),
        season_id=tahoe.summer,
        room_id=tahoe.room_b,
    )

    with sqlite_engine.connect() as conn:
        rule = next(r for r in load_catalog(conn, "tahoe").pricing_rules if r.id == rule_id)

    assert Decimal(rule.amount) == Decimal("72.50")
    assert Decimal(rule.children_amount) == Decimal("30.00")
    assert rule.booking_mode == "room"


@pytest.mark.integration
def test_invalid_configuration_is_rejected(sqlite_engine: Engine, tahoe) -> None:
    """Test writer-level validation of configuration rows."""
    with pytest.raises(ValueError):
        create_pricing_rule(
            sqlite_engine,
            "tahoe",
            BookingMode.ROOM,
            RateBasis.PER_PERSON_PER_NIGHT,
            Decimal("10"),
            room_id=tahoe.room_a,
            room_category_id=tahoe.bunk_category,
        )

    with pytest.raises(ValueError):
        create_blackout(sqlite_engine, "tahoe", date(2030, 7, 3), date(2030, 7, 1))


@pytest.mark.integration
def test_season_without_limits(sqlite_engine: Engine) -> None:
    season_id = create_season(sqlite_engine, "clear_lake", "All Year", (1, 1), (12, 31))

    with sqlite_engine.connect() as conn:
        (season,) = load_catalog(conn, "clear_lake").seasons

    assert season.id == season_id
    assert season.advance_booking_days is None
    assert season.max_nights is None
    assert season.is_default is False
