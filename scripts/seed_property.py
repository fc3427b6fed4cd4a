import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
from decimal import Decimal

import structlog

from cabin_bookings.bookings.types import BookingMode, Property, RateBasis
from cabin_bookings.db.engine import engine
from cabin_bookings.db.writers.catalog import (
    create_pricing_rule,
    create_room,
    create_room_category,
    create_season,
)
from cabin_bookings.logging_config import setup_logging

setup_logging()
logger = structlog.get_logger(__name__)

# === SAMPLE CONFIGURATION ===

ROOMS = [
    # name, capacity, min billable, singles, queens, kings, category
    ("Room 1", 4, 2, 2, 1, 0, "Standard"),
    ("Room 2", 4, 2, 2, 1, 0, "Standard"),
    ("Room 3", 2, 2, 0, 0, 1, "King"),
    ("Room 4", 6, 3, 6, 0, 0, "Bunk"),
]

SEASONS = [
    # name, start (month, day), end (month, day), advance days, max nights, default
    ("Summer", (5, 1), (10, 31), 120, 4, False),
    ("Winter", (11, 1), (4, 30), 60, 4, True),
]


def seed(property: Property) -> None:
    """
    Load a sample room / season / pricing configuration for one property.

    Not idempotent: run once against an empty database.
    """
    category_ids = {
        name: create_room_category(engine, f"{property.value}:{name}")
        for name in sorted({room[6] for room in ROOMS})
    }

    for name, capacity, min_billable, singles, queens, kings, category in ROOMS:
        create_room(
            engine,
            property.value,
            name,
            capacity_max=capacity,
            min_billable_occupancy=min_billable,
            room_category_id=category_ids[category],
            single_beds=singles,
            queen_beds=queens,
            king_beds=kings,
        )

    for name, start, end, advance_days, max_nights, is_default in SEASONS:
        season_id = create_season(
            engine,
            property.value,
            name,
            start,
            end,
            advance_booking_days=advance_days,
            max_nights=max_nights,
            is_default=is_default,
        )
        create_pricing_rule(
            engine,
            property.value,
            BookingMode.BUYOUT,
            RateBasis.BUYOUT_FIXED,
            Decimal("650.00") if name == "Summer" else Decimal("500.00"),
            season_id=season_id,
        )

    create_pricing_rule(
        engine,
        property.value,
        BookingMode.ROOM,
        RateBasis.PER_PERSON_PER_NIGHT,
        Decimal("45.00"),
        children_amount=Decimal("25.00"),
    )
    create_pricing_rule(
        engine,
        property.value,
        BookingMode.ROOM,
        RateBasis.PER_PERSON_PER_NIGHT,
        Decimal("60.00"),
        room_category_id=category_ids["King"],
    )

    logger.info("property_seeded", property=property.value, rooms=len(ROOMS), seasons=len(SEASONS))


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a property's rooms, seasons and pricing")
    parser.add_argument("property", choices=[p.value for p in Property])
    args = parser.parse_args()

    seed(Property(args.property))


if __name__ == "__main__":
    main()
