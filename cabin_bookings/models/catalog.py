# models/catalog.py

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from cabin_bookings.models.base import Base


class RoomCategory(Base):
    """
    Groups rooms that share category-level pricing (e.g. "bunk rooms").
    """

    __tablename__ = "room_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(String(1000), nullable=True)


class Room(Base):
    """
    ORM model for a bookable room at a property.

    ``min_billable_occupancy`` is the billing floor: a room booked by fewer
    guests is still charged for this many adults. ``capacity_max`` caps the
    guests plus children that may sleep in it.
    """

    __tablename__ = "rooms"
    __table_args__ = (
        CheckConstraint("capacity_max > 0", name="ck_rooms_capacity_positive"),
        CheckConstraint("min_billable_occupancy >= 1", name="ck_rooms_min_billable"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    property = Column(String(32), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    room_category_id = Column(
        Integer, ForeignKey("room_categories.id", ondelete="SET NULL"), nullable=True
    )
    capacity_max = Column(Integer, nullable=False)
    min_billable_occupancy = Column(Integer, nullable=False, default=1)
    single_beds = Column(Integer, nullable=False, default=0)
    queen_beds = Column(Integer, nullable=False, default=0)
    king_beds = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class Season(Base):
    """
    ORM model for a recurring booking season.

    Seasons recur every year on their (month, day) boundaries. A season whose
    end falls before its start (e.g. Nov 1 -> Apr 30) wraps the year boundary.
    ``advance_booking_days`` of NULL or 0 means the season has no advance
    booking limit of its own; ``max_nights`` of NULL falls back to the
    property default.
    """

    __tablename__ = "seasons"
    __table_args__ = (
        CheckConstraint("start_month BETWEEN 1 AND 12", name="ck_seasons_start_month"),
        CheckConstraint("end_month BETWEEN 1 AND 12", name="ck_seasons_end_month"),
        CheckConstraint("start_day BETWEEN 1 AND 31", name="ck_seasons_start_day"),
        CheckConstraint("end_day BETWEEN 1 AND 31", name="ck_seasons_end_day"),
        CheckConstraint(
            "advance_booking_days IS NULL OR advance_booking_days >= 0",
            name="ck_seasons_advance_booking_days",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    property = Column(String(32), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    start_month = Column(Integer, nullable=False)
    start_day = Column(Integer, nullable=False)
    end_month = Column(Integer, nullable=False)
    end_day = Column(Integer, nullable=False)
    advance_booking_days = Column(Integer, nullable=True)
    max_nights = Column(Integer, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)


class PricingRule(Base):
    """
    ORM model for a price rule.

    Specificity, most specific first: ``room_id`` > ``room_category_id`` >
    property-wide. Within a tier, a rule bound to a season beats one with a
    NULL ``season_id``. ``amount`` is per adult per night for
    ``per_person_per_night`` and the flat nightly rate for ``buyout_fixed``.
    """

    __tablename__ = "pricing_rules"
    __table_args__ = (
        UniqueConstraint(
            "property",
            "season_id",
            "room_id",
            "room_category_id",
            "booking_mode",
            "rate_basis",
            name="uq_pricing_rules_specificity",
        ),
        CheckConstraint("amount >= 0", name="ck_pricing_rules_amount"),
        CheckConstraint(
            "children_amount IS NULL OR children_amount >= 0",
            name="ck_pricing_rules_children_amount",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    property = Column(String(32), nullable=False, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id", ondelete="CASCADE"), nullable=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=True)
    room_category_id = Column(
        Integer, ForeignKey("room_categories.id", ondelete="CASCADE"), nullable=True
    )
    booking_mode = Column(String(16), nullable=False)
    rate_basis = Column(String(32), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    children_amount = Column(Numeric(10, 2), nullable=True)


class Blackout(Base):
    """
    Nights on which nothing may be booked at a property.

    Both ``start_date`` and ``end_date`` are blacked-out nights (inclusive).
    """

    __tablename__ = "blackouts"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_blackouts_range"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    property = Column(String(32), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(String(255), nullable=True)
