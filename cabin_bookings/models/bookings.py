# models/bookings.py

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.sql import func

from cabin_bookings.models.base import Base


class Booking(Base):
    """
    ORM model for a member's reservation.

    ``checkin_date``/``checkout_date`` form a half-open interval of occupied
    nights. Room-mode bookings link their rooms through ``booking_rooms``;
    buyout bookings occupy the whole property. Only ``hold`` and ``complete``
    bookings occupy inventory.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("checkout_date > checkin_date", name="ck_bookings_dates"),
        CheckConstraint("guests_count > 0", name="ck_bookings_guests_positive"),
        CheckConstraint("children_count >= 0", name="ck_bookings_children"),
        CheckConstraint(
            "status IN ('hold', 'complete', 'cancelled')", name="ck_bookings_status"
        ),
        Index("ix_bookings_property_dates", "property", "checkin_date", "checkout_date"),
        Index("ix_bookings_user_property", "user_id", "property"),
    )

    id = Column(String(36), primary_key=True)
    reference = Column(String(32), nullable=False, unique=True)
    user_id = Column(String(64), nullable=False)
    property = Column(String(32), nullable=False)
    checkin_date = Column(Date, nullable=False)
    checkout_date = Column(Date, nullable=False)
    booking_mode = Column(String(16), nullable=False)
    guests_count = Column(Integer, nullable=False, default=1)
    children_count = Column(Integer, nullable=False, default=0)
    status = Column(String(16), nullable=False, default="hold")
    hold_expires_at = Column(DateTime(timezone=True), nullable=True)
    total_price = Column(Numeric(10, 2), nullable=True)
    pricing_items = Column(JSON, nullable=True)
    idempotency_key = Column(String(128), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class BookingRoom(Base):
    """Join table between room-mode bookings and the rooms they reserve."""

    __tablename__ = "booking_rooms"

    booking_id = Column(
        String(36), ForeignKey("bookings.id", ondelete="CASCADE"), primary_key=True
    )
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True)
