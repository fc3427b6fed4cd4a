# models/inventory.py

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from cabin_bookings.models.base import Base


class PropertyInventory(Base):
    """
    One row per (property, calendar day).

    Every booking attempt that touches a day locks this row, so concurrent
    requests for overlapping dates at the same property serialize here. The
    buyout flags record whether the whole property is held or booked that
    night.
    """

    __tablename__ = "property_inventory"

    property = Column(String(32), primary_key=True)
    day = Column(Date, primary_key=True)
    buyout_held = Column(Boolean, nullable=False, default=False)
    buyout_booked = Column(Boolean, nullable=False, default=False)
    buyout_booking_id = Column(
        String(36), ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True
    )
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class RoomInventory(Base):
    """
    One row per (room, calendar day) recording whether the room-night is
    held (awaiting payment) or booked, and by which booking.
    """

    __tablename__ = "room_inventory"

    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True)
    day = Column(Date, primary_key=True)
    property = Column(String(32), nullable=False, index=True)
    held = Column(Boolean, nullable=False, default=False)
    booked = Column(Boolean, nullable=False, default=False)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
