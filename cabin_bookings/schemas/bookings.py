from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from cabin_bookings.bookings.types import BookingMode


class QuotePayload(BaseModel):
    """
    Schema for pricing a prospective stay.
    """

    checkin: date = Field(..., description="First night of the stay")
    checkout: date = Field(..., description="Departure day (not charged)")
    mode: BookingMode = Field(BookingMode.ROOM, description="room or buyout")
    guests: int = Field(1, ge=1, description="Adult guests")
    children: int = Field(0, ge=0, description="Children")
    room_ids: list[int] = Field(default_factory=list, description="Selected rooms (room mode)")


class ValidatePayload(QuotePayload):
    """
    Schema for advisory stay validation. Same fields as a quote; the member
    comes from the request headers.
    """


class BookingCreatePayload(QuotePayload):
    """
    Schema for creating a booking.
    """

    payment_confirmed: bool = Field(
        False, description="Create the booking as complete (payment already captured)"
    )


class BookingResponse(BaseModel):
    id: str
    reference: str
    property: str
    status: str
    booking_mode: str
    checkin_date: date
    checkout_date: date
    guests_count: int
    children_count: int
    room_ids: list[int]
    total_price: Optional[Decimal] = None
    hold_expires_at: Optional[datetime] = None
    pricing_items: Optional[dict[str, Any]] = None
    replayed: bool = False


class AvailabilityResponse(BaseModel):
    property: str
    checkin: date
    checkout: date
    room_ids: list[int]


class CalendarDay(BaseModel):
    day: date
    booked_room_ids: list[int]
    buyout: bool
    blackout: bool
    available_for_buyout: bool
    selectable: bool
