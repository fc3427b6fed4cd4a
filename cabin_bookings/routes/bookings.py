from datetime import date
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.engine import Engine

from cabin_bookings.bookings.errors import BookingRejected, FailureReason
from cabin_bookings.bookings.locker import BookingLocker, make_idempotency_key
from cabin_bookings.dependencies import get_booking_locker, get_db_engine
from cabin_bookings.routes._booking_helpers import (
    FAILURE_STATUS,
    booking_response_or_raise,
    failure_detail,
    member_from_headers_or_401,
    parse_property_or_404,
    raise_for_rejection,
)
from cabin_bookings.schemas.bookings import (
    AvailabilityResponse,
    BookingCreatePayload,
    BookingResponse,
    CalendarDay,
    QuotePayload,
    ValidatePayload,
)
from cabin_bookings.services import booking_service

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/bookings/{property}/availability", response_model=AvailabilityResponse)
def get_availability(
    property: str,
    checkin: date = Query(..., description="First night"),
    checkout: date = Query(..., description="Departure day"),
    engine: Engine = Depends(get_db_engine),
) -> AvailabilityResponse:
    """
    List rooms free for every night of [checkin, checkout).

    Args:
        property: Property name
        checkin: First night
        checkout: Departure day
        engine: Database engine (injected)

    Returns:
        AvailabilityResponse: Available room ids
    """
    prop = parse_property_or_404(property)
    try:
        room_ids = booking_service.get_available_rooms(engine, prop, checkin, checkout)
        return AvailabilityResponse(
            property=prop.value, checkin=checkin, checkout=checkout, room_ids=room_ids
        )
    except BookingRejected as exc:
        raise_for_rejection(exc)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("availability_lookup_failed", property=property, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/bookings/{property}/calendar", response_model=list[CalendarDay])
def get_calendar(
    property: str,
    start: date = Query(..., description="First night"),
    end: date = Query(..., description="Day after the last night"),
    engine: Engine = Depends(get_db_engine),
) -> list[CalendarDay]:
    """Per-night availability calendar for [start, end), with date-chooser selectability."""
    prop = parse_property_or_404(property)
    try:
        days = booking_service.get_daily_availability(engine, prop, start, end)
        selectable = booking_service.get_selectable_days(engine, prop, start, end)
        return [
            CalendarDay(
                day=day.day,
                booked_room_ids=sorted(day.booked_room_ids),
                buyout=day.buyout,
                blackout=day.blackout,
                available_for_buyout=day.available_for_buyout,
                selectable=selectable[day.day],
            )
            for day in days.values()
        ]
    except BookingRejected as exc:
        raise_for_rejection(exc)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("calendar_lookup_failed", property=property, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/bookings/{property}/quote")
def quote(
    property: str,
    payload: QuotePayload,
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """
    Price a prospective stay.

    Returns:
        dict: Total, per-night breakdown and billing details

    Raises:
        HTTPException: 422 with the failure reason if the stay cannot be priced
    """
    prop = parse_property_or_404(property)
    try:
        result = booking_service.compute_quote(
            engine,
            prop,
            payload.checkin,
            payload.checkout,
            payload.mode,
            payload.guests,
            payload.children,
            payload.room_ids,
        )
        if "error" in result:
            reason = FailureReason(result["reason"])
            raise HTTPException(
                status_code=FAILURE_STATUS[reason],
                detail=failure_detail(reason, result["error"]),
            )
        return result
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("quote_failed", property=property, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/bookings/{property}/validate")
def validate(
    property: str,
    payload: ValidatePayload,
    engine: Engine = Depends(get_db_engine),
    x_member_id: Optional[str] = Header(None),
    x_membership_tier: Optional[str] = Header(None),
) -> dict[str, Any]:
    """
    Advisory validation of a stay for the requesting member.

    Always returns 200; ``valid`` is False when any rule is violated.

    Returns:
        dict: ``{"valid": bool, "violations": {rule: message}}``
    """
    prop = parse_property_or_404(property)
    member = member_from_headers_or_401(x_member_id, x_membership_tier)
    try:
        violations = booking_service.validate_stay(
            engine,
            prop,
            payload.checkin,
            payload.checkout,
            payload.mode,
            member,
            room_ids=payload.room_ids,
            guests=payload.guests,
            children=payload.children,
        )
        return {"valid": not violations, "violations": violations}
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("stay_validation_failed", property=property, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post(
    "/bookings/{property}",
    status_code=status.HTTP_201_CREATED,
    response_model=BookingResponse,
)
def create_booking(
    property: str,
    payload: BookingCreatePayload,
    engine: Engine = Depends(get_db_engine),
    locker: BookingLocker = Depends(get_booking_locker),
    x_member_id: Optional[str] = Header(None),
    x_membership_tier: Optional[str] = Header(None),
    idempotency_key: Optional[str] = Header(None),
) -> BookingResponse:
    """
    Create a booking (a ``hold`` pending payment unless payment is confirmed).

    Args:
        property: Property name
        payload: Stay details
        engine: Database engine (injected)
        x_member_id: Requesting member id (set by the auth proxy)
        x_membership_tier: Member's tier (set by the auth proxy)
        idempotency_key: Client nonce; resubmitting the same request with it
            returns the original booking instead of creating another

    Returns:
        BookingResponse: The created (or replayed) booking
    """
    prop = parse_property_or_404(property)
    member = member_from_headers_or_401(x_member_id, x_membership_tier)
    try:
        key = (
            make_idempotency_key(
                member.id,
                prop.value,
                payload.checkin,
                payload.checkout,
                payload.mode,
                payload.room_ids,
                idempotency_key,
            )
            if idempotency_key
            else None
        )
        outcome = booking_service.create_booking(
            engine,
            member,
            prop,
            payload.checkin,
            payload.checkout,
            payload.mode,
            payload.guests,
            payload.children,
            room_ids=payload.room_ids,
            payment_confirmed=payload.payment_confirmed,
            idempotency_key=key,
            locker=locker,
        )
        return booking_response_or_raise(outcome)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("booking_creation_failed", property=property, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/bookings/id/{booking_id}/confirm", response_model=BookingResponse)
def confirm_booking(
    booking_id: str,
    engine: Engine = Depends(get_db_engine),
    locker: BookingLocker = Depends(get_booking_locker),
) -> BookingResponse:
    """
    Payment collaborator callback: turn a hold into a complete booking.
    """
    try:
        outcome = booking_service.confirm_booking(engine, booking_id, locker=locker)
        return booking_response_or_raise(outcome)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("booking_confirm_failed", booking_id=booking_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/bookings/id/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    engine: Engine = Depends(get_db_engine),
    locker: BookingLocker = Depends(get_booking_locker),
) -> BookingResponse:
    """
    Cancel a booking and release its rooms or buyout nights.
    """
    try:
        outcome = booking_service.cancel_booking(engine, booking_id, locker=locker)
        return booking_response_or_raise(outcome)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("booking_cancel_failed", booking_id=booking_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
