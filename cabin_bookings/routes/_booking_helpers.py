"""
Internal helper functions for booking route handlers.

This module contains request parsing and outcome-to-HTTP mapping so the main
route handlers stay short.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, status

from cabin_bookings.bookings.errors import BookingOutcome, BookingRejected, FailureReason
from cabin_bookings.bookings.types import Member, MembershipTier, Property
from cabin_bookings.schemas.bookings import BookingResponse

FAILURE_STATUS: dict[FailureReason, int] = {
    FailureReason.INVALID_PARAMETERS: status.HTTP_422_UNPROCESSABLE_ENTITY,
    FailureReason.RULE_VIOLATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    FailureReason.PRICING_UNAVAILABLE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    FailureReason.INSUFFICIENT_CAPACITY: status.HTTP_422_UNPROCESSABLE_ENTITY,
    FailureReason.ROOM_UNAVAILABLE: status.HTTP_409_CONFLICT,
    FailureReason.ROOMS_ALREADY_BOOKED: status.HTTP_409_CONFLICT,
    FailureReason.PROPERTY_UNAVAILABLE: status.HTTP_409_CONFLICT,
    FailureReason.STALE_INVENTORY: status.HTTP_409_CONFLICT,
    FailureReason.INVALID_STATUS: status.HTTP_409_CONFLICT,
    FailureReason.QUOTA_EXCEEDED: status.HTTP_403_FORBIDDEN,
    FailureReason.LOCK_TIMEOUT: status.HTTP_503_SERVICE_UNAVAILABLE,
    FailureReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def parse_property_or_404(property: str) -> Property:
    """
    Resolve a path segment to a Property, raise 404 if unknown.

    Args:
        property: Property name from the URL

    Raises:
        HTTPException: 404 if the property does not exist
    """
    try:
        return Property(property)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Property {property} not found",
        )


def member_from_headers_or_401(
    member_id: Optional[str], tier: Optional[str]
) -> Member:
    """
    Build the requesting member from the identity headers set by the auth proxy.

    Args:
        member_id: X-Member-Id header
        tier: X-Membership-Tier header (defaults to none)

    Raises:
        HTTPException: 401 if no member id, 422 if the tier is unknown
    """
    if not member_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Member-Id header is required",
        )
    try:
        membership = MembershipTier(tier.lower()) if tier else MembershipTier.NONE
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown membership tier {tier}",
        )
    return Member(id=member_id, tier=membership)


def failure_detail(
    reason: FailureReason, message: Optional[str], violations: Optional[dict[str, str]] = None
) -> dict[str, Any]:
    return {"reason": reason.value, "message": message, "violations": violations or {}}


def raise_for_rejection(exc: BookingRejected) -> None:
    raise HTTPException(
        status_code=FAILURE_STATUS[exc.reason],
        detail=failure_detail(exc.reason, exc.message, exc.violations),
    )


def booking_response_or_raise(outcome: BookingOutcome) -> BookingResponse:
    """
    Convert a locker outcome to a response body, raise the mapped HTTP error on failure.

    Args:
        outcome: Result of a locker operation

    Returns:
        BookingResponse: Booking fields for a successful outcome

    Raises:
        HTTPException: Status from FAILURE_STATUS with reason/message/violations detail
    """
    if not outcome.ok:
        raise HTTPException(
            status_code=FAILURE_STATUS[outcome.reason],
            detail=failure_detail(outcome.reason, outcome.message, outcome.violations),
        )
    return BookingResponse(**outcome.booking, replayed=outcome.replayed)
