"""
Failure taxonomy for the booking engine.

Business failures are returned as a ``BookingOutcome`` carrying a
``FailureReason`` so callers can branch on them; exceptions are reserved for
rolling back a transaction (``BookingRejected``) and for configuration data
that is genuinely broken (``PricingConfigurationError``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class FailureReason(str, Enum):
    INVALID_PARAMETERS = "invalid_parameters"
    ROOM_UNAVAILABLE = "room_unavailable"
    ROOMS_ALREADY_BOOKED = "rooms_already_booked"
    PROPERTY_UNAVAILABLE = "property_unavailable"
    INSUFFICIENT_CAPACITY = "insufficient_capacity"
    STALE_INVENTORY = "stale_inventory"
    QUOTA_EXCEEDED = "quota_exceeded"
    PRICING_UNAVAILABLE = "pricing_unavailable"
    RULE_VIOLATION = "rule_violation"
    # Infrastructure, not a business rule: the caller may simply retry
    LOCK_TIMEOUT = "lock_timeout"
    # Confirm / cancel of an existing booking
    NOT_FOUND = "not_found"
    INVALID_STATUS = "invalid_status"


class BookingError(Exception):
    """Base class for booking engine errors."""


class BookingRejected(BookingError):
    """
    A booking request failed a check.

    Raised inside the locker transaction so the whole unit of work rolls back,
    then converted into a failed ``BookingOutcome``.

    Args:
        reason: Named failure reason
        message: Human readable explanation
        violations: Stay rule violations keyed by rule name, if any
    """

    def __init__(
        self,
        reason: FailureReason,
        message: str,
        violations: Optional[dict[str, str]] = None,
    ):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.violations = violations or {}


class PricingUnavailable(BookingError):
    """No pricing rule or configured default resolves for a night of the stay."""


class PricingConfigurationError(BookingError):
    """Two pricing rules match at the same specificity; the rule table is inconsistent."""


@dataclass
class BookingOutcome:
    """
    Tagged result of a locker operation.

    ``booking`` is populated on success. ``replayed`` is True when an
    idempotent retry resolved to a booking created by an earlier request.
    """

    ok: bool
    booking: Optional[dict[str, Any]] = None
    reason: Optional[FailureReason] = None
    message: Optional[str] = None
    violations: dict[str, str] = field(default_factory=dict)
    replayed: bool = False

    @classmethod
    def success(cls, booking: dict[str, Any], replayed: bool = False) -> "BookingOutcome":
        return cls(ok=True, booking=booking, replayed=replayed)

    @classmethod
    def failure(
        cls,
        reason: FailureReason,
        message: str,
        violations: Optional[dict[str, str]] = None,
    ) -> "BookingOutcome":
        return cls(ok=False, reason=reason, message=message, violations=violations or {})

    @classmethod
    def from_rejection(cls, exc: BookingRejected) -> "BookingOutcome":
        return cls.failure(exc.reason, exc.message, exc.violations)
