"""
Transactional commit boundary for bookings.

``BookingLocker`` is the only code that changes inventory. Each operation runs
in one ``engine.begin()`` transaction:

1. make sure a ``property_inventory`` row exists for every touched night and
   lock those rows ``SELECT ... FOR UPDATE`` with a bounded lock wait
2. load the property catalog, reject unknown rooms, then create and lock a
   ``room_inventory`` row per requested room-night in (room, day) order
3. re-check blackouts, inventory flags, member quota, stay rules, capacity and
   pricing against the locked state
4. insert the booking and flip the inventory flags for all requested rooms,
   or raise and roll everything back

Every booking touching a property-night locks the same property row, so two
requests with intersecting resources serialize and the second one sees the
first one's flags. The inventory primary keys and the conditional flag
updates are a second line of defence; if they ever trip the request fails as
``stale_inventory``.

Example:
    >>> locker = BookingLocker(engine)
    >>> outcome = locker.create_booking(request, idempotency_key=key)
    >>> if outcome.ok:
    ...     locker.confirm_booking(outcome.booking["id"])
"""

from __future__ import annotations

import hashlib
import time
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Iterator, Optional

import structlog
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, IntegrityError

from cabin_bookings.bookings.availability import blackout_overlaps
from cabin_bookings.bookings.context import EngineSettings, load_stay_context, selected_rooms
from cabin_bookings.bookings.errors import (
    BookingOutcome,
    BookingRejected,
    FailureReason,
    PricingUnavailable,
)
from cabin_bookings.bookings.stay_rules import request_parameter_error, validate
from cabin_bookings.bookings.types import BookingMode, BookingStatus, Property, StayRequest
from cabin_bookings.db.engine import (
    LOCK_TIMEOUT_OPTION,
    apply_lock_timeout,
    is_lock_timeout,
    is_serialization_conflict,
)
from cabin_bookings.db.readers.bookings import (
    get_booking,
    get_booking_by_idempotency_key,
    get_expired_hold_ids,
)
from cabin_bookings.db.readers.catalog import Catalog, load_catalog
from cabin_bookings.db.writers.bookings import insert_booking, update_booking_status
from cabin_bookings.db.writers.inventory import (
    confirm_booking_days,
    ensure_property_days,
    ensure_room_days,
    lock_property_days,
    lock_room_days,
    occupied_room_days,
    release_booking_days,
    reserve_property_days,
    reserve_room_days,
)
from cabin_bookings.metrics import (
    booking_attempts,
    booking_lock_wait,
    booking_transitions,
    holds_expired,
)
from cabin_bookings.utils.datetime import ensure_utc, iter_nights, utc_now

logger = structlog.get_logger(__name__)

# Violation name -> failure reason, first match wins
VIOLATION_REASONS: tuple[tuple[str, FailureReason], ...] = (
    ("availability", FailureReason.PROPERTY_UNAVAILABLE),
    ("invalid_dates", FailureReason.INVALID_PARAMETERS),
    ("active_booking", FailureReason.QUOTA_EXCEEDED),
    ("capacity", FailureReason.INSUFFICIENT_CAPACITY),
)


def reason_for_violations(violations: dict[str, str]) -> FailureReason:
    for name, reason in VIOLATION_REASONS:
        if name in violations:
            return reason
    return FailureReason.RULE_VIOLATION


def make_idempotency_key(
    member_id: str,
    property: str,
    checkin: date,
    checkout: date,
    mode: BookingMode,
    room_ids: Iterable[int],
    nonce: str,
) -> str:
    """
    Derive a request-scoped idempotency key.

    The key binds the client's submission nonce to the request content, so a
    nonce reused for a different stay produces a different key. Room order
    does not matter.
    """
    parts = [
        member_id,
        Property(property).value,
        checkin.isoformat(),
        checkout.isoformat(),
        BookingMode(mode).value,
        ",".join(str(r) for r in sorted(room_ids)),
        nonce,
    ]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


def reject_unknown_rooms(catalog: Catalog, room_ids: Iterable[int]) -> None:
    # Checked before room inventory rows are created for the ids
    rooms = catalog.rooms_by_id
    unknown = [r for r in room_ids if r not in rooms or not rooms[r].is_active]
    if unknown:
        raise BookingRejected(
            FailureReason.INVALID_PARAMETERS, f"Unknown or inactive rooms: {unknown}"
        )


def make_reference() -> str:
    return f"BK-{uuid.uuid4().hex[:10].upper()}"


class BookingLocker:
    """
    Authoritative create / confirm / release of bookings.

    Args:
        engine: SQLAlchemy engine
        settings: Pricing defaults and stay limits
        hold_duration: How long an unpaid hold keeps its inventory
        lock_timeout: Maximum seconds to wait for inventory row locks
        idempotency_window: How long a repeated idempotency key replays its booking
        clock: Returns the current UTC datetime; today's date derives from it
    """

    def __init__(
        self,
        engine: Engine,
        settings: Optional[EngineSettings] = None,
        hold_duration: Optional[timedelta] = None,
        lock_timeout: Optional[float] = None,
        idempotency_window: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        from cabin_bookings import config

        self.engine = engine
        self.settings = settings or EngineSettings.from_config()
        self.hold_duration = hold_duration or timedelta(minutes=config.HOLD_DURATION_MINUTES)
        self.lock_timeout = lock_timeout if lock_timeout is not None else config.LOCK_TIMEOUT_SECONDS
        self.idempotency_window = idempotency_window or timedelta(
            seconds=config.IDEMPOTENCY_WINDOW_SECONDS
        )
        self.clock = clock

    @contextmanager
    def _transaction(self) -> Iterator[Connection]:
        bounded = self.engine.execution_options(**{LOCK_TIMEOUT_OPTION: self.lock_timeout})
        with bounded.begin() as conn:
            apply_lock_timeout(conn, self.lock_timeout)
            yield conn

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_booking(
        self,
        request: StayRequest,
        payment_confirmed: bool = False,
        idempotency_key: Optional[str] = None,
    ) -> BookingOutcome:
        """
        Reserve the requested rooms (or the whole property) for the stay.

        Args:
            request: Proposed stay including the requesting member
            payment_confirmed: Create the booking as ``complete`` instead of ``hold``
            idempotency_key: Optional key; a retry with the same key replays the booking

        Returns:
            BookingOutcome: ``ok`` with the booking, or a failure reason
        """
        property = Property(request.property).value
        mode = BookingMode(request.mode)
        log = logger.bind(
            property=property,
            mode=mode.value,
            user_id=request.member.id if request.member else None,
            checkin=request.checkin.isoformat() if request.checkin else None,
            checkout=request.checkout.isoformat() if request.checkout else None,
        )

        error = request_parameter_error(request)
        if error is None and request.member is None:
            error = "A member is required to book"
        if error is not None:
            return self._record(
                BookingOutcome.failure(FailureReason.INVALID_PARAMETERS, error), property, mode, log
            )

        if idempotency_key:
            replay = self._replay(idempotency_key, request.member.id, log)
            if replay is not None:
                return self._record(replay, property, mode, log)

        days = list(iter_nights(request.checkin, request.checkout))
        now = self.clock()

        try:
            started = time.monotonic()
            with self._transaction() as conn:
                ensure_property_days(conn, property, days)
                property_rows = lock_property_days(conn, property, days)
                catalog = load_catalog(conn, property)
                room_rows: list[Any] = []
                if mode == BookingMode.ROOM:
                    reject_unknown_rooms(catalog, request.room_ids)
                    ensure_room_days(conn, property, request.room_ids, days)
                    room_rows = lock_room_days(conn, request.room_ids, days)
                booking_lock_wait.labels(property=property, mode=mode.value).observe(
                    time.monotonic() - started
                )

                booking = self._reserve(
                    conn,
                    request,
                    days,
                    catalog,
                    property_rows,
                    room_rows,
                    now,
                    payment_confirmed,
                    idempotency_key,
                )
        except BookingRejected as exc:
            # A concurrent retry with the same key may have won the race
            replay = self._replay(idempotency_key, request.member.id, log) if idempotency_key else None
            if replay is not None:
                return self._record(replay, property, mode, log)
            outcome = BookingOutcome.from_rejection(exc)
        except IntegrityError as exc:
            replay = self._replay(idempotency_key, request.member.id, log) if idempotency_key else None
            if replay is not None:
                return self._record(replay, property, mode, log)
            log.warning("booking_integrity_conflict", error=str(exc.orig))
            outcome = BookingOutcome.failure(
                FailureReason.STALE_INVENTORY,
                "Availability changed while booking; please refresh and try again",
            )
        except DBAPIError as exc:
            if is_lock_timeout(exc):
                outcome = BookingOutcome.failure(
                    FailureReason.LOCK_TIMEOUT,
                    "The booking system is busy; please try again",
                )
            elif is_serialization_conflict(exc):
                outcome = BookingOutcome.failure(
                    FailureReason.STALE_INVENTORY,
                    "Availability changed while booking; please refresh and try again",
                )
            else:
                raise
        else:
            outcome = BookingOutcome.success(booking)
            log.info(
                "booking_created",
                booking_id=booking["id"],
                reference=booking["reference"],
                status=booking["status"],
                room_ids=booking["room_ids"],
                total_price=str(booking["total_price"]),
            )

        return self._record(outcome, property, mode, log)

    def _reserve(
        self,
        conn: Connection,
        request: StayRequest,
        days: list[date],
        catalog: Catalog,
        property_rows: list[Any],
        room_rows: list[Any],
        now: datetime,
        payment_confirmed: bool,
        idempotency_key: Optional[str],
    ) -> dict[str, Any]:
        property = Property(request.property).value
        mode = BookingMode(request.mode)

        if any(blackout_overlaps(b, request.checkin, request.checkout) for b in catalog.blackouts):
            raise BookingRejected(
                FailureReason.PROPERTY_UNAVAILABLE
                if mode == BookingMode.BUYOUT
                else FailureReason.ROOM_UNAVAILABLE,
                "The property is closed for some of the selected dates",
            )

        if any(row.buyout_held or row.buyout_booked for row in property_rows):
            raise BookingRejected(
                FailureReason.PROPERTY_UNAVAILABLE,
                "The property is reserved for a full buyout on the selected dates",
            )

        if mode == BookingMode.BUYOUT:
            if occupied_room_days(conn, property, days):
                raise BookingRejected(
                    FailureReason.ROOMS_ALREADY_BOOKED,
                    "Rooms are already booked on the selected dates",
                )
        else:
            taken = sorted({row.room_id for row in room_rows if row.held or row.booked})
            if taken:
                raise BookingRejected(
                    FailureReason.ROOM_UNAVAILABLE,
                    f"Rooms {taken} are no longer available for the selected dates",
                )

        context = load_stay_context(conn, catalog, request, now.date(), self.settings)
        violations = validate(request, context)
        if violations:
            raise BookingRejected(
                reason_for_violations(violations), "; ".join(violations.values()), violations
            )

        try:
            quote = context.resolver.compute_price(
                property,
                mode,
                request.checkin,
                request.checkout,
                request.guests,
                request.children,
                selected_rooms(catalog, request),
                context.calendar,
            )
        except PricingUnavailable as exc:
            raise BookingRejected(FailureReason.PRICING_UNAVAILABLE, str(exc))

        booking_id = str(uuid.uuid4())
        status = BookingStatus.COMPLETE if payment_confirmed else BookingStatus.HOLD
        room_ids = list(request.room_ids) if mode == BookingMode.ROOM else []

        insert_booking(
            conn,
            {
                "id": booking_id,
                "reference": make_reference(),
                "user_id": request.member.id,
                "property": property,
                "checkin_date": request.checkin,
                "checkout_date": request.checkout,
                "booking_mode": mode.value,
                "guests_count": request.guests,
                "children_count": request.children,
                "status": status.value,
                "hold_expires_at": None if payment_confirmed else now + self.hold_duration,
                "total_price": quote.total,
                "pricing_items": quote.as_dict(),
                "idempotency_key": idempotency_key,
            },
            room_ids,
        )

        if mode == BookingMode.BUYOUT:
            reserved = reserve_property_days(conn, property, days, booking_id, payment_confirmed)
            expected = len(days)
        else:
            reserved = reserve_room_days(conn, room_ids, days, booking_id, payment_confirmed)
            expected = len(days) * len(room_ids)

        if reserved != expected:
            raise BookingRejected(
                FailureReason.STALE_INVENTORY,
                "Availability changed while booking; please refresh and try again",
            )

        return get_booking(conn, booking_id)

    def _replay(
        self, idempotency_key: str, member_id: str, log: Any
    ) -> Optional[BookingOutcome]:
        with self.engine.connect() as conn:
            existing = get_booking_by_idempotency_key(conn, idempotency_key)
        if existing is None:
            return None

        created_at = ensure_utc(existing["created_at"])
        if existing["user_id"] != member_id or (
            created_at is not None and created_at < self.clock() - self.idempotency_window
        ):
            return BookingOutcome.failure(
                FailureReason.INVALID_PARAMETERS, "Idempotency key has already been used"
            )

        log.info("booking_replayed", booking_id=existing["id"], reference=existing["reference"])
        return BookingOutcome.success(existing, replayed=True)

    def _record(
        self, outcome: BookingOutcome, property: str, mode: BookingMode, log: Any
    ) -> BookingOutcome:
        if outcome.ok:
            label = "replayed" if outcome.replayed else "success"
        else:
            label = outcome.reason.value
            if outcome.reason == FailureReason.LOCK_TIMEOUT:
                log.warning("booking_lock_timeout", lock_timeout=self.lock_timeout)
            else:
                log.info(
                    "booking_rejected",
                    reason=label,
                    message=outcome.message,
                    violations=outcome.violations or None,
                )
        booking_attempts.labels(property=property, mode=mode.value, outcome=label).inc()
        return outcome

    # ------------------------------------------------------------------
    # Confirm / release
    # ------------------------------------------------------------------

    def _locked_booking(self, conn: Connection, booking_id: str) -> dict[str, Any]:
        booking = get_booking(conn, booking_id, for_update=True)
        if booking is None:
            raise BookingRejected(FailureReason.NOT_FOUND, f"Booking {booking_id} not found")
        lock_property_days(
            conn,
            booking["property"],
            list(iter_nights(booking["checkin_date"], booking["checkout_date"])),
        )
        return booking

    def _run_transition(
        self, booking_id: str, step: Callable[[Connection], dict[str, Any]]
    ) -> BookingOutcome:
        try:
            with self._transaction() as conn:
                booking = step(conn)
        except BookingRejected as exc:
            logger.info(
                "booking_transition_rejected",
                booking_id=booking_id,
                reason=exc.reason.value,
                message=exc.message,
            )
            return BookingOutcome.from_rejection(exc)
        except DBAPIError as exc:
            if not is_lock_timeout(exc):
                raise
            logger.warning("booking_lock_timeout", booking_id=booking_id)
            return BookingOutcome.failure(
                FailureReason.LOCK_TIMEOUT, "The booking system is busy; please try again"
            )
        return BookingOutcome.success(booking)

    def confirm_booking(self, booking_id: str) -> BookingOutcome:
        """
        Mark a held booking as paid: ``hold -> complete``, held nights become booked.

        Confirming an already complete booking is a no-op success.

        Args:
            booking_id: Booking to confirm

        Returns:
            BookingOutcome: The updated booking, or not_found / invalid_status
        """

        def step(conn: Connection) -> dict[str, Any]:
            booking = self._locked_booking(conn, booking_id)
            if booking["status"] == BookingStatus.COMPLETE.value:
                return booking
            if booking["status"] != BookingStatus.HOLD.value:
                raise BookingRejected(
                    FailureReason.INVALID_STATUS,
                    f"Booking {booking_id} is {booking['status']} and cannot be confirmed",
                )
            confirm_booking_days(conn, booking_id)
            update_booking_status(conn, booking_id, BookingStatus.COMPLETE.value)
            booking_transitions.labels(property=booking["property"], transition="confirmed").inc()
            logger.info("booking_confirmed", booking_id=booking_id, property=booking["property"])
            return get_booking(conn, booking_id)

        return self._run_transition(booking_id, step)

    def release_booking(
        self, booking_id: str, expired_before: Optional[datetime] = None
    ) -> BookingOutcome:
        """
        Cancel a booking and free exactly the inventory it holds.

        Args:
            booking_id: Booking to cancel
            expired_before: Only release a ``hold`` whose expiry is before this
                instant (used by the expiry sweep so a just-paid hold survives)

        Returns:
            BookingOutcome: The cancelled booking, or not_found / invalid_status
        """
        transition = "expired" if expired_before is not None else "cancelled"

        def step(conn: Connection) -> dict[str, Any]:
            booking = self._locked_booking(conn, booking_id)
            if booking["status"] == BookingStatus.CANCELLED.value:
                raise BookingRejected(
                    FailureReason.INVALID_STATUS, f"Booking {booking_id} is already cancelled"
                )
            if expired_before is not None:
                expires_at = ensure_utc(booking["hold_expires_at"])
                if (
                    booking["status"] != BookingStatus.HOLD.value
                    or expires_at is None
                    or expires_at >= expired_before
                ):
                    raise BookingRejected(
                        FailureReason.INVALID_STATUS, f"Booking {booking_id} is no longer an expired hold"
                    )

            released = release_booking_days(conn, booking_id)
            update_booking_status(conn, booking_id, BookingStatus.CANCELLED.value)
            booking_transitions.labels(property=booking["property"], transition=transition).inc()
            logger.info(
                "booking_released",
                booking_id=booking_id,
                property=booking["property"],
                transition=transition,
                released_nights=released,
            )
            return get_booking(conn, booking_id)

        return self._run_transition(booking_id, step)

    def expire_holds(self, now: Optional[datetime] = None) -> list[str]:
        """
        Release every ``hold`` whose ``hold_expires_at`` has passed.

        Args:
            now: Reference instant (defaults to the locker clock)

        Returns:
            list[str]: Ids of the bookings that were released
        """
        now = now or self.clock()
        with self.engine.connect() as conn:
            candidates = get_expired_hold_ids(conn, now)

        released: list[str] = []
        for booking_id in candidates:
            outcome = self.release_booking(booking_id, expired_before=now)
            if outcome.ok:
                released.append(booking_id)
                holds_expired.labels(property=outcome.booking["property"]).inc()

        logger.info("holds_expired", candidates=len(candidates), released=len(released))
        return released
