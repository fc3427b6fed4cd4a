"""
Pricing rule resolution and stay pricing.

Rules are resolved most-specific first:

1. room-specific (``room_id`` matches)
2. category-specific (``room_id`` NULL, ``room_category_id`` matches)
3. property-wide (both NULL)

Within each tier a rule bound to the night's season wins over a season-less
rule. Two rules matching at the same tier and season specificity means the
rule table is inconsistent and raises ``PricingConfigurationError``. If no
tier resolves, the injected ``PricingDefaults`` apply; a ``None`` default
means there is no fallback and the night cannot be priced.

Stays are priced night by night against the season covering each night, so a
stay crossing a season boundary picks up both seasons' rates.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterator, Optional, Sequence

import structlog

from cabin_bookings.bookings.errors import PricingConfigurationError, PricingUnavailable
from cabin_bookings.bookings.season_calendar import SeasonCalendar
from cabin_bookings.bookings.types import BookingMode, RateBasis
from cabin_bookings.utils.datetime import iter_nights

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PricingDefaults:
    """Fallback per-person nightly prices used when no rule resolves."""

    adult_amount: Optional[Decimal] = None
    children_amount: Optional[Decimal] = None

    @classmethod
    def from_config(cls) -> "PricingDefaults":
        from cabin_bookings.config import DEFAULT_ADULT_PRICE, DEFAULT_CHILD_PRICE

        return cls(adult_amount=DEFAULT_ADULT_PRICE, children_amount=DEFAULT_CHILD_PRICE)


@dataclass(frozen=True)
class NightPrice:
    night: date
    season_id: Optional[int]
    adult_rate: Decimal
    children_rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class Quote:
    """
    Priced stay.

    ``using_minimum_pricing`` is set when room minimum occupancy made the
    billed adult count exceed the guests actually staying.
    """

    mode: BookingMode
    nights: int
    guests: int
    children: int
    billable_adults: int
    using_minimum_pricing: bool
    total: Decimal
    currency: str
    breakdown: tuple[NightPrice, ...]

    def as_dict(self) -> dict[str, Any]:
        """JSON-safe representation (amounts as strings)."""
        return {
            "mode": self.mode.value,
            "nights": self.nights,
            "guests": self.guests,
            "children": self.children,
            "billable_adults": self.billable_adults,
            "using_minimum_pricing": self.using_minimum_pricing,
            "total": str(self.total),
            "currency": self.currency,
            "breakdown": [
                {
                    "night": n.night.isoformat(),
                    "season_id": n.season_id,
                    "adult_rate": str(n.adult_rate),
                    "children_rate": str(n.children_rate),
                    "amount": str(n.amount),
                }
                for n in self.breakdown
            ],
        }


def billable_adults(guests: int, rooms: Sequence[Any]) -> int:
    """
    Number of adults billed for a room-mode stay.

    The selected rooms are priced as one composite room: the billed count is
    the larger of the guests staying and the sum of each room's
    ``min_billable_occupancy``. Billed occupancy never undercounts the guests,
    and adding a room never lowers it.

    Example:
        >>> billable_adults(1, [room_with_min_2])
        2
        >>> billable_adults(5, [room_with_min_2, room_with_min_1])
        5
    """
    floor = sum(max(room.min_billable_occupancy or 1, 1) for room in rooms)
    return max(guests, floor)


class PricingResolver:
    """
    Resolve pricing rules from an in-memory rule list.

    Args:
        rules: PricingRule rows (any objects with the rule attributes)
        defaults: Fallback prices for per-person room pricing
        currency: Currency code reported on quotes
    """

    def __init__(
        self,
        rules: Sequence[Any],
        defaults: Optional[PricingDefaults] = None,
        currency: str = "USD",
    ):
        self.rules = list(rules)
        self.defaults = defaults or PricingDefaults()
        self.currency = currency

    def _tiers(
        self, room_id: Optional[int], category_id: Optional[int]
    ) -> Iterator[tuple[str, Callable[[Any], bool]]]:
        if room_id is not None:
            yield "room", lambda r: r.room_id == room_id
        if category_id is not None:
            yield "category", lambda r: r.room_id is None and r.room_category_id == category_id
        yield "property", lambda r: r.room_id is None and r.room_category_id is None

    def resolve(
        self,
        property: str,
        season_id: Optional[int],
        room_id: Optional[int],
        category_id: Optional[int],
        mode: BookingMode,
        basis: RateBasis,
        children: bool = False,
    ) -> Optional[Any]:
        """
        Find the most specific rule, or None when no tier matches.

        Args:
            property: Property the stay is at
            season_id: Season of the night being priced (None if uncovered)
            room_id: Room being priced, if any
            category_id: Category of that room, if any
            mode: Booking mode
            basis: Rate basis
            children: Only consider rules carrying a ``children_amount``

        Raises:
            PricingConfigurationError: More than one rule at the winning specificity
        """
        candidates = [
            r
            for r in self.rules
            if r.property == property
            and r.booking_mode == mode
            and r.rate_basis == basis
            and (r.season_id is None or r.season_id == season_id)
            and (not children or r.children_amount is not None)
        ]

        for tier, matches in self._tiers(room_id, category_id):
            in_tier = [r for r in candidates if matches(r)]
            if not in_tier:
                continue
            seasonal = [r for r in in_tier if r.season_id is not None]
            chosen = seasonal or [r for r in in_tier if r.season_id is None]
            if len(chosen) > 1:
                logger.critical(
                    "pricing_rules_ambiguous",
                    property=property,
                    tier=tier,
                    season_id=season_id,
                    room_id=room_id,
                    category_id=category_id,
                    booking_mode=BookingMode(mode).value,
                    rule_ids=[r.id for r in chosen],
                )
                raise PricingConfigurationError(
                    f"{len(chosen)} pricing rules match at {tier} specificity "
                    f"(rule ids {[r.id for r in chosen]})"
                )
            return chosen[0]

        return None

    def adult_price_per_night(
        self, property: str, season_id: Optional[int], room: Any
    ) -> Decimal:
        rule = self.resolve(
            property,
            season_id,
            room.id,
            room.room_category_id,
            BookingMode.ROOM,
            RateBasis.PER_PERSON_PER_NIGHT,
        )
        if rule is not None:
            return Decimal(rule.amount)
        if self.defaults.adult_amount is None:
            raise PricingUnavailable(
                f"No adult price for room {room.id} in season {season_id}"
            )
        return self.defaults.adult_amount

    def children_price_per_night(
        self, property: str, season_id: Optional[int], room: Any
    ) -> Decimal:
        rule = self.resolve(
            property,
            season_id,
            room.id,
            room.room_category_id,
            BookingMode.ROOM,
            RateBasis.PER_PERSON_PER_NIGHT,
            children=True,
        )
        if rule is not None:
            return Decimal(rule.children_amount)
        if self.defaults.children_amount is None:
            raise PricingUnavailable(
                f"No children price for room {room.id} in season {season_id}"
            )
        return self.defaults.children_amount

    def buyout_price_per_night(self, property: str, season_id: Optional[int]) -> Decimal:
        rule = self.resolve(
            property, season_id, None, None, BookingMode.BUYOUT, RateBasis.BUYOUT_FIXED
        )
        if rule is None:
            raise PricingUnavailable(f"Buyout is not priced for season {season_id}")
        return Decimal(rule.amount)

    def compute_price(
        self,
        property: str,
        mode: BookingMode,
        checkin: date,
        checkout: date,
        guests: int,
        children: int,
        rooms: Sequence[Any],
        calendar: SeasonCalendar,
    ) -> Quote:
        """
        Price a stay night by night.

        Room mode bills ``billable_adults(guests, rooms)`` adults at the
        highest adult rate among the selected rooms, plus children at the
        highest children rate. Buyout mode bills the flat nightly buyout rate
        regardless of guest count.

        Args:
            property: Property of the stay
            mode: Booking mode
            checkin: First night
            checkout: Departure day (not charged)
            guests: Adult guests
            children: Children
            rooms: Selected room rows (ignored for buyout)
            calendar: Season calendar of the property

        Returns:
            Quote: Total and per-night breakdown

        Raises:
            PricingUnavailable: Some night cannot be priced
            PricingConfigurationError: Ambiguous rules
        """
        if mode == BookingMode.ROOM and not rooms:
            raise PricingUnavailable("Room pricing needs at least one room")

        billed = billable_adults(guests, rooms) if mode == BookingMode.ROOM else guests
        breakdown: list[NightPrice] = []

        for night in iter_nights(checkin, checkout):
            season = calendar.season_for(night)
            season_id = season.id if season is not None else None

            if mode == BookingMode.BUYOUT:
                rate = self.buyout_price_per_night(property, season_id)
                breakdown.append(NightPrice(night, season_id, rate, ZERO, rate))
                continue

            adult_rate = max(self.adult_price_per_night(property, season_id, r) for r in rooms)
            child_rate = (
                max(self.children_price_per_night(property, season_id, r) for r in rooms)
                if children
                else ZERO
            )
            amount = (adult_rate * billed + child_rate * children).quantize(CENTS)
            breakdown.append(NightPrice(night, season_id, adult_rate, child_rate, amount))

        total = sum((n.amount for n in breakdown), ZERO).quantize(CENTS)

        return Quote(
            mode=mode,
            nights=len(breakdown),
            guests=guests,
            children=children,
            billable_adults=billed,
            using_minimum_pricing=mode == BookingMode.ROOM and billed > guests,
            total=total,
            currency=self.currency,
            breakdown=tuple(breakdown),
        )
