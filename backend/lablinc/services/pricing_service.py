"""Booking price calculator.

A single pure function, :func:`calculate_quote`, turns an instrument rate card
and a requested time window into a chargeable quote. The booking form in
``lablinc.client`` uses it for the live estimate and the booking API uses it
to compute the authoritative price that gets persisted, so both always agree.

Tier selection (first match wins):

1. 30 days or more with a monthly rate: ``ceil(days / 30)`` monthly units.
2. 7 days or more with a weekly rate: ``ceil(days / 7)`` weekly units.
3. 1 day or more with a daily rate: ``ceil(days)`` daily units.
4. an hourly rate: ``ceil(hours)`` hourly units.
5. a daily rate for sub-day windows without an hourly rate: one daily unit.

Partial units are always billed as whole units. Money is rounded half-up to
whole currency units at every step.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, Protocol

SECURITY_FEE_RATE = Decimal("0.10")
TAX_RATE = Decimal("0.18")

_WHOLE = Decimal("1")
_DURATION_PLACES = Decimal("0.01")
_HOUR = timedelta(hours=1)
_DAY = timedelta(days=1)
_WEEK = timedelta(days=7)
_MONTH = timedelta(days=30)


class RateType(str, enum.Enum):
    """Pricing tiers an instrument may offer."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class QuoteFailure(str, enum.Enum):
    """Reasons a window cannot be priced."""

    INVALID_WINDOW = "invalid_window"
    NO_APPLICABLE_TIER = "no_applicable_tier"
    # Ceiling rounding charges at least one unit, so the tiers never yield this.
    ZERO_DURATION = "zero_duration"


_FAILURE_MESSAGES: dict[QuoteFailure, str] = {
    QuoteFailure.INVALID_WINDOW: "End date must be after start date",
    QuoteFailure.NO_APPLICABLE_TIER: (
        "This instrument has no rate that covers the selected duration"
    ),
    QuoteFailure.ZERO_DURATION: "The selected duration is too short to be charged",
}


class PricedItem(Protocol):
    """Anything exposing a ``pricing`` mapping, e.g. an ``Instrument``."""

    @property
    def pricing(self) -> Mapping[str, Any]: ...


def _to_rate(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        rate = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid rate amount: {value!r}") from exc
    if not rate.is_finite() or rate < 0:
        raise ValueError("Rates must be non-negative amounts")
    return rate


@dataclass(frozen=True, slots=True)
class RateCard:
    """Optional per-tier unit rates; ``None`` means the tier is not offered."""

    hourly: Decimal | None = None
    daily: Decimal | None = None
    weekly: Decimal | None = None
    monthly: Decimal | None = None

    @classmethod
    def from_mapping(cls, pricing: Mapping[str, Any] | None) -> RateCard:
        pricing = pricing or {}
        return cls(**{tier.value: _to_rate(pricing.get(tier.value)) for tier in RateType})

    def rate_for(self, tier: RateType) -> Decimal | None:
        return getattr(self, tier.value)


@dataclass(frozen=True, slots=True)
class PriceQuote:
    """Successful quote for a booking window."""

    rate_type: RateType
    rate: Decimal
    units_charged: int
    total_hours: Decimal
    total_days: Decimal
    base_amount: Decimal
    security_fee_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal


@dataclass(frozen=True, slots=True)
class QuoteUnavailable:
    """A window that cannot be priced; callers must block submission."""

    reason: QuoteFailure

    @property
    def message(self) -> str:
        return _FAILURE_MESSAGES[self.reason]


QuoteResult = PriceQuote | QuoteUnavailable


class PricingUnavailableError(ValueError):
    """Raised at request boundaries that require a valid quote."""

    def __init__(self, failure: QuoteUnavailable) -> None:
        super().__init__(failure.message)
        self.reason = failure.reason


def _coerce_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _ceil_units(elapsed: timedelta, period: timedelta) -> int:
    return -(-elapsed // period)


def _round_whole(amount: Decimal) -> Decimal:
    return amount.quantize(_WHOLE, rounding=ROUND_HALF_UP)


def _ratio(elapsed: timedelta, period: timedelta) -> Decimal:
    micros = Decimal(elapsed // timedelta(microseconds=1))
    period_micros = Decimal(period // timedelta(microseconds=1))
    return (micros / period_micros).quantize(_DURATION_PLACES, rounding=ROUND_HALF_UP)


def select_tier(card: RateCard, elapsed: timedelta) -> tuple[RateType, int] | None:
    """Return the winning tier and unit count for a positive ``elapsed``."""
    if elapsed >= _MONTH and card.monthly is not None:
        return RateType.MONTHLY, _ceil_units(elapsed, _MONTH)
    if elapsed >= _WEEK and card.weekly is not None:
        return RateType.WEEKLY, _ceil_units(elapsed, _WEEK)
    if elapsed >= _DAY and card.daily is not None:
        return RateType.DAILY, _ceil_units(elapsed, _DAY)
    if card.hourly is not None:
        return RateType.HOURLY, _ceil_units(elapsed, _HOUR)
    if card.daily is not None:
        return RateType.DAILY, _ceil_units(elapsed, _DAY)
    return None


def calculate_quote(
    pricing: RateCard | Mapping[str, Any] | None,
    start: datetime,
    end: datetime,
) -> QuoteResult:
    """Price the window ``[start, end)`` against ``pricing``.

    Naive datetimes are treated as UTC. Never raises for a well-formed rate
    card; unpriceable windows come back as :class:`QuoteUnavailable`.
    """
    card = pricing if isinstance(pricing, RateCard) else RateCard.from_mapping(pricing)
    elapsed = _coerce_utc(end) - _coerce_utc(start)
    if elapsed <= timedelta(0):
        return QuoteUnavailable(QuoteFailure.INVALID_WINDOW)

    selection = select_tier(card, elapsed)
    if selection is None:
        return QuoteUnavailable(QuoteFailure.NO_APPLICABLE_TIER)
    rate_type, units = selection

    rate = card.rate_for(rate_type)
    assert rate is not None
    base_amount = _round_whole(rate * units)
    security_fee_amount = _round_whole(base_amount * SECURITY_FEE_RATE)
    tax_amount = _round_whole(base_amount * TAX_RATE)
    return PriceQuote(
        rate_type=rate_type,
        rate=rate,
        units_charged=units,
        total_hours=_ratio(elapsed, _HOUR),
        total_days=_ratio(elapsed, _DAY),
        base_amount=base_amount,
        security_fee_amount=security_fee_amount,
        tax_amount=tax_amount,
        total_amount=base_amount + security_fee_amount + tax_amount,
    )


def quote_instrument(item: PricedItem, start: datetime, end: datetime) -> QuoteResult:
    """Quote a window against an instrument's stored rate card."""
    return calculate_quote(item.pricing, start, end)


def require_quote(
    pricing: RateCard | Mapping[str, Any] | None, start: datetime, end: datetime
) -> PriceQuote:
    """Like :func:`calculate_quote` but raise when no quote is available."""
    result = calculate_quote(pricing, start, end)
    if isinstance(result, QuoteUnavailable):
        raise PricingUnavailableError(result)
    return result
