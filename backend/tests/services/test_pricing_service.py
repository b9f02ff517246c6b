"""Tests for the booking price calculator."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from lablinc.services.pricing_service import (
    PriceQuote,
    PricingUnavailableError,
    QuoteFailure,
    QuoteUnavailable,
    RateCard,
    RateType,
    calculate_quote,
    require_quote,
)

START = datetime(2025, 1, 1, 9, 0, tzinfo=UTC)


def _quote(pricing, hours: float = 0, days: float = 0) -> PriceQuote:
    result = calculate_quote(pricing, START, START + timedelta(hours=hours, days=days))
    assert isinstance(result, PriceQuote), result
    return result


def test_daily_rate_covers_sub_day_window_without_hourly() -> None:
    quote = _quote({"daily": 1000}, hours=8)

    assert quote.rate_type == RateType.DAILY
    assert quote.units_charged == 1
    assert quote.base_amount == Decimal("1000")
    assert quote.security_fee_amount == Decimal("100")
    assert quote.tax_amount == Decimal("180")
    assert quote.total_amount == Decimal("1280")


def test_hourly_rate_wins_below_one_day() -> None:
    quote = _quote({"hourly": 100, "daily": 1000}, hours=8)

    assert quote.rate_type == RateType.HOURLY
    assert quote.units_charged == 8
    assert quote.base_amount == Decimal("800")
    assert quote.security_fee_amount == Decimal("80")
    assert quote.tax_amount == Decimal("144")
    assert quote.total_amount == Decimal("1024")


def test_exactly_seven_days_selects_weekly() -> None:
    quote = _quote({"daily": 1000, "weekly": 5000}, days=7)
    assert quote.rate_type == RateType.WEEKLY
    assert quote.units_charged == 1


def test_exactly_thirty_days_selects_monthly() -> None:
    quote = _quote({"daily": 1000, "weekly": 5000, "monthly": 15000}, days=30)
    assert quote.rate_type == RateType.MONTHLY
    assert quote.units_charged == 1
    assert quote.base_amount == Decimal("15000")


def test_exactly_one_day_selects_daily_over_hourly() -> None:
    quote = _quote({"hourly": 100, "daily": 1000}, days=1)
    assert quote.rate_type == RateType.DAILY
    assert quote.units_charged == 1


def test_partial_units_are_billed_as_whole_units() -> None:
    quote = _quote({"daily": 1000}, days=1.01)
    assert quote.units_charged == 2
    assert quote.base_amount == Decimal("2000")

    hourly = _quote({"hourly": 100}, hours=2, days=0)
    assert hourly.units_charged == 2
    assert _quote({"hourly": 100}, hours=2.05).units_charged == 3


def test_long_window_without_weekly_falls_back_to_daily() -> None:
    quote = _quote({"hourly": 50, "daily": 400}, days=10)
    assert quote.rate_type == RateType.DAILY
    assert quote.units_charged == 10


def test_monthly_units_round_up() -> None:
    quote = _quote({"monthly": 20000}, days=45)
    assert quote.rate_type == RateType.MONTHLY
    assert quote.units_charged == 2


def test_fees_round_half_up_to_whole_units() -> None:
    quote = _quote({"hourly": Decimal("12.50")}, hours=1)
    # 12.50 rounds to 13 before fees are applied.
    assert quote.base_amount == Decimal("13")
    assert quote.security_fee_amount == Decimal("1")
    assert quote.tax_amount == Decimal("2")
    assert quote.total_amount == Decimal("16")


def test_shortest_positive_window_charges_one_unit() -> None:
    for pricing in ({"hourly": 100}, {"daily": 1000}):
        result = calculate_quote(pricing, START, START + timedelta(microseconds=1))
        assert isinstance(result, PriceQuote), result
        assert result.units_charged == 1


def test_zero_rate_is_a_free_tier() -> None:
    quote = _quote({"hourly": 0}, hours=3)
    assert quote.total_amount == Decimal("0")


def test_duration_ratios_are_reported() -> None:
    quote = _quote({"hourly": 100}, hours=36)
    assert quote.total_hours == Decimal("36.00")
    assert quote.total_days == Decimal("1.50")


@pytest.mark.parametrize("offset", [timedelta(0), timedelta(hours=-1)])
def test_non_positive_window_is_invalid(offset: timedelta) -> None:
    result = calculate_quote({"hourly": 100}, START, START + offset)
    assert isinstance(result, QuoteUnavailable)
    assert result.reason == QuoteFailure.INVALID_WINDOW
    assert result.message


def test_no_tier_covers_duration() -> None:
    result = calculate_quote({"weekly": 5000}, START, START + timedelta(days=2))
    assert isinstance(result, QuoteUnavailable)
    assert result.reason == QuoteFailure.NO_APPLICABLE_TIER


def test_empty_rate_card_is_unavailable() -> None:
    for pricing in (None, {}, {"hourly": None, "daily": ""}):
        result = calculate_quote(pricing, START, START + timedelta(hours=1))
        assert isinstance(result, QuoteUnavailable)
        assert result.reason == QuoteFailure.NO_APPLICABLE_TIER


def test_naive_datetimes_are_treated_as_utc() -> None:
    naive = calculate_quote(
        {"hourly": 100}, datetime(2025, 1, 1, 9), datetime(2025, 1, 1, 12)
    )
    aware = calculate_quote({"hourly": 100}, START, START + timedelta(hours=3))
    assert naive == aware


def test_calculation_is_idempotent() -> None:
    pricing = {"hourly": "99.99", "daily": "750", "weekly": "4000"}
    end = START + timedelta(days=8, hours=3)
    assert calculate_quote(pricing, START, end) == calculate_quote(pricing, START, end)


def test_rate_card_rejects_negative_and_garbage_rates() -> None:
    with pytest.raises(ValueError):
        RateCard.from_mapping({"hourly": -1})
    with pytest.raises(ValueError):
        RateCard.from_mapping({"daily": "ten"})


def test_require_quote_raises_with_reason() -> None:
    with pytest.raises(PricingUnavailableError) as excinfo:
        require_quote({"weekly": 5000}, START, START + timedelta(hours=5))
    assert excinfo.value.reason == QuoteFailure.NO_APPLICABLE_TIER
    assert isinstance(excinfo.value, ValueError)
