"""The booking form estimate and the server-side price always agree."""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from lablinc.client.booking_form import BookingForm
from lablinc.models import Instrument
from lablinc.schemas.instrument import InstrumentPricing
from lablinc.services.pricing_service import (
    PriceQuote,
    QuoteUnavailable,
    calculate_quote,
    quote_instrument,
)

_TIERS = ("hourly", "daily", "weekly", "monthly")


def _random_case(rng: random.Random) -> tuple[dict[str, Decimal], datetime, datetime]:
    pricing = {
        tier: Decimal(rng.randint(0, 500_000)) / 100
        for tier in _TIERS
        if rng.random() < 0.6
    }
    start = datetime(2025, 1, 1, tzinfo=UTC) + timedelta(minutes=rng.randint(0, 500_000))
    duration = timedelta(
        minutes=rng.choice(
            [
                rng.randint(1, 24 * 60),
                rng.randint(1, 10 * 24 * 60),
                rng.randint(1, 90 * 24 * 60),
                24 * 60,
                7 * 24 * 60,
                30 * 24 * 60,
            ]
        )
    )
    return pricing, start, start + duration


def _client_side_pricing(instrument: Instrument) -> dict[str, str | None]:
    """Rate card as the browser receives it from the catalogue JSON."""
    return InstrumentPricing.model_validate(instrument.pricing).model_dump(mode="json")


@pytest.mark.parametrize("seed", range(25))
def test_form_estimate_matches_server_quote(seed: int) -> None:
    rng = random.Random(seed)
    for _ in range(40):
        pricing, start, end = _random_case(rng)
        instrument = Instrument(name="Parity rig")
        instrument.apply_pricing(pricing)

        server = quote_instrument(instrument, start, end)
        form = BookingForm(
            client=None,  # type: ignore[arg-type]
            instrument={"id": "parity", "pricing": _client_side_pricing(instrument)},
        )
        form.set_window(start, end)

        assert form.result == server
        if isinstance(server, PriceQuote):
            assert server.total_amount >= server.base_amount >= 0
            assert form.can_submit
        else:
            assert isinstance(server, QuoteUnavailable)
            assert not form.can_submit
            assert form.error == server.message


@pytest.mark.parametrize("seed", range(10))
def test_any_priced_window_has_non_negative_totals(seed: int) -> None:
    rng = random.Random(1000 + seed)
    for _ in range(50):
        pricing, start, end = _random_case(rng)
        pricing.setdefault("hourly", Decimal("10"))
        result = calculate_quote(pricing, start, end)
        assert isinstance(result, PriceQuote)
        assert result.total_amount >= result.base_amount >= 0
        assert result.units_charged >= 1
