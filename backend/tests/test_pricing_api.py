from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest
from httpx import AsyncClient

from lablinc.db.session import get_sessionmaker
from lablinc.models import Instrument

pytestmark = pytest.mark.asyncio


def _window(hours: int) -> tuple[str, str]:
    start = (datetime.now(UTC) + timedelta(days=2)).replace(
        minute=0, second=0, microsecond=0
    )
    return start.isoformat(), (start + timedelta(hours=hours)).isoformat()


async def test_quote_for_stored_rate_card(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    start, end = _window(30)

    response = await client.post(
        "/api/v1/pricing/quote",
        json={
            "instrument_id": str(app_context["instrument_id"]),
            "start_at": start,
            "end_at": end,
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["available"] is True
    quote = body["quote"]
    assert quote["rate_type"] == "daily"
    assert quote["units_charged"] == 2
    assert Decimal(quote["base_amount"]) == Decimal("2000")
    assert Decimal(quote["security_fee_amount"]) == Decimal("200")
    assert Decimal(quote["tax_amount"]) == Decimal("360")
    assert Decimal(quote["total_amount"]) == Decimal("2560")


async def test_quote_without_applicable_tier(
    app_context: dict[str, Any], db_url: str
) -> None:
    client: AsyncClient = app_context["client"]
    async with get_sessionmaker(db_url)() as session:
        instrument = await session.get(Instrument, app_context["instrument_id"])
        instrument.apply_pricing({"weekly": Decimal("5000")})
        await session.commit()
    start, end = _window(3)

    response = await client.post(
        "/api/v1/pricing/quote",
        json={
            "instrument_id": str(app_context["instrument_id"]),
            "start_at": start,
            "end_at": end,
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["available"] is False
    assert body["quote"] is None
    assert body["reason"] == "no_applicable_tier"
    assert body["message"]


async def test_quote_rejects_inverted_window(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    start, end = _window(3)
    response = await client.post(
        "/api/v1/pricing/quote",
        json={
            "instrument_id": str(app_context["instrument_id"]),
            "start_at": end,
            "end_at": start,
        },
    )
    assert response.json()["reason"] == "invalid_window"


async def test_quote_unknown_instrument(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    start, end = _window(3)
    response = await client.post(
        "/api/v1/pricing/quote",
        json={"instrument_id": str(uuid.uuid4()), "start_at": start, "end_at": end},
    )
    assert response.status_code == 404
