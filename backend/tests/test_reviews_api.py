"""API tests for instrument reviews."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _authenticate(client: AsyncClient, email: str, password: str) -> str:
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200
    return response.json()["access_token"]


async def _booking(client: AsyncClient, headers: dict[str, str], instrument_id: Any) -> str:
    start = (datetime.now(UTC) + timedelta(days=4)).replace(
        minute=0, second=0, microsecond=0
    )
    response = await client.post(
        "/api/v1/bookings",
        json={
            "instrument_id": str(instrument_id),
            "start_at": start.isoformat(),
            "end_at": (start + timedelta(hours=3)).isoformat(),
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["id"]


async def test_review_requires_completed_booking(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    msme = {
        "Authorization": "Bearer "
        + await _authenticate(client, app_context["msme_email"], app_context["password"])
    }
    institute = {
        "Authorization": "Bearer "
        + await _authenticate(
            client, app_context["institute_email"], app_context["password"]
        )
    }
    booking_id = await _booking(client, msme, app_context["instrument_id"])
    review_url = f"/api/v1/bookings/{booking_id}/review"

    early = await client.post(review_url, json={"rating": 5}, headers=msme)
    assert early.status_code == 400

    for status in ("confirmed", "completed"):
        response = await client.patch(
            f"/api/v1/bookings/{booking_id}/status",
            json={"status": status},
            headers=institute,
        )
        assert response.status_code == 200

    out_of_range = await client.post(review_url, json={"rating": 6}, headers=msme)
    assert out_of_range.status_code == 422

    by_owner = await client.post(review_url, json={"rating": 1}, headers=institute)
    assert by_owner.status_code == 403

    created = await client.post(
        review_url, json={"rating": 4, "comment": "Sharp images"}, headers=msme
    )
    assert created.status_code == 201
    assert created.json()["instrument_id"] == str(app_context["instrument_id"])

    duplicate = await client.post(review_url, json={"rating": 5}, headers=msme)
    assert duplicate.status_code == 400

    summary = await client.get(
        f"/api/v1/instruments/{app_context['instrument_id']}/reviews"
    )
    assert summary.status_code == 200
    body = summary.json()
    assert body["count"] == 1
    assert body["average_rating"] == 4.0
    assert body["reviews"][0]["comment"] == "Sharp images"


async def test_unreviewed_instrument_has_no_average(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    summary = await client.get(
        f"/api/v1/instruments/{app_context['instrument_id']}/reviews"
    )
    assert summary.json() == {
        "instrument_id": str(app_context["instrument_id"]),
        "average_rating": None,
        "count": 0,
        "reviews": [],
    }
