"""API tests for the booking lifecycle."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
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


async def _headers(client: AsyncClient, context: dict[str, Any], who: str) -> dict[str, str]:
    token = await _authenticate(client, context[f"{who}_email"], context["password"])
    return {"Authorization": f"Bearer {token}"}


def _window(days_ahead: int = 3, hours: int = 8) -> tuple[datetime, datetime]:
    start = (datetime.now(UTC) + timedelta(days=days_ahead)).replace(
        minute=0, second=0, microsecond=0
    )
    return start, start + timedelta(hours=hours)


async def _book(
    client: AsyncClient,
    headers: dict[str, str],
    instrument_id: Any,
    start: datetime,
    end: datetime,
    **extra: Any,
):
    return await client.post(
        "/api/v1/bookings",
        json={
            "instrument_id": str(instrument_id),
            "start_at": start.isoformat(),
            "end_at": end.isoformat(),
            **extra,
        },
        headers=headers,
    )


async def test_booking_is_priced_from_stored_rates(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    msme = await _headers(client, app_context, "msme")
    start, end = _window(hours=8)

    response = await _book(
        client,
        msme,
        app_context["instrument_id"],
        start,
        end,
        notes="Grain size analysis",
        total_amount="1",
    )
    assert response.status_code == 201
    booking = response.json()
    assert booking["status"] == "pending"
    assert booking["rate_type"] == "hourly"
    assert booking["units_charged"] == 8
    assert Decimal(booking["base_amount"]) == Decimal("800")
    assert Decimal(booking["security_fee_amount"]) == Decimal("80")
    assert Decimal(booking["tax_amount"]) == Decimal("144")
    assert Decimal(booking["total_amount"]) == Decimal("1024")
    assert booking["invoice_number"].startswith("INV-")
    assert booking["owner_id"] == str(app_context["institute_id"])
    assert booking["notes"] == "Grain size analysis"


async def test_booking_rejections(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    msme = await _headers(client, app_context, "msme")
    institute = await _headers(client, app_context, "institute")
    instrument_id = app_context["instrument_id"]

    past_start = datetime.now(UTC) - timedelta(days=1)
    past = await _book(
        client, msme, instrument_id, past_start, past_start + timedelta(hours=2)
    )
    assert past.status_code == 400

    start, end = _window()
    inverted = await _book(client, msme, instrument_id, end, start)
    assert inverted.status_code == 400
    assert inverted.json()["detail"] == "End date must be after start date"

    by_institute = await _book(client, institute, instrument_id, start, end)
    assert by_institute.status_code == 403

    unknown = await _book(
        client, msme, "00000000-0000-0000-0000-000000000000", start, end
    )
    assert unknown.status_code == 404


async def test_overlapping_bookings_are_rejected_but_adjacent_allowed(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    msme = await _headers(client, app_context, "msme")
    instrument_id = app_context["instrument_id"]
    start, end = _window(hours=4)

    first = await _book(client, msme, instrument_id, start, end)
    assert first.status_code == 201

    overlap = await _book(
        client, msme, instrument_id, start + timedelta(hours=2), end + timedelta(hours=2)
    )
    assert overlap.status_code == 400
    assert "not available" in overlap.json()["detail"]

    adjacent = await _book(client, msme, instrument_id, end, end + timedelta(hours=2))
    assert adjacent.status_code == 201

    cancelled = await client.patch(
        f"/api/v1/bookings/{first.json()['id']}/cancel",
        json={"reason": "Samples delayed"},
        headers=msme,
    )
    assert cancelled.status_code == 200
    rebooked = await _book(client, msme, instrument_id, start, end)
    assert rebooked.status_code == 201


async def test_unpriceable_window_is_rejected(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    institute = await _headers(client, app_context, "institute")
    msme = await _headers(client, app_context, "msme")
    created = await client.post(
        "/api/v1/instruments",
        json={
            "name": "Cleanroom bay",
            "description": "ISO 5 cleanroom rented by the week",
            "category": "Facilities",
            "pricing": {"weekly": "50000"},
            "location": "Hyderabad",
        },
        headers=institute,
    )
    assert created.status_code == 201

    start, end = _window(hours=48)
    response = await _book(client, msme, created.json()["id"], start, end)
    assert response.status_code == 400
    assert response.json()["detail"] == (
        "This instrument has no rate that covers the selected duration"
    )


async def test_instruments_under_maintenance_cannot_be_booked(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    institute = await _headers(client, app_context, "institute")
    msme = await _headers(client, app_context, "msme")
    await client.patch(
        f"/api/v1/instruments/{app_context['instrument_id']}",
        json={"availability": "maintenance"},
        headers=institute,
    )
    start, end = _window()
    response = await _book(client, msme, app_context["instrument_id"], start, end)
    assert response.status_code == 400


async def test_status_lifecycle_and_timeline(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    msme = await _headers(client, app_context, "msme")
    institute = await _headers(client, app_context, "institute")
    start, end = _window()
    booking_id = (
        await _book(client, msme, app_context["instrument_id"], start, end)
    ).json()["id"]
    status_url = f"/api/v1/bookings/{booking_id}/status"

    by_booker = await client.patch(
        status_url, json={"status": "confirmed"}, headers=msme
    )
    assert by_booker.status_code == 403

    confirmed = await client.patch(
        status_url, json={"status": "confirmed", "note": "See you at 9"}, headers=institute
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"

    backwards = await client.patch(
        status_url, json={"status": "pending"}, headers=institute
    )
    assert backwards.status_code == 400

    completed = await client.patch(
        status_url, json={"status": "completed"}, headers=institute
    )
    assert completed.json()["status"] == "completed"

    cancel_completed = await client.patch(
        f"/api/v1/bookings/{booking_id}/cancel", headers=msme
    )
    assert cancel_completed.status_code == 400

    timeline = await client.get(f"/api/v1/bookings/{booking_id}/timeline", headers=msme)
    assert timeline.status_code == 200
    entries = timeline.json()["entries"]
    assert [entry["status"] for entry in entries] == ["pending", "confirmed", "completed"]
    assert entries[0]["note"] == "Booking created"
    assert entries[1]["note"] == "See you at 9"
    assert timeline.json()["status"] == "completed"


async def test_rejection_and_double_cancel(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    msme = await _headers(client, app_context, "msme")
    institute = await _headers(client, app_context, "institute")

    start, end = _window()
    rejected_id = (
        await _book(client, msme, app_context["instrument_id"], start, end)
    ).json()["id"]
    rejected = await client.patch(
        f"/api/v1/bookings/{rejected_id}/status",
        json={"status": "rejected"},
        headers=institute,
    )
    assert rejected.json()["status"] == "rejected"

    start, end = _window(days_ahead=5)
    booking_id = (
        await _book(client, msme, app_context["instrument_id"], start, end)
    ).json()["id"]
    by_owner = await client.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=institute)
    assert by_owner.status_code == 403

    first = await client.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=msme)
    assert first.status_code == 200
    again = await client.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=msme)
    assert again.status_code == 400
    assert again.json()["detail"] == "Booking is already cancelled"


async def test_bookings_are_scoped_by_role(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    msme = await _headers(client, app_context, "msme")
    institute = await _headers(client, app_context, "institute")
    start, end = _window()
    booking_id = (
        await _book(client, msme, app_context["instrument_id"], start, end)
    ).json()["id"]

    outsider = await client.post(
        "/api/v1/auth/register",
        json={"name": "Other Co", "email": "other@example.com", "password": "Str0ngPass!"},
    )
    outsider_headers = {"Authorization": f"Bearer {outsider.json()['access_token']}"}
    hidden = await client.get(f"/api/v1/bookings/{booking_id}", headers=outsider_headers)
    assert hidden.status_code == 403
    outsider_list = await client.get("/api/v1/bookings/my", headers=outsider_headers)
    assert outsider_list.json()["bookings"] == []

    mine = await client.get("/api/v1/bookings/my", headers=msme)
    assert [item["id"] for item in mine.json()["bookings"]] == [booking_id]
    owned = await client.get(
        "/api/v1/bookings/my", params={"status": "pending"}, headers=institute
    )
    assert owned.json()["pagination"]["total"] == 1
    confirmed_only = await client.get(
        "/api/v1/bookings/my", params={"status": "confirmed"}, headers=institute
    )
    assert confirmed_only.json()["pagination"]["total"] == 0

    upcoming = await client.get("/api/v1/bookings/upcoming", headers=msme)
    assert upcoming.json()["pagination"]["total"] == 1
    history = await client.get("/api/v1/bookings/history", headers=msme)
    assert history.json()["pagination"]["total"] == 0


async def test_invoice_reflects_price_snapshot(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    msme = await _headers(client, app_context, "msme")
    start, end = _window(hours=30)
    booking = (
        await _book(client, msme, app_context["instrument_id"], start, end)
    ).json()

    response = await client.get(f"/api/v1/bookings/{booking['id']}/invoice", headers=msme)
    assert response.status_code == 200
    invoice = response.json()
    assert invoice["invoice_number"] == booking["invoice_number"]
    assert invoice["rate_type"] == "daily"
    assert invoice["units_charged"] == 2
    assert Decimal(invoice["total_amount"]) == Decimal("2560")
    assert Decimal(invoice["amount_paid"]) == Decimal("0")
    assert invoice["currency"] == "INR"
    assert invoice["billed_to"]["email"] == app_context["msme_email"]
    assert invoice["provider"]["name"] == "Central Lab"
