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


async def _headers(client: AsyncClient, context: dict[str, Any], who: str) -> dict[str, str]:
    token = await _authenticate(client, context[f"{who}_email"], context["password"])
    return {"Authorization": f"Bearer {token}"}


async def _request_booking(
    client: AsyncClient, headers: dict[str, str], instrument_id: Any, days: int
) -> dict[str, Any]:
    start = (datetime.now(UTC) + timedelta(days=days)).replace(
        minute=0, second=0, microsecond=0
    )
    response = await client.post(
        "/api/v1/bookings",
        json={
            "instrument_id": str(instrument_id),
            "start_at": start.isoformat(),
            "end_at": (start + timedelta(hours=2)).isoformat(),
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


async def test_booking_request_notifies_owner(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    msme = await _headers(client, app_context, "msme")
    institute = await _headers(client, app_context, "institute")

    booking = await _request_booking(client, msme, app_context["instrument_id"], 3)

    inbox = await client.get("/api/v1/notifications", headers=institute)
    assert inbox.status_code == 200
    body = inbox.json()
    assert body["unread_count"] == 1
    assert body["pagination"]["total"] == 1
    notification = body["notifications"][0]
    assert notification["type"] == "booking_created"
    assert notification["booking_id"] == booking["id"]
    assert notification["sender_id"] == str(app_context["msme_id"])
    assert notification["read"] is False

    own = await client.get("/api/v1/notifications", headers=msme)
    assert own.json()["notifications"] == []

    foreign = await client.patch(
        f"/api/v1/notifications/{notification['id']}/read", headers=msme
    )
    assert foreign.status_code == 404

    marked = await client.patch(
        f"/api/v1/notifications/{notification['id']}/read", headers=institute
    )
    assert marked.status_code == 200
    assert marked.json()["read"] is True
    assert marked.json()["read_at"] is not None

    count = await client.get("/api/v1/notifications/unread-count", headers=institute)
    assert count.json() == {"count": 0}


async def test_status_change_notifies_booker(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    msme = await _headers(client, app_context, "msme")
    institute = await _headers(client, app_context, "institute")
    booking = await _request_booking(client, msme, app_context["instrument_id"], 5)

    await client.patch(
        f"/api/v1/bookings/{booking['id']}/status",
        json={"status": "confirmed"},
        headers=institute,
    )

    unread = await client.get(
        "/api/v1/notifications", params={"unread_only": True}, headers=msme
    )
    types = [item["type"] for item in unread.json()["notifications"]]
    assert types == ["booking_confirmed"]


async def test_mark_all_read(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    msme = await _headers(client, app_context, "msme")
    institute = await _headers(client, app_context, "institute")
    for days in (3, 4):
        await _request_booking(client, msme, app_context["instrument_id"], days)

    count = await client.get("/api/v1/notifications/unread-count", headers=institute)
    assert count.json()["count"] == 2

    result = await client.patch("/api/v1/notifications/mark-all-read", headers=institute)
    assert result.status_code == 200
    assert result.json() == {"updated": 2}

    again = await client.patch("/api/v1/notifications/mark-all-read", headers=institute)
    assert again.json() == {"updated": 0}

    unread = await client.get(
        "/api/v1/notifications", params={"unread_only": True}, headers=institute
    )
    assert unread.json()["notifications"] == []
    everything = await client.get("/api/v1/notifications", headers=institute)
    assert len(everything.json()["notifications"]) == 2


async def test_notifications_require_authentication(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    response = await client.get("/api/v1/notifications")
    assert response.status_code == 401
