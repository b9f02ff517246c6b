"""API tests for the instrument catalogue."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import Any

import pytest
from httpx import AsyncClient
from PIL import Image

from lablinc.api import deps
from lablinc.integrations.s3_client import S3Client
from lablinc.main import app
from lablinc.services.instrument_service import CATALOGUE_CACHE_PREFIX

pytestmark = pytest.mark.asyncio


async def _authenticate(client: AsyncClient, email: str, password: str) -> str:
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200
    return response.json()["access_token"]


def _instrument_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "name": "X-Ray Diffractometer",
        "description": "Powder XRD with Cu source",
        "category": "Spectroscopy",
        "specifications": {"source": "Cu K-alpha"},
        "pricing": {"hourly": "250", "daily": "2000"},
        "location": "Pune",
    }
    payload.update(overrides)
    return payload


def _window(days_ahead: int = 3, hours: int = 8) -> tuple[str, str]:
    start = (datetime.now(UTC) + timedelta(days=days_ahead)).replace(
        minute=0, second=0, microsecond=0
    )
    return start.isoformat(), (start + timedelta(hours=hours)).isoformat()


async def test_catalogue_lists_active_instruments_with_rates(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    response = await client.get("/api/v1/instruments")
    assert response.status_code == 200
    body = response.json()
    assert body["pagination"]["total"] == 1
    instrument = body["instruments"][0]
    assert instrument["id"] == str(app_context["instrument_id"])
    assert Decimal(instrument["pricing"]["hourly"]) == Decimal("100")
    assert instrument["pricing"]["weekly"] is None
    assert instrument["owner_name"] == "Central Lab"

    filtered = await client.get(
        "/api/v1/instruments", params={"search": "electron", "category": "Microscopy"}
    )
    assert filtered.json()["pagination"]["total"] == 1
    missing = await client.get("/api/v1/instruments", params={"search": "nmr"})
    assert missing.json()["instruments"] == []


async def test_catalogue_cache_is_invalidated_by_mutations(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    token = await _authenticate(
        client, app_context["institute_email"], app_context["password"]
    )
    headers = {"Authorization": f"Bearer {token}"}

    first = await client.get("/api/v1/instruments")
    assert first.json()["pagination"]["total"] == 1
    assert any(
        str(key).startswith(CATALOGUE_CACHE_PREFIX) for key in app.state.cache.keys()
    )

    created = await client.post(
        "/api/v1/instruments", json=_instrument_payload(), headers=headers
    )
    assert created.status_code == 201
    assert created.json()["owner_id"] == str(app_context["institute_id"])

    second = await client.get("/api/v1/instruments")
    assert second.json()["pagination"]["total"] == 2

    deleted = await client.delete(
        f"/api/v1/instruments/{created.json()['id']}", headers=headers
    )
    assert deleted.status_code == 204
    third = await client.get("/api/v1/instruments")
    assert third.json()["pagination"]["total"] == 1

    gone = await client.get(f"/api/v1/instruments/{created.json()['id']}")
    assert gone.status_code == 404


async def test_only_institutes_list_instruments(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    token = await _authenticate(
        client, app_context["msme_email"], app_context["password"]
    )
    response = await client.post(
        "/api/v1/instruments",
        json=_instrument_payload(),
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 403


async def test_instrument_requires_a_rate_and_valid_urls(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    token = await _authenticate(
        client, app_context["institute_email"], app_context["password"]
    )
    headers = {"Authorization": f"Bearer {token}"}

    no_rate = await client.post(
        "/api/v1/instruments", json=_instrument_payload(pricing={}), headers=headers
    )
    assert no_rate.status_code == 422

    negative = await client.post(
        "/api/v1/instruments",
        json=_instrument_payload(pricing={"hourly": "-5"}),
        headers=headers,
    )
    assert negative.status_code == 422

    bad_url = await client.post(
        "/api/v1/instruments",
        json=_instrument_payload(photos=["not a url"]),
        headers=headers,
    )
    assert bad_url.status_code == 422


async def test_rates_must_fit_stored_precision(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    token = await _authenticate(
        client, app_context["institute_email"], app_context["password"]
    )
    headers = {"Authorization": f"Bearer {token}"}

    for rate in ("10.005", "12345678901.00"):
        response = await client.post(
            "/api/v1/instruments",
            json=_instrument_payload(pricing={"hourly": rate}),
            headers=headers,
        )
        assert response.status_code == 422, rate

    update = await client.patch(
        f"/api/v1/instruments/{app_context['instrument_id']}",
        json={"pricing": {"daily": "999.999"}},
        headers=headers,
    )
    assert update.status_code == 422

    exact = await client.post(
        "/api/v1/instruments",
        json=_instrument_payload(pricing={"hourly": "10.05"}),
        headers=headers,
    )
    assert exact.status_code == 201
    assert Decimal(exact.json()["pricing"]["hourly"]) == Decimal("10.05")


async def test_update_is_limited_to_owner(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    instrument_url = f"/api/v1/instruments/{app_context['instrument_id']}"

    msme_token = await _authenticate(
        client, app_context["msme_email"], app_context["password"]
    )
    forbidden = await client.patch(
        instrument_url,
        json={"name": "Hijacked"},
        headers={"Authorization": f"Bearer {msme_token}"},
    )
    assert forbidden.status_code == 403

    owner_token = await _authenticate(
        client, app_context["institute_email"], app_context["password"]
    )
    updated = await client.patch(
        instrument_url,
        json={"pricing": {"daily": "900", "weekly": "5000"}, "availability": "maintenance"},
        headers={"Authorization": f"Bearer {owner_token}"},
    )
    assert updated.status_code == 200
    body = updated.json()
    assert body["pricing"]["hourly"] is None
    assert Decimal(body["pricing"]["weekly"]) == Decimal("5000")
    assert body["availability"] == "maintenance"

    mine = await client.get(
        "/api/v1/instruments/mine", headers={"Authorization": f"Bearer {owner_token}"}
    )
    assert mine.json()["pagination"]["total"] == 1


async def test_availability_reflects_bookings(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    start_at, end_at = _window()
    url = f"/api/v1/instruments/{app_context['instrument_id']}/availability"

    before = await client.get(url, params={"start_at": start_at, "end_at": end_at})
    assert before.status_code == 200
    assert before.json() == {
        "available": True,
        "instrument_status": "available",
        "conflicting_bookings": 0,
    }

    token = await _authenticate(
        client, app_context["msme_email"], app_context["password"]
    )
    booked = await client.post(
        "/api/v1/bookings",
        json={
            "instrument_id": str(app_context["instrument_id"]),
            "start_at": start_at,
            "end_at": end_at,
        },
        headers={"Authorization": f"Bearer {token}"},
    )
    assert booked.status_code == 201

    after = await client.get(url, params={"start_at": start_at, "end_at": end_at})
    assert after.json()["available"] is False
    assert after.json()["conflicting_bookings"] == 1

    inverted = await client.get(url, params={"start_at": end_at, "end_at": start_at})
    assert inverted.status_code == 400


async def test_photo_upload_converts_to_webp(
    app_context: dict[str, Any], tmp_path: Path
) -> None:
    client: AsyncClient = app_context["client"]
    storage = S3Client("instrument-photos", root=tmp_path)
    app.dependency_overrides[deps.get_storage] = lambda: storage
    token = await _authenticate(
        client, app_context["institute_email"], app_context["password"]
    )
    url = f"/api/v1/instruments/{app_context['instrument_id']}/photos"

    buffer = BytesIO()
    Image.new("RGB", (64, 48), color=(10, 120, 60)).save(buffer, format="PNG")
    response = await client.post(
        url,
        files={"file": ("sem.png", buffer.getvalue(), "image/png")},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 201
    photos = response.json()["photos"]
    assert len(photos) == 1
    assert photos[0].startswith("/instrument-photos/instruments/")
    assert photos[0].endswith(".webp")

    rejected = await client.post(
        url,
        files={"file": ("notes.txt", b"plain text", "text/plain")},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert rejected.status_code == 400
