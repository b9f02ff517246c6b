"""Public partner applications and contact messages, and their admin review."""

from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _admin_headers(client: AsyncClient, context: dict[str, Any]) -> dict[str, str]:
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": context["admin_email"], "password": context["password"]},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def _application(**extra: Any) -> dict[str, Any]:
    return {
        "institute_name": "IISc Materials Lab",
        "contact_person": "Dr. Rao",
        "email": "Rao@IISc.example.com",
        "instruments_available": "XRD, SEM",
        **extra,
    }


async def test_partner_application_lifecycle(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    submitted = await client.post("/api/v1/partners", json=_application())
    assert submitted.status_code == 201
    application = submitted.json()
    assert application["status"] == "pending"
    assert application["email"] == "rao@iisc.example.com"

    duplicate = await client.post("/api/v1/partners", json=_application())
    assert duplicate.status_code == 400

    admin = await _admin_headers(client, app_context)
    listing = await client.get(
        "/api/v1/admin/partners", params={"status": "pending"}, headers=admin
    )
    assert listing.status_code == 200
    assert listing.json()["pagination"]["total"] == 1

    url = f"/api/v1/admin/partners/{application['id']}"
    contacted = await client.patch(
        url, json={"status": "contacted", "admin_notes": "Call scheduled"}, headers=admin
    )
    assert contacted.status_code == 200
    assert contacted.json()["admin_notes"] == "Call scheduled"

    # Still under review, so a second application stays blocked.
    still_open = await client.post("/api/v1/partners", json=_application())
    assert still_open.status_code == 400

    rejected = await client.patch(url, json={"status": "rejected"}, headers=admin)
    assert rejected.json()["status"] == "rejected"
    assert rejected.json()["admin_notes"] == "Call scheduled"

    reapplied = await client.post("/api/v1/partners", json=_application())
    assert reapplied.status_code == 201

    pending_only = await client.get(
        "/api/v1/admin/partners", params={"status": "pending"}, headers=admin
    )
    assert [item["id"] for item in pending_only.json()["applications"]] == [
        reapplied.json()["id"]
    ]


async def test_partner_application_validation(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    bad_email = await client.post("/api/v1/partners", json=_application(email="nope"))
    assert bad_email.status_code == 422
    missing_name = await client.post(
        "/api/v1/partners", json=_application(institute_name="")
    )
    assert missing_name.status_code == 422


async def test_contact_messages(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    sent = await client.post(
        "/api/v1/contact",
        json={
            "name": "Meera",
            "email": "meera@example.com",
            "subject": "Bulk pricing",
            "message": "Do you offer discounts for a month of beam time?",
        },
    )
    assert sent.status_code == 201
    message = sent.json()
    assert message["status"] == "new"

    empty = await client.post(
        "/api/v1/contact",
        json={"name": "Meera", "email": "meera@example.com", "subject": "Hi", "message": ""},
    )
    assert empty.status_code == 422

    admin = await _admin_headers(client, app_context)
    listing = await client.get("/api/v1/admin/contacts", headers=admin)
    assert listing.json()["pagination"]["total"] == 1

    replied = await client.patch(
        f"/api/v1/admin/contacts/{message['id']}",
        json={"status": "replied"},
        headers=admin,
    )
    assert replied.status_code == 200
    assert replied.json()["status"] == "replied"

    unread = await client.get(
        "/api/v1/admin/contacts", params={"status": "new"}, headers=admin
    )
    assert unread.json()["messages"] == []

    missing = await client.patch(
        "/api/v1/admin/contacts/00000000-0000-0000-0000-000000000000",
        json={"status": "read"},
        headers=admin,
    )
    assert missing.status_code == 404


async def test_inquiry_review_requires_admin(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    anonymous = await client.get("/api/v1/admin/partners")
    assert anonymous.status_code == 401

    response = await client.post(
        "/api/v1/auth/token",
        data={"username": app_context["msme_email"], "password": app_context["password"]},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    msme = {"Authorization": f"Bearer {response.json()['access_token']}"}
    for path in ("/api/v1/admin/partners", "/api/v1/admin/contacts"):
        forbidden = await client.get(path, headers=msme)
        assert forbidden.status_code == 403
