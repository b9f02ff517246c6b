"""API tests for registration, login and the current-user endpoints."""

from __future__ import annotations

import uuid
from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from lablinc.db.session import get_sessionmaker
from lablinc.models import AuditEvent, UserSettings

pytestmark = pytest.mark.asyncio


async def _authenticate(client: AsyncClient, email: str, password: str) -> str:
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200
    return response.json()["access_token"]


async def test_register_msme_returns_token_and_profile(
    app_context: dict[str, Any], db_url: str
) -> None:
    client: AsyncClient = app_context["client"]
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "name": "Nova Materials",
            "email": "Founder@Nova.example.com",
            "password": "Str0ngPass!",
            "organization": "Nova Materials Pvt Ltd",
            "phone": "+91 98450 00000",
        },
    )
    assert response.status_code == 201
    payload = response.json()
    assert payload["user"]["email"] == "founder@nova.example.com"
    assert payload["user"]["role"] == "msme"
    assert payload["token_type"] == "bearer"

    me = await client.get(
        "/api/v1/users/me",
        headers={"Authorization": f"Bearer {payload['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["organization"] == "Nova Materials Pvt Ltd"

    async with get_sessionmaker(db_url)() as session:
        user_id = uuid.UUID(payload["user"]["id"])
        settings_row = await session.scalar(
            select(UserSettings).where(UserSettings.user_id == user_id)
        )
        assert settings_row is not None
        actions = (
            await session.execute(
                select(AuditEvent.action).where(AuditEvent.action == "auth.register")
            )
        ).scalars().all()
    assert actions == ["auth.register"]


async def test_register_rejects_admin_role_and_duplicates(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    admin_attempt = await client.post(
        "/api/v1/auth/register",
        json={
            "name": "Sneaky",
            "email": "sneaky@example.com",
            "password": "Str0ngPass!",
            "role": "admin",
        },
    )
    assert admin_attempt.status_code == 422

    duplicate = await client.post(
        "/api/v1/auth/register",
        json={
            "name": "Again",
            "email": app_context["msme_email"],
            "password": "Str0ngPass!",
        },
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Email already registered"

    short_password = await client.post(
        "/api/v1/auth/register",
        json={"name": "Short", "email": "short@example.com", "password": "abc"},
    )
    assert short_password.status_code == 422


async def test_institute_can_self_register(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "name": "IISc Facility",
            "email": "facility@iisc.example.com",
            "password": "Str0ngPass!",
            "role": "institute",
        },
    )
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "institute"


async def test_login_rejects_bad_credentials(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": app_context["msme_email"], "password": "wrong-password"},
    )
    assert response.status_code == 401

    unauthenticated = await client.get("/api/v1/users/me")
    assert unauthenticated.status_code == 401

    garbage = await client.get(
        "/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert garbage.status_code == 401


async def test_profile_and_settings_updates(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    token = await _authenticate(
        client, app_context["msme_email"], app_context["password"]
    )
    headers = {"Authorization": f"Bearer {token}"}

    updated = await client.patch(
        "/api/v1/users/me",
        json={"phone": "+91 80 1234 5678", "address": "Whitefield, Bengaluru"},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["address"] == "Whitefield, Bengaluru"

    settings = await client.get("/api/v1/users/me/settings", headers=headers)
    assert settings.status_code == 200
    assert settings.json()["email_notifications"] is True

    changed = await client.put(
        "/api/v1/users/me/settings",
        json={"sms_notifications": True, "language": "hi"},
        headers=headers,
    )
    assert changed.status_code == 200
    body = changed.json()
    assert body["sms_notifications"] is True
    assert body["language"] == "hi"
    assert body["email_notifications"] is True
