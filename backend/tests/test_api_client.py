"""Tests for the synchronous API client."""

from __future__ import annotations

import json

import httpx
import pytest

from lablinc.client.api_client import ApiError, LabLincClient


def _client(handler, **kwargs) -> tuple[LabLincClient, list[float]]:
    sleeps: list[float] = []
    client = LabLincClient(
        "http://api.test/api/v1",
        transport=httpx.MockTransport(handler),
        sleep=sleeps.append,
        **kwargs,
    )
    return client, sleeps


def test_login_stores_token_for_later_requests() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/api/v1/auth/token":
            return httpx.Response(200, json={"access_token": "tok", "token_type": "bearer"})
        return httpx.Response(200, json={"count": 3})

    client, _ = _client(handler)
    assert client.login("msme@example.com", "Passw0rd!") == "tok"
    assert client.unread_count() == 3

    assert b"username=msme%40example.com" in seen[0].content
    assert "authorization" not in seen[0].headers
    assert seen[1].headers["authorization"] == "Bearer tok"


def test_transport_errors_are_retried_with_exponential_backoff() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] <= 2:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"instruments": [], "pagination": {}})

    client, sleeps = _client(handler, retry_attempts=3, retry_delay=0.5)
    body = client.list_instruments(search="sem")

    assert body["instruments"] == []
    assert calls["n"] == 3
    assert sleeps == [0.5, 1.0]


def test_retries_give_up_after_configured_attempts() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        raise httpx.ReadTimeout("timed out", request=request)

    client, sleeps = _client(handler, retry_attempts=2, retry_delay=1)
    with pytest.raises(httpx.ReadTimeout):
        client.get_instrument("abc")

    assert calls["n"] == 3
    assert sleeps == [1, 2]


def test_http_errors_are_not_retried() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(400, json={"detail": "Bookings must start in the future"})

    client, sleeps = _client(handler, token="tok")
    with pytest.raises(ApiError) as excinfo:
        client.create_booking(
            instrument_id="abc", start_at="2020-01-01T00:00:00Z", end_at="2020-01-02T00:00:00Z"
        )

    assert excinfo.value.status_code == 400
    assert excinfo.value.detail == "Bookings must start in the future"
    assert calls["n"] == 1
    assert sleeps == []


def test_booking_payload_carries_no_prices() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update(json.loads(request.content))
        return httpx.Response(201, json={"id": "b1"})

    client, _ = _client(handler, token="tok")
    client.create_booking(
        instrument_id="abc",
        start_at="2030-01-01T09:00:00+00:00",
        end_at="2030-01-01T17:00:00+00:00",
        notes="SEM session",
    )
    assert set(captured) == {"instrument_id", "start_at", "end_at", "notes"}


def test_non_json_error_bodies_are_reported() -> None:
    client, _ = _client(lambda request: httpx.Response(502, text="Bad gateway"))
    with pytest.raises(ApiError) as excinfo:
        client.my_bookings()
    assert excinfo.value.status_code == 502
    assert excinfo.value.detail == "Bad gateway"


def test_negative_retry_attempts_rejected() -> None:
    with pytest.raises(ValueError):
        LabLincClient(retry_attempts=-1)


def test_refresh_rotates_both_tokens_and_logout_forgets_them() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/api/v1/auth/token":
            return httpx.Response(
                200, json={"access_token": "a1", "refresh_token": "r1"}
            )
        if request.url.path == "/api/v1/auth/refresh":
            return httpx.Response(
                200, json={"access_token": "a2", "refresh_token": "r2"}
            )
        return httpx.Response(204)

    client, _ = _client(handler)
    with pytest.raises(ValueError):
        client.refresh()

    client.login("msme@example.com", "Passw0rd!")
    assert client.refresh() == "a2"
    assert json.loads(seen[1].content) == {"refresh_token": "r1"}
    assert client.refresh_token == "r2"

    client.logout()
    assert seen[2].headers["authorization"] == "Bearer a2"
    assert client.token is None
    assert client.refresh_token is None
