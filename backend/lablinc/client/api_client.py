"""HTTP client for the LabLinc API with retry on transport failures."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000/api/v1"


class ApiError(Exception):
    """Raised for any non-2xx response."""

    def __init__(self, status_code: int, detail: Any) -> None:
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def _error_detail(response: httpx.Response) -> Any:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and "detail" in body:
        return body["detail"]
    return body


def _isoformat(value: datetime | str) -> str:
    return value.isoformat() if isinstance(value, datetime) else value


class LabLincClient:
    """Thin wrapper over :class:`httpx.Client`.

    Requests that fail before a response arrives are retried up to
    ``retry_attempts`` more times, sleeping ``retry_delay * 2**attempt``
    seconds between tries. HTTP error responses are never retried.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 30.0,
        token: str | None = None,
        retry_attempts: int = 3,
        retry_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if retry_attempts < 0:
            raise ValueError("retry_attempts must not be negative")
        self.token = token
        self.refresh_token: str | None = None
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"), timeout=timeout, transport=transport
        )

    def __enter__(self) -> LabLincClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def _headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and return the decoded JSON body (``None`` for 204)."""
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        attempt = 0
        while True:
            try:
                response = self._http.request(method, path, headers=headers, **kwargs)
                break
            except httpx.TransportError as exc:
                if attempt >= self.retry_attempts:
                    raise
                delay = self.retry_delay * (2**attempt)
                logger.warning(
                    "%s %s failed (%s); retry %d/%d in %.2fs",
                    method,
                    path,
                    exc,
                    attempt + 1,
                    self.retry_attempts,
                    delay,
                )
                self._sleep(delay)
                attempt += 1

        if response.is_error:
            raise ApiError(response.status_code, _error_detail(response))
        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None
        return response.json()

    def login(self, email: str, password: str) -> str:
        """Exchange credentials for a bearer token and keep it for later calls."""
        body = self.request(
            "POST", "/auth/token", data={"username": email, "password": password}
        )
        self.token = body["access_token"]
        self.refresh_token = body.get("refresh_token")
        return self.token

    def refresh(self) -> str:
        """Trade the stored refresh token for a new token pair."""
        if not self.refresh_token:
            raise ValueError("No refresh token; call login() first")
        body = self.request(
            "POST", "/auth/refresh", json={"refresh_token": self.refresh_token}
        )
        self.token = body["access_token"]
        self.refresh_token = body["refresh_token"]
        return self.token

    def logout(self) -> None:
        self.request("POST", "/auth/logout")
        self.token = None
        self.refresh_token = None

    def register(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: str = "msme",
        **profile: Any,
    ) -> dict[str, Any]:
        body = self.request(
            "POST",
            "/auth/register",
            json={
                "name": name,
                "email": email,
                "password": password,
                "role": role,
                **profile,
            },
        )
        self.token = body["access_token"]
        self.refresh_token = body.get("refresh_token")
        return body["user"]

    def list_instruments(
        self,
        *,
        search: str | None = None,
        category: str | None = None,
        availability: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        if category:
            params["category"] = category
        if availability:
            params["availability"] = availability
        return self.request("GET", "/instruments", params=params)

    def get_instrument(self, instrument_id: uuid.UUID | str) -> dict[str, Any]:
        return self.request("GET", f"/instruments/{instrument_id}")

    def quote(
        self,
        instrument_id: uuid.UUID | str,
        start_at: datetime | str,
        end_at: datetime | str,
    ) -> dict[str, Any]:
        return self.request(
            "POST",
            "/pricing/quote",
            json={
                "instrument_id": str(instrument_id),
                "start_at": _isoformat(start_at),
                "end_at": _isoformat(end_at),
            },
        )

    def create_booking(
        self,
        *,
        instrument_id: uuid.UUID | str,
        start_at: datetime | str,
        end_at: datetime | str,
        notes: str | None = None,
    ) -> dict[str, Any]:
        return self.request(
            "POST",
            "/bookings",
            json={
                "instrument_id": str(instrument_id),
                "start_at": _isoformat(start_at),
                "end_at": _isoformat(end_at),
                "notes": notes,
            },
        )

    def my_bookings(
        self, *, status: str | None = None, page: int = 1, limit: int = 10
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        return self.request("GET", "/bookings/my", params=params)

    def notifications(
        self, *, unread_only: bool = False, page: int = 1, limit: int = 20
    ) -> dict[str, Any]:
        return self.request(
            "GET",
            "/notifications",
            params={"unread_only": unread_only, "page": page, "limit": limit},
        )

    def unread_count(self) -> int:
        return self.request("GET", "/notifications/unread-count")["count"]

    def mark_notification_read(self, notification_id: uuid.UUID | str) -> dict[str, Any]:
        return self.request("PATCH", f"/notifications/{notification_id}/read")
