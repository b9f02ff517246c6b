"""Tests for the booking submission form."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from lablinc.client.api_client import LabLincClient
from lablinc.client.booking_form import BookingForm, BookingFormError
from lablinc.services.pricing_service import QuoteFailure

START = datetime(2030, 1, 1, 9, 0, tzinfo=UTC)
INSTRUMENT = {"id": "inst-1", "pricing": {"hourly": "100.00", "daily": "1000.00"}}


def _form(handler=None) -> BookingForm:
    transport = httpx.MockTransport(
        handler or (lambda request: httpx.Response(201, json={"id": "b1"}))
    )
    client = LabLincClient("http://api.test/api/v1", token="tok", transport=transport)
    return BookingForm(client, INSTRUMENT, notes="Sample prep")


def test_estimate_updates_on_every_window_change() -> None:
    form = _form()
    assert form.quote is None
    assert not form.can_submit

    form.set_start(START)
    assert form.quote is None

    form.set_end(START + timedelta(hours=8))
    assert form.quote is not None
    assert str(form.quote.total_amount) == "1024"

    form.set_end(START + timedelta(days=2))
    assert form.quote.rate_type.value == "daily"
    assert str(form.quote.base_amount) == "2000"


def test_invalid_window_disables_submission_with_message() -> None:
    form = _form()
    form.set_window(START, START - timedelta(hours=1))

    assert not form.can_submit
    assert form.result.reason == QuoteFailure.INVALID_WINDOW
    assert form.error == "End date must be after start date"
    with pytest.raises(BookingFormError):
        form.submit()


def test_uncovered_duration_blocks_submission() -> None:
    transport_calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        transport_calls.append(request)
        return httpx.Response(201, json={})

    client = LabLincClient(
        "http://api.test/api/v1", transport=httpx.MockTransport(handler)
    )
    form = BookingForm(client, {"id": "inst-2", "pricing": {"weekly": "5000"}})
    form.set_window(START, START + timedelta(days=2))

    assert form.result.reason == QuoteFailure.NO_APPLICABLE_TIER
    with pytest.raises(BookingFormError):
        form.submit()
    assert transport_calls == []


def test_submit_sends_only_window_and_notes() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update(json.loads(request.content))
        return httpx.Response(201, json={"id": "b1", "status": "pending"})

    form = _form(handler)
    form.set_window(START, START + timedelta(hours=3))
    created = form.submit()

    assert created["status"] == "pending"
    assert captured == {
        "instrument_id": "inst-1",
        "start_at": START.isoformat(),
        "end_at": (START + timedelta(hours=3)).isoformat(),
        "notes": "Sample prep",
    }
