"""Booking submission form with a live price estimate.

The estimate comes from the same calculator the API uses to price bookings,
so what the form shows is what the booking will be charged. Prices are never
submitted; the server recomputes them from the stored rate card.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from lablinc.client.api_client import LabLincClient
from lablinc.services.pricing_service import (
    PriceQuote,
    QuoteResult,
    QuoteUnavailable,
    calculate_quote,
)


class BookingFormError(ValueError):
    """Raised when submitting a form that cannot be booked yet."""


class BookingForm:
    def __init__(
        self,
        client: LabLincClient,
        instrument: Mapping[str, Any],
        *,
        notes: str | None = None,
    ) -> None:
        self._client = client
        self.instrument_id = str(instrument["id"])
        self.pricing: Mapping[str, Any] = instrument.get("pricing") or {}
        self.start_at: datetime | None = None
        self.end_at: datetime | None = None
        self.notes = notes
        self.result: QuoteResult | None = None

    def _recompute(self) -> None:
        if self.start_at is None or self.end_at is None:
            self.result = None
            return
        self.result = calculate_quote(self.pricing, self.start_at, self.end_at)

    def set_start(self, value: datetime | None) -> None:
        self.start_at = value
        self._recompute()

    def set_end(self, value: datetime | None) -> None:
        self.end_at = value
        self._recompute()

    def set_window(self, start_at: datetime | None, end_at: datetime | None) -> None:
        self.start_at = start_at
        self.end_at = end_at
        self._recompute()

    @property
    def quote(self) -> PriceQuote | None:
        return self.result if isinstance(self.result, PriceQuote) else None

    @property
    def error(self) -> str | None:
        """Inline validation message for the current window, if any."""
        if isinstance(self.result, QuoteUnavailable):
            return self.result.message
        return None

    @property
    def can_submit(self) -> bool:
        return self.quote is not None

    def payload(self) -> dict[str, Any]:
        if not self.can_submit:
            raise BookingFormError(self.error or "Select a start and end date")
        assert self.start_at is not None and self.end_at is not None
        return {
            "instrument_id": self.instrument_id,
            "start_at": self.start_at,
            "end_at": self.end_at,
            "notes": self.notes,
        }

    def submit(self) -> dict[str, Any]:
        """Create the booking through the API and return the server's record."""
        return self._client.create_booking(**self.payload())
