"""Booking schemas."""
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lablinc.models.booking import BookingStatus
from lablinc.schemas.common import Pagination
from lablinc.services.pricing_service import RateType


class BookingCreate(BaseModel):
    """Payload submitted by the booking form.

    Prices are never accepted from the client; they are recomputed from the
    instrument's stored rate card.
    """

    instrument_id: uuid.UUID
    start_at: datetime
    end_at: datetime
    notes: str | None = Field(default=None, max_length=2000)
    agreement_accepted: bool = False


class AdminBookingCreate(BookingCreate):
    """Booking entered by an administrator for an MSME user."""

    user_id: uuid.UUID
    status: BookingStatus = BookingStatus.PENDING

    @field_validator("status")
    @classmethod
    def _initial_status(cls, value: BookingStatus) -> BookingStatus:
        if value not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
            raise ValueError("New bookings must be pending or confirmed")
        return value


class BookingRead(BaseModel):
    """Serialized booking including its price snapshot."""

    id: uuid.UUID
    instrument_id: uuid.UUID
    instrument_name: str
    user_id: uuid.UUID
    user_name: str
    owner_id: uuid.UUID
    owner_name: str
    start_at: datetime
    end_at: datetime
    status: BookingStatus
    rate_type: RateType
    rate: Decimal
    units_charged: int
    base_amount: Decimal
    security_fee_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    notes: str | None = None
    invoice_number: str | None = None
    agreement_accepted: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingPage(BaseModel):
    bookings: list[BookingRead]
    pagination: Pagination


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    note: str | None = Field(default=None, max_length=1024)


class BookingCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1024)


class TimelineEntry(BaseModel):
    status: BookingStatus
    changed_at: datetime
    changed_by_id: uuid.UUID | None = None
    note: str | None = None

    model_config = ConfigDict(from_attributes=True)


class BookingTimeline(BaseModel):
    booking_id: uuid.UUID
    status: BookingStatus
    entries: list[TimelineEntry]


class InvoiceParty(BaseModel):
    id: uuid.UUID
    name: str
    email: str | None = None
    organization: str | None = None


class InvoiceRead(BaseModel):
    """Invoice document for a booking."""

    invoice_number: str
    issued_at: datetime
    booking_id: uuid.UUID
    status: BookingStatus
    instrument_id: uuid.UUID
    instrument_name: str
    billed_to: InvoiceParty
    provider: InvoiceParty
    start_at: datetime
    end_at: datetime
    rate_type: RateType
    rate: Decimal
    units_charged: int
    base_amount: Decimal
    security_fee_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    currency: str
    amount_paid: Decimal
