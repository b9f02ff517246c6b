"""Pydantic schemas for instruments."""
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    TypeAdapter,
    field_validator,
    model_validator,
)

from lablinc.models.instrument import InstrumentAvailability, InstrumentStatus
from lablinc.schemas.common import Pagination

_URL_ADAPTER = TypeAdapter(HttpUrl)

# Matches the Numeric(12, 2) rate columns; more precision would be rounded away.
Rate = Annotated[Decimal, Field(ge=Decimal("0"), max_digits=12, decimal_places=2)]


class InstrumentPricing(BaseModel):
    """Rate card; omitted tiers are not offered."""

    hourly: Rate | None = None
    daily: Rate | None = None
    weekly: Rate | None = None
    monthly: Rate | None = None

    model_config = ConfigDict(from_attributes=True)

    def has_any_rate(self) -> bool:
        return any(
            rate is not None
            for rate in (self.hourly, self.daily, self.weekly, self.monthly)
        )


def _clean_urls(values: list[str] | None) -> list[str] | None:
    if values is None:
        return None
    cleaned = [value.strip() for value in values if value and value.strip()]
    for value in cleaned:
        _URL_ADAPTER.validate_python(value)
    return cleaned


class InstrumentBase(BaseModel):
    """Shared instrument fields."""

    name: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1, max_length=120)
    specifications: dict[str, str] = Field(default_factory=dict)
    pricing: InstrumentPricing
    location: str = Field(min_length=1, max_length=255)
    photos: list[str] = Field(default_factory=list)
    videos: list[str] = Field(default_factory=list)


class InstrumentCreate(InstrumentBase):
    """Payload for listing a new instrument."""

    @field_validator("photos", "videos")
    @classmethod
    def _validate_urls(cls, value: list[str]) -> list[str]:
        return _clean_urls(value) or []

    @model_validator(mode="after")
    def _require_a_rate(self) -> InstrumentCreate:
        if not self.pricing.has_any_rate():
            raise ValueError("At least one pricing tier is required")
        return self


class InstrumentUpdate(BaseModel):
    """Mutable instrument fields."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, min_length=1)
    category: str | None = Field(default=None, min_length=1, max_length=120)
    specifications: dict[str, str] | None = None
    pricing: InstrumentPricing | None = None
    availability: InstrumentAvailability | None = None
    location: str | None = Field(default=None, min_length=1, max_length=255)
    photos: list[str] | None = None
    videos: list[str] | None = None

    @field_validator("photos", "videos")
    @classmethod
    def _validate_urls(cls, value: list[str] | None) -> list[str] | None:
        return _clean_urls(value)

    @field_validator("pricing")
    @classmethod
    def _require_a_rate(cls, value: InstrumentPricing | None) -> InstrumentPricing | None:
        if value is not None and not value.has_any_rate():
            raise ValueError("At least one pricing tier is required")
        return value


class InstrumentRead(InstrumentBase):
    """Serialized instrument."""

    id: uuid.UUID
    owner_id: uuid.UUID
    owner_name: str
    availability: InstrumentAvailability
    featured: bool
    status: InstrumentStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InstrumentPage(BaseModel):
    instruments: list[InstrumentRead]
    pagination: Pagination


class InstrumentAvailabilityRead(BaseModel):
    """Result of an availability check for a window."""

    available: bool
    instrument_status: InstrumentAvailability
    conflicting_bookings: int


class InstrumentFeatureUpdate(BaseModel):
    featured: bool
