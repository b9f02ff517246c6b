"""Partner application and contact form schemas."""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lablinc.models.contact_message import ContactMessageStatus
from lablinc.models.partner_application import PartnerApplicationStatus
from lablinc.schemas.common import Pagination
from lablinc.schemas.user import normalize_email


class PartnerApplicationCreate(BaseModel):
    institute_name: str = Field(min_length=1, max_length=255)
    contact_person: str = Field(min_length=1, max_length=200)
    email: str
    phone: str | None = Field(default=None, max_length=32)
    address: str | None = Field(default=None, max_length=512)
    instruments_available: str | None = Field(default=None, max_length=5000)
    message: str | None = Field(default=None, max_length=5000)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return normalize_email(value)


class PartnerApplicationRead(PartnerApplicationCreate):
    id: uuid.UUID
    status: PartnerApplicationStatus
    admin_notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PartnerApplicationUpdate(BaseModel):
    status: PartnerApplicationStatus | None = None
    admin_notes: str | None = Field(default=None, max_length=5000)


class PartnerApplicationPage(BaseModel):
    applications: list[PartnerApplicationRead]
    pagination: Pagination


class ContactMessageCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str
    phone: str | None = Field(default=None, max_length=32)
    subject: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1, max_length=5000)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return normalize_email(value)


class ContactMessageRead(ContactMessageCreate):
    id: uuid.UUID
    status: ContactMessageStatus
    admin_notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ContactMessageUpdate(BaseModel):
    status: ContactMessageStatus | None = None
    admin_notes: str | None = Field(default=None, max_length=5000)


class ContactMessagePage(BaseModel):
    messages: list[ContactMessageRead]
    pagination: Pagination
