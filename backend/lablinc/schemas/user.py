"""User-related schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    TypeAdapter,
    field_validator,
)

from lablinc.core.security import MIN_PASSWORD_LENGTH
from lablinc.models.user import UserRole, UserStatus
from lablinc.schemas.common import Pagination

_EMAIL_ADAPTER = TypeAdapter(EmailStr)


def normalize_email(value: str) -> str:
    """Validate an address and return it trimmed and lowercased.

    Placeholder ``*.local`` domains used by seed data are accepted as-is.
    """

    email = value.strip().lower()
    try:
        return _EMAIL_ADAPTER.validate_python(email).lower()
    except ValueError:
        local_part, _, domain = email.partition("@")
        if local_part and domain.endswith(".local"):
            return email
        raise


class UserBase(BaseModel):
    """Shared user fields."""

    name: str = Field(min_length=1, max_length=200)
    email: str
    phone: str | None = Field(default=None, max_length=32)
    organization: str | None = Field(default=None, max_length=255)
    address: str | None = Field(default=None, max_length=512)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return normalize_email(value)


class UserCreate(UserBase):
    """Payload for creating a user (registration and admin creation)."""

    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    role: UserRole = UserRole.MSME
    status: UserStatus = UserStatus.ACTIVE
    email_verified: bool = False


class UserRead(UserBase):
    """Serialized user response."""

    id: uuid.UUID
    role: UserRole
    status: UserStatus
    email_verified: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    """Compact user reference embedded in other resources."""

    id: uuid.UUID
    name: str
    email: str
    organization: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserUpdate(BaseModel):
    """Profile fields a user may change on their own account."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    phone: str | None = Field(default=None, max_length=32)
    organization: str | None = Field(default=None, max_length=255)
    address: str | None = Field(default=None, max_length=512)


class UserStatusUpdate(BaseModel):
    status: UserStatus


class UserPage(BaseModel):
    users: list[UserRead]
    pagination: Pagination


class UserSettingsRead(BaseModel):
    email_notifications: bool
    sms_notifications: bool
    booking_reminders: bool
    language: str
    timezone: str

    model_config = ConfigDict(from_attributes=True)


class UserSettingsUpdate(BaseModel):
    email_notifications: bool | None = None
    sms_notifications: bool | None = None
    booking_reminders: bool | None = None
    language: str | None = Field(default=None, min_length=2, max_length=16)
    timezone: str | None = Field(default=None, max_length=64)



class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class AdminUserCreate(UserCreate):
    """Accounts created by an administrator start out verified."""

    email_verified: bool = True


class AdminPasswordReset(BaseModel):
    """Leave ``password`` empty to have a temporary one generated."""

    password: str | None = Field(default=None, min_length=MIN_PASSWORD_LENGTH)


class AdminPasswordResetResult(BaseModel):
    user: UserRead
    temporary_password: str | None = None
