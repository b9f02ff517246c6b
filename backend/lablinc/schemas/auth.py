"""Authentication schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from lablinc.core.security import MIN_PASSWORD_LENGTH
from lablinc.models.user import UserRole
from lablinc.schemas.user import UserBase, UserRead, normalize_email


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RegistrationRequest(UserBase):
    """Self-service signup for MSMEs and institutes."""

    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    role: UserRole = UserRole.MSME

    @field_validator("role")
    @classmethod
    def _reject_admin(cls, value: UserRole) -> UserRole:
        if value == UserRole.ADMIN:
            raise ValueError("Admin accounts cannot be self-registered")
        return value


class RegistrationResponse(BaseModel):
    user: UserRead
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class PasswordResetRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return normalize_email(value)


class PasswordResetConfirm(BaseModel):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class EmailVerificationConfirm(BaseModel):
    token: str = Field(min_length=1)


class TokenDispatched(BaseModel):
    """Acknowledges a reset or verification request without revealing the token."""

    detail: str
    expires_at: datetime | None = None
