"""Issue and redeem hashed refresh, password-reset and email-verification tokens."""
from __future__ import annotations

import hashlib
import secrets
import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lablinc.core.config import get_settings
from lablinc.models.auth_token import AuthToken, AuthTokenPurpose

_INVALID_MESSAGES = {
    AuthTokenPurpose.REFRESH: "Invalid refresh token",
    AuthTokenPurpose.PASSWORD_RESET: "Invalid password reset token",
    AuthTokenPurpose.EMAIL_VERIFICATION: "Invalid email verification token",
}


class TokenReuseError(ValueError):
    """A refresh token was presented after it had already been rotated."""

    def __init__(self, user_id: uuid.UUID) -> None:
        super().__init__("Refresh token already used")
        self.user_id = user_id


def _hash_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def token_ttl(purpose: AuthTokenPurpose) -> timedelta:
    settings = get_settings()
    if purpose == AuthTokenPurpose.REFRESH:
        return timedelta(days=settings.refresh_token_expire_days)
    if purpose == AuthTokenPurpose.PASSWORD_RESET:
        return timedelta(minutes=settings.password_reset_expire_minutes)
    return timedelta(hours=settings.email_verification_expire_hours)


async def issue_token(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    purpose: AuthTokenPurpose,
    now: datetime | None = None,
) -> tuple[str, datetime]:
    """Store a fresh token and return the raw value with its expiry.

    One-time tokens replace any earlier ones of the same purpose; refresh
    tokens accumulate so a user can stay signed in on several devices.
    """
    if purpose != AuthTokenPurpose.REFRESH:
        await session.execute(
            delete(AuthToken).where(
                AuthToken.user_id == user_id, AuthToken.purpose == purpose
            )
        )
    raw_token = secrets.token_urlsafe(32)
    expires_at = (now or datetime.now(UTC)) + token_ttl(purpose)
    session.add(
        AuthToken(
            user_id=user_id,
            purpose=purpose,
            token_hash=_hash_token(raw_token),
            expires_at=expires_at,
        )
    )
    await session.commit()
    return raw_token, expires_at


async def consume_token(
    session: AsyncSession,
    *,
    token: str,
    purpose: AuthTokenPurpose,
    now: datetime | None = None,
) -> AuthToken:
    """Mark a token used and return it with its user loaded.

    The caller commits, so the consumption lands in the same transaction as
    whatever the token unlocks.
    """
    result = await session.execute(
        select(AuthToken)
        .options(selectinload(AuthToken.user))
        .where(AuthToken.token_hash == _hash_token(token))
    )
    record = result.scalar_one_or_none()
    if record is None or record.purpose != purpose:
        raise ValueError(_INVALID_MESSAGES[purpose])
    if record.consumed_at is not None:
        if purpose == AuthTokenPurpose.REFRESH:
            raise TokenReuseError(record.user_id)
        raise ValueError("Token already used")
    current = now or datetime.now(UTC)
    expires_at = record.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    if expires_at < current:
        raise ValueError("Token has expired")
    record.consumed_at = current
    return record


async def revoke_tokens(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    purpose: AuthTokenPurpose = AuthTokenPurpose.REFRESH,
) -> int:
    """Consume every outstanding token of a purpose; returns how many were live."""
    result = await session.execute(
        update(AuthToken)
        .where(
            AuthToken.user_id == user_id,
            AuthToken.purpose == purpose,
            AuthToken.consumed_at.is_(None),
        )
        .values(consumed_at=datetime.now(UTC))
    )
    await session.commit()
    return result.rowcount or 0
