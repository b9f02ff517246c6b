"""Authentication service helpers."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.core.security import (
    create_access_token,
    get_password_hash,
    verify_password,
)
from lablinc.models.auth_token import AuthTokenPurpose
from lablinc.models.user import User, UserStatus
from lablinc.schemas.auth import RegistrationRequest
from lablinc.schemas.user import UserCreate
from lablinc.services import auth_token_service, user_service
from lablinc.services.auth_token_service import TokenReuseError


async def authenticate_user(
    session: AsyncSession, email: str, password: str
) -> User | None:
    """Validate credentials and return a user if correct."""
    user = await user_service.get_user_by_email(session, email=email.strip().lower())
    if user is None:
        return None
    if user.status != UserStatus.ACTIVE:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_access_token_for_user(user: User) -> str:
    """Generate a JWT for a user."""
    return create_access_token(str(user.id), role=user.role.value)


async def issue_session_tokens(session: AsyncSession, user: User) -> tuple[str, str]:
    """Return an access token and a newly stored refresh token."""
    refresh_token, _ = await auth_token_service.issue_token(
        session, user_id=user.id, purpose=AuthTokenPurpose.REFRESH
    )
    return create_access_token_for_user(user), refresh_token


async def refresh_session(
    session: AsyncSession, *, refresh_token: str
) -> tuple[User, str, str]:
    """Rotate a refresh token.

    Presenting a token that was already rotated revokes every refresh token
    the user holds, since one of the copies has leaked.
    """
    try:
        record = await auth_token_service.consume_token(
            session, token=refresh_token, purpose=AuthTokenPurpose.REFRESH
        )
    except TokenReuseError as exc:
        await auth_token_service.revoke_tokens(session, user_id=exc.user_id)
        raise
    user = record.user
    if user.status != UserStatus.ACTIVE:
        raise ValueError("Account is not active")
    await session.commit()
    access_token, new_refresh_token = await issue_session_tokens(session, user)
    return user, access_token, new_refresh_token


async def logout(session: AsyncSession, user: User) -> int:
    return await auth_token_service.revoke_tokens(session, user_id=user.id)


async def request_password_reset(
    session: AsyncSession, *, email: str
) -> tuple[User, str, datetime] | None:
    """Create a reset token for an active account; None when there is no such account."""
    user = await user_service.get_user_by_email(session, email=email.strip().lower())
    if user is None or user.status != UserStatus.ACTIVE:
        return None
    token, expires_at = await auth_token_service.issue_token(
        session, user_id=user.id, purpose=AuthTokenPurpose.PASSWORD_RESET
    )
    return user, token, expires_at


async def set_password(session: AsyncSession, user: User, new_password: str) -> User:
    """Replace a password and sign the user out of every device."""
    user.hashed_password = get_password_hash(new_password)
    await session.commit()
    await auth_token_service.revoke_tokens(session, user_id=user.id)
    await session.refresh(user)
    return user


async def reset_password(
    session: AsyncSession, *, token: str, new_password: str
) -> User:
    record = await auth_token_service.consume_token(
        session, token=token, purpose=AuthTokenPurpose.PASSWORD_RESET
    )
    return await set_password(session, record.user, new_password)


async def request_email_verification(
    session: AsyncSession, user: User
) -> tuple[str, datetime]:
    if user.email_verified:
        raise ValueError("Email is already verified")
    return await auth_token_service.issue_token(
        session, user_id=user.id, purpose=AuthTokenPurpose.EMAIL_VERIFICATION
    )


async def verify_email(session: AsyncSession, *, token: str) -> User:
    record = await auth_token_service.consume_token(
        session, token=token, purpose=AuthTokenPurpose.EMAIL_VERIFICATION
    )
    user = record.user
    user.email_verified = True
    await session.commit()
    await session.refresh(user)
    return user


async def register_user(session: AsyncSession, payload: RegistrationRequest) -> User:
    """Create an MSME or institute account from a signup request."""
    existing = await user_service.get_user_by_email(session, email=payload.email)
    if existing is not None:
        raise ValueError("Email already registered")
    return await user_service.create_user(
        session, UserCreate(**payload.model_dump())
    )
