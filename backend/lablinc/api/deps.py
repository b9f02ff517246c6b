"""Common API dependencies."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordBearer
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.core.config import get_settings
from lablinc.core.security import decode_access_token
from lablinc.db.session import get_session
from lablinc.integrations.s3_client import S3Client, S3ClientError, build_s3_client
from lablinc.integrations.stripe_client import StripeClient
from lablinc.models.user import User, UserRole, UserStatus
from lablinc.security.permissions import require_roles
from lablinc.services.cache_service import TTLCache

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_v1_prefix}/auth/token")

_RATE_WINDOWS = {
    "second": 1,
    "seconds": 1,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
}


def parse_rate(value: str, *, fallback: tuple[int, int]) -> tuple[int, int]:
    """Parse ``"10/minute"`` into ``(times, seconds)``."""
    try:
        count_str, window_str = value.split("/", 1)
        count = int(count_str.strip())
    except ValueError:
        return fallback
    return count, _RATE_WINDOWS.get(window_str.strip().lower(), fallback[1])


def rate_limit(limit: str, *, fallback: tuple[int, int]):
    """Rate-limit dependency; a no-op until the limiter has a redis connection."""
    times, seconds = parse_rate(limit, fallback=fallback)

    async def _dependency(request: Request, response: Response) -> None:
        if FastAPILimiter.redis is None:
            return None
        limiter = RateLimiter(times=times, seconds=seconds)
        await limiter(request, response)

    return Depends(_dependency)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> User:
    """Authenticate request via bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        raise credentials_exception from exc

    subject = payload.get("sub")
    if subject is None:
        raise credentials_exception

    try:
        user_id = uuid.UUID(subject)
    except (ValueError, TypeError) as exc:
        raise credentials_exception from exc

    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or user.status != UserStatus.ACTIVE:
        raise credentials_exception
    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Ensure the current user is active."""
    return current_user


async def get_current_admin(
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> User:
    require_roles(current_user, {UserRole.ADMIN})
    return current_user


def get_cache(request: Request) -> TTLCache:
    """Return the application's catalogue cache."""
    return request.app.state.cache


def get_storage() -> S3Client:
    try:
        return build_s3_client()
    except S3ClientError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc


def get_stripe_client() -> StripeClient | None:
    """Stripe client when a secret key is configured, otherwise manual payments."""
    current = get_settings()
    if not current.stripe_secret_key:
        return None
    return StripeClient(current.stripe_secret_key)


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent")
