"""Password hashing and JWT bearer token helpers."""

from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import jwt

from lablinc.core.config import get_settings

MIN_PASSWORD_LENGTH = 8


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True when ``plain_password`` matches the stored bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())
    except (ValueError, TypeError):  # malformed hash
        return False


def get_password_hash(password: str) -> str:
    """Hash a password for storage."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def create_access_token(
    subject: str, expires_delta: timedelta | None = None, **claims: Any
) -> str:
    """Issue a signed access token for ``subject`` with extra claims."""
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    payload: dict[str, Any] = {
        "sub": subject,
        "iat": datetime.now(UTC),
        "exp": datetime.now(UTC) + expires_delta,
        "type": "access",
    }
    payload.update(claims)
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify an access token, raising ``JWTError`` on failure."""
    settings = get_settings()
    return jwt.decode(
        token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
    )
