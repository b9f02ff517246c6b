"""User data access helpers."""
from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.core.security import get_password_hash
from lablinc.models.audit_event import AuditEvent
from lablinc.models.auth_token import AuthToken
from lablinc.models.booking import Booking, BookingStatusChange
from lablinc.models.instrument import Instrument
from lablinc.models.notification import Notification
from lablinc.models.user import User, UserRole, UserStatus
from lablinc.models.user_settings import UserSettings
from lablinc.schemas.user import UserCreate, UserSettingsUpdate, UserUpdate


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    """Return a user by email address."""
    result = await session.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def get_user(session: AsyncSession, user_id: uuid.UUID) -> User | None:
    """Return a user by ID."""
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def list_users(
    session: AsyncSession,
    *,
    role: UserRole | None = None,
    status: UserStatus | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[Sequence[User], int]:
    """Return a filtered page of users and the total match count."""
    filters = []
    if role is not None:
        filters.append(User.role == role)
    if status is not None:
        filters.append(User.status == status)
    if search:
        pattern = f"%{search.strip().lower()}%"
        filters.append(
            or_(
                func.lower(User.name).like(pattern),
                func.lower(User.email).like(pattern),
                func.lower(User.organization).like(pattern),
            )
        )
    total = await session.scalar(select(func.count()).select_from(User).where(*filters))
    result = await session.execute(
        select(User)
        .where(*filters)
        .order_by(User.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), int(total or 0)


async def create_user(session: AsyncSession, payload: UserCreate) -> User:
    """Persist a new user with hashed password and default settings."""
    user = User(
        name=payload.name,
        email=payload.email.lower(),
        hashed_password=get_password_hash(payload.password),
        phone=payload.phone,
        organization=payload.organization,
        address=payload.address,
        role=payload.role,
        status=payload.status,
        email_verified=payload.email_verified,
    )
    session.add(user)
    try:
        await session.flush()
        session.add(UserSettings(user_id=user.id))
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ValueError("Email already registered") from exc
    await session.refresh(user)
    return user


async def update_user(session: AsyncSession, user: User, payload: UserUpdate) -> User:
    """Update mutable profile fields on a user."""
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    await session.commit()
    await session.refresh(user)
    return user


async def set_status(
    session: AsyncSession, user: User, status: UserStatus
) -> User:
    user.status = status
    await session.commit()
    await session.refresh(user)
    return user


async def get_settings_for_user(
    session: AsyncSession, user_id: uuid.UUID
) -> UserSettings:
    """Return the user's settings row, creating defaults when missing."""
    result = await session.execute(
        select(UserSettings).where(UserSettings.user_id == user_id)
    )
    settings = result.scalar_one_or_none()
    if settings is None:
        settings = UserSettings(user_id=user_id)
        session.add(settings)
        await session.commit()
        await session.refresh(settings)
    return settings


async def update_settings(
    session: AsyncSession, user_id: uuid.UUID, payload: UserSettingsUpdate
) -> UserSettings:
    settings = await get_settings_for_user(session, user_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(settings, field, value)
    await session.commit()
    await session.refresh(settings)
    return settings


async def set_email_verified(session: AsyncSession, user: User) -> User:
    user.email_verified = True
    await session.commit()
    await session.refresh(user)
    return user


async def delete_user(session: AsyncSession, user: User, *, actor: User) -> None:
    """Remove an account that has no bookings or instruments.

    Accounts with marketplace history are kept for the audit trail and should
    be suspended instead. References that merely mention the user, such as
    audit entries or notifications they sent, are detached.
    """
    if user.id == actor.id:
        raise ValueError("Administrators cannot delete their own account")
    bookings = await session.scalar(
        select(func.count())
        .select_from(Booking)
        .where(or_(Booking.user_id == user.id, Booking.owner_id == user.id))
    )
    instruments = await session.scalar(
        select(func.count())
        .select_from(Instrument)
        .where(Instrument.owner_id == user.id)
    )
    if bookings or instruments:
        raise ValueError(
            "Users with bookings or instruments cannot be deleted; suspend them instead"
        )
    await session.execute(delete(AuthToken).where(AuthToken.user_id == user.id))
    await session.execute(
        delete(Notification).where(Notification.recipient_id == user.id)
    )
    await session.execute(
        update(Notification)
        .where(Notification.sender_id == user.id)
        .values(sender_id=None)
    )
    await session.execute(
        update(AuditEvent).where(AuditEvent.actor_id == user.id).values(actor_id=None)
    )
    await session.execute(
        update(BookingStatusChange)
        .where(BookingStatusChange.changed_by_id == user.id)
        .values(changed_by_id=None)
    )
    await session.execute(delete(UserSettings).where(UserSettings.user_id == user.id))
    await session.execute(delete(User).where(User.id == user.id))
    await session.commit()
