"""In-app notification helpers."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.models import Notification, NotificationType


async def notify(
    session: AsyncSession,
    *,
    recipient_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    sender_id: UUID | None = None,
    booking_id: UUID | None = None,
) -> Notification:
    notification = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=type,
        title=title,
        message=message,
        booking_id=booking_id,
        created_at=datetime.now(UTC),
    )
    session.add(notification)
    await session.commit()
    await session.refresh(notification)
    return notification


async def list_for_user(
    session: AsyncSession,
    *,
    user_id: UUID,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> tuple[Sequence[Notification], int]:
    filters = [Notification.recipient_id == user_id]
    if unread_only:
        filters.append(Notification.read_at.is_(None))
    total = await session.scalar(
        select(func.count()).select_from(Notification).where(*filters)
    )
    result = await session.execute(
        select(Notification)
        .where(*filters)
        .order_by(Notification.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), int(total or 0)


async def unread_count(session: AsyncSession, *, user_id: UUID) -> int:
    count = await session.scalar(
        select(func.count())
        .select_from(Notification)
        .where(Notification.recipient_id == user_id, Notification.read_at.is_(None))
    )
    return int(count or 0)


async def mark_read(
    session: AsyncSession,
    *,
    notification_id: UUID,
    user_id: UUID,
) -> Notification:
    notification = await session.get(Notification, notification_id)
    if notification is None or notification.recipient_id != user_id:
        raise LookupError("Notification not found")
    if notification.read_at is None:
        notification.read_at = datetime.now(UTC)
        await session.commit()
        await session.refresh(notification)
    return notification


async def mark_all_read(session: AsyncSession, *, user_id: UUID) -> int:
    """Mark every unread notification for ``user_id`` read; return the count."""
    result = await session.execute(
        update(Notification)
        .where(Notification.recipient_id == user_id, Notification.read_at.is_(None))
        .values(read_at=datetime.now(UTC))
    )
    await session.commit()
    return int(result.rowcount or 0)
