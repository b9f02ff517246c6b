"""In-app notification endpoints."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.api import deps
from lablinc.models.user import User
from lablinc.schemas.common import Pagination
from lablinc.schemas.notification import (
    MarkAllReadResult,
    NotificationPage,
    NotificationRead,
    UnreadCount,
)
from lablinc.security.permissions import http_error_for
from lablinc.services import notifications_service

router = APIRouter()


@router.get("", response_model=NotificationPage, summary="List notifications")
async def list_notifications(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    unread_only: bool = False,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> NotificationPage:
    notifications, total = await notifications_service.list_for_user(
        session,
        user_id=current_user.id,
        unread_only=unread_only,
        skip=(page - 1) * limit,
        limit=limit,
    )
    unread = await notifications_service.unread_count(session, user_id=current_user.id)
    return NotificationPage(
        notifications=[NotificationRead.model_validate(item) for item in notifications],
        unread_count=unread,
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )


@router.get("/unread-count", response_model=UnreadCount, summary="Unread count")
async def unread_count(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> UnreadCount:
    count = await notifications_service.unread_count(session, user_id=current_user.id)
    return UnreadCount(count=count)


@router.patch(
    "/mark-all-read", response_model=MarkAllReadResult, summary="Mark all as read"
)
async def mark_all_read(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> MarkAllReadResult:
    updated = await notifications_service.mark_all_read(session, user_id=current_user.id)
    return MarkAllReadResult(updated=updated)


@router.patch(
    "/{notification_id}/read", response_model=NotificationRead, summary="Mark as read"
)
async def mark_read(
    notification_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> NotificationRead:
    try:
        notification = await notifications_service.mark_read(
            session, notification_id=notification_id, user_id=current_user.id
        )
    except LookupError as exc:
        raise http_error_for(exc) from exc
    return NotificationRead.model_validate(notification)
