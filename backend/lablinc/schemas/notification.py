"""In-app notification schemas."""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from lablinc.models.notification import NotificationType
from lablinc.schemas.common import Pagination


class NotificationRead(BaseModel):
    id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    booking_id: uuid.UUID | None = None
    sender_id: uuid.UUID | None = None
    read: bool
    read_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationPage(BaseModel):
    notifications: list[NotificationRead]
    unread_count: int
    pagination: Pagination


class UnreadCount(BaseModel):
    count: int


class MarkAllReadResult(BaseModel):
    updated: int
