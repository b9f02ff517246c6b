"""Per-user preference storage."""
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lablinc.db.base import Base
from lablinc.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:  # pragma: no cover
    from lablinc.models.user import User


class UserSettings(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Notification and display preferences for a user."""

    __tablename__ = "user_settings"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    email_notifications: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    sms_notifications: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    booking_reminders: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    language: Mapped[str] = mapped_column(String(16), default="en", nullable=False)
    timezone: Mapped[str] = mapped_column(
        String(64), default="Asia/Kolkata", nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="settings")
