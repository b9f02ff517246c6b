"""Messages submitted through the public contact form."""
from __future__ import annotations

import enum

from sqlalchemy import Enum, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lablinc.db.base import Base
from lablinc.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class ContactMessageStatus(str, enum.Enum):
    NEW = "new"
    READ = "read"
    REPLIED = "replied"
    ARCHIVED = "archived"


class ContactMessage(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "contact_messages"
    __table_args__ = (Index("ix_contact_messages_status", "status"),)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32))
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ContactMessageStatus] = mapped_column(
        Enum(ContactMessageStatus), default=ContactMessageStatus.NEW, nullable=False
    )
    admin_notes: Mapped[str | None] = mapped_column(Text)
