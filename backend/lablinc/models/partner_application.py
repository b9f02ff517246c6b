"""Institutes applying to list instruments on the platform."""
from __future__ import annotations

import enum

from sqlalchemy import Enum, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lablinc.db.base import Base
from lablinc.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class PartnerApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CONTACTED = "contacted"


class PartnerApplication(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "partner_applications"
    __table_args__ = (
        Index("ix_partner_applications_email_status", "email", "status"),
    )

    institute_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32))
    address: Mapped[str | None] = mapped_column(String(512))
    instruments_available: Mapped[str | None] = mapped_column(Text)
    message: Mapped[str | None] = mapped_column(Text)
    status: Mapped[PartnerApplicationStatus] = mapped_column(
        Enum(PartnerApplicationStatus),
        default=PartnerApplicationStatus.PENDING,
        nullable=False,
    )
    admin_notes: Mapped[str | None] = mapped_column(Text)
