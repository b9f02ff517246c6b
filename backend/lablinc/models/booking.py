"""Booking models."""
from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lablinc.db.base import Base
from lablinc.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from lablinc.services.pricing_service import RateType

if TYPE_CHECKING:  # pragma: no cover
    from lablinc.models.instrument import Instrument
    from lablinc.models.payment import Payment
    from lablinc.models.review import Review
    from lablinc.models.user import User


class BookingStatus(str, enum.Enum):
    """Lifecycle states for bookings."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Booking(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """An MSME's request to use an instrument for a time window."""

    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_user_status", "user_id", "status"),
        Index("ix_bookings_owner_status", "owner_id", "status"),
        Index("ix_bookings_instrument_window", "instrument_id", "start_at", "end_at"),
    )

    instrument_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False
    )
    instrument_name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    user_name: Mapped[str] = mapped_column(String(200), nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    owner_name: Mapped[str] = mapped_column(String(200), nullable=False)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False
    )

    rate_type: Mapped[RateType] = mapped_column(Enum(RateType), nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    units_charged: Mapped[int] = mapped_column(Integer, nullable=False)
    base_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    security_fee_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False
    )
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text)
    invoice_number: Mapped[str | None] = mapped_column(String(64), unique=True)
    agreement_accepted: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    instrument: Mapped["Instrument"] = relationship(
        "Instrument", back_populates="bookings"
    )
    user: Mapped["User"] = relationship("User", foreign_keys=[user_id])
    owner: Mapped["User"] = relationship("User", foreign_keys=[owner_id])
    status_history: Mapped[list["BookingStatusChange"]] = relationship(
        "BookingStatusChange",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingStatusChange.changed_at",
    )
    payments: Mapped[list["Payment"]] = relationship(
        "Payment", back_populates="booking", cascade="all, delete-orphan"
    )
    review: Mapped["Review | None"] = relationship(
        "Review", back_populates="booking", uselist=False
    )


class BookingStatusChange(UUIDPrimaryKeyMixin, Base):
    """A recorded status transition, used to build booking timelines."""

    __tablename__ = "booking_status_changes"

    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[BookingStatus] = mapped_column(Enum(BookingStatus), nullable=False)
    changed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    note: Mapped[str | None] = mapped_column(String(1024))
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="status_history")
    changed_by: Mapped["User | None"] = relationship("User")
