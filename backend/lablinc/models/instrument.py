"""Instrument catalogue model."""
from __future__ import annotations

import enum
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, Enum, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lablinc.db.base import Base
from lablinc.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:  # pragma: no cover
    from lablinc.models.booking import Booking
    from lablinc.models.review import Review
    from lablinc.models.user import User


class InstrumentAvailability(str, enum.Enum):
    """Operational availability advertised by the owner."""

    AVAILABLE = "available"
    BOOKED = "booked"
    MAINTENANCE = "maintenance"
    UNAVAILABLE = "unavailable"


class InstrumentStatus(str, enum.Enum):
    """Listing state; deletion is soft."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


class Instrument(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A lab instrument listed for rent by an institute."""

    __tablename__ = "instruments"
    __table_args__ = (
        Index("ix_instruments_status_category", "status", "category"),
        Index("ix_instruments_owner_id", "owner_id"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(120), nullable=False)
    specifications: Mapped[dict[str, str]] = mapped_column(
        JSON, default=dict, nullable=False
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    owner_name: Mapped[str] = mapped_column(String(200), nullable=False)
    rate_hourly: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    rate_daily: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    rate_weekly: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    rate_monthly: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    availability: Mapped[InstrumentAvailability] = mapped_column(
        Enum(InstrumentAvailability),
        default=InstrumentAvailability.AVAILABLE,
        nullable=False,
    )
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    photos: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    videos: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[InstrumentStatus] = mapped_column(
        Enum(InstrumentStatus), default=InstrumentStatus.ACTIVE, nullable=False
    )

    owner: Mapped["User"] = relationship("User", back_populates="instruments")
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking", back_populates="instrument"
    )
    reviews: Mapped[list["Review"]] = relationship(
        "Review", back_populates="instrument"
    )

    @property
    def pricing(self) -> dict[str, Any]:
        return {
            "hourly": self.rate_hourly,
            "daily": self.rate_daily,
            "weekly": self.rate_weekly,
            "monthly": self.rate_monthly,
        }

    def apply_pricing(self, pricing: dict[str, Any]) -> None:
        self.rate_hourly = pricing.get("hourly")
        self.rate_daily = pricing.get("daily")
        self.rate_weekly = pricing.get("weekly")
        self.rate_monthly = pricing.get("monthly")
