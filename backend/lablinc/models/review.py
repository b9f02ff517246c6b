"""Instrument reviews left after completed bookings."""
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lablinc.db.base import Base
from lablinc.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:  # pragma: no cover
    from lablinc.models.booking import Booking
    from lablinc.models.instrument import Instrument
    from lablinc.models.user import User


class Review(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A 1-5 star rating with an optional comment."""

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "booking_id", name="uq_reviews_user_booking"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="rating_range"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    instrument_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, default="", nullable=False)

    user: Mapped["User"] = relationship("User")
    instrument: Mapped["Instrument"] = relationship(
        "Instrument", back_populates="reviews"
    )
    booking: Mapped["Booking"] = relationship("Booking", back_populates="review")
