"""Instrument reviews tied to completed bookings."""
from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.models import Booking, BookingStatus, Review, User


async def add_review(
    session: AsyncSession,
    *,
    booking: Booking,
    user: User,
    rating: int,
    comment: str = "",
) -> Review:
    """Only the booker may review, once, after the booking completed."""
    if booking.user_id != user.id:
        raise PermissionError("Only the booking user can add a review")
    if booking.status != BookingStatus.COMPLETED:
        raise ValueError("Can only review completed bookings")
    if not 1 <= rating <= 5:
        raise ValueError("Rating must be between 1 and 5")

    existing = await session.scalar(
        select(Review.id).where(Review.booking_id == booking.id, Review.user_id == user.id)
    )
    if existing is not None:
        raise ValueError("You have already reviewed this booking")

    review = Review(
        user_id=user.id,
        instrument_id=booking.instrument_id,
        booking_id=booking.id,
        rating=rating,
        comment=comment or "",
    )
    session.add(review)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ValueError("You have already reviewed this booking") from exc
    await session.refresh(review)
    return review


async def list_for_instrument(
    session: AsyncSession, instrument_id: uuid.UUID
) -> tuple[Sequence[Review], float | None]:
    """Reviews newest first and the average rating (``None`` when unrated)."""
    result = await session.execute(
        select(Review)
        .where(Review.instrument_id == instrument_id)
        .order_by(Review.created_at.desc())
    )
    average = await session.scalar(
        select(func.avg(Review.rating)).where(Review.instrument_id == instrument_id)
    )
    return result.scalars().all(), (
        round(float(average), 2) if average is not None else None
    )
