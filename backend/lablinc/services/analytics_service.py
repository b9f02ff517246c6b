"""Aggregate figures for the admin dashboard."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.models import (
    Booking,
    BookingStatus,
    Instrument,
    InstrumentAvailability,
    InstrumentStatus,
    Review,
    User,
    UserRole,
    UserStatus,
)
from lablinc.schemas.analytics import PlatformAnalytics

_REVENUE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.COMPLETED)


async def _grouped_counts(session: AsyncSession, column, *filters) -> dict[str, int]:
    result = await session.execute(
        select(column, func.count()).where(*filters).group_by(column)
    )
    return {key.value: int(count) for key, count in result.all()}


async def platform_analytics(session: AsyncSession) -> PlatformAnalytics:
    users = {role.value: 0 for role in UserRole}
    users.update(
        await _grouped_counts(session, User.role, User.status == UserStatus.ACTIVE)
    )
    instruments = {state.value: 0 for state in InstrumentAvailability}
    instruments.update(
        await _grouped_counts(
            session,
            Instrument.availability,
            Instrument.status == InstrumentStatus.ACTIVE,
        )
    )
    bookings = {state.value: 0 for state in BookingStatus}
    bookings.update(await _grouped_counts(session, Booking.status))

    revenue_row = (
        await session.execute(
            select(
                func.coalesce(func.sum(Booking.total_amount), 0),
                func.count(Booking.id),
            ).where(Booking.status.in_(_REVENUE_STATUSES))
        )
    ).one()
    total_revenue = Decimal(str(revenue_row[0]))
    revenue_bookings = int(revenue_row[1])
    average = (
        (total_revenue / revenue_bookings).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        if revenue_bookings
        else Decimal("0")
    )
    average_rating = await session.scalar(select(func.avg(Review.rating)))

    return PlatformAnalytics(
        users_by_role=users,
        total_users=sum(users.values()),
        instruments_by_availability=instruments,
        total_instruments=sum(instruments.values()),
        bookings_by_status=bookings,
        total_bookings=sum(bookings.values()),
        total_revenue=total_revenue,
        average_booking_value=average,
        average_rating=round(float(average_rating), 2) if average_rating is not None else None,
    )
