"""Booking lifecycle service helpers."""
from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lablinc.models.booking import Booking, BookingStatus, BookingStatusChange
from lablinc.models.instrument import (
    Instrument,
    InstrumentAvailability,
    InstrumentStatus,
)
from lablinc.models.payment import Payment, PaymentStatus
from lablinc.models.user import User, UserRole, UserStatus
from lablinc.schemas.booking import (
    BookingTimeline,
    InvoiceParty,
    InvoiceRead,
    TimelineEntry,
)
from lablinc.services import instrument_service
from lablinc.services.pricing_service import (
    PriceQuote,
    QuoteResult,
    quote_instrument,
    require_quote,
)

_ALLOWED_STATUS_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {
        BookingStatus.CONFIRMED,
        BookingStatus.REJECTED,
        BookingStatus.CANCELLED,
    },
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.REJECTED: set(),
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

_CLOSED_AVAILABILITY = (
    InstrumentAvailability.MAINTENANCE,
    InstrumentAvailability.UNAVAILABLE,
)


def _coerce_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _validate_status_transition(current: BookingStatus, new: BookingStatus) -> None:
    if new == current:
        return
    allowed = _ALLOWED_STATUS_TRANSITIONS.get(current, set())
    if new not in allowed:
        raise ValueError(
            f"Cannot change booking status from {current.value} to {new.value}"
        )


def _generate_invoice_number(now: datetime) -> str:
    return f"INV-{now:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def _base_booking_query():
    return (
        select(Booking)
        .options(selectinload(Booking.user), selectinload(Booking.owner))
        .execution_options(populate_existing=True)
    )


def _scope_to_user(stmt, user: User):
    if user.role == UserRole.MSME:
        return stmt.where(Booking.user_id == user.id)
    if user.role == UserRole.INSTITUTE:
        return stmt.where(Booking.owner_id == user.id)
    return stmt


def can_view(booking: Booking, user: User) -> bool:
    return user.role == UserRole.ADMIN or user.id in {booking.user_id, booking.owner_id}


async def get_booking(
    session: AsyncSession, booking_id: uuid.UUID
) -> Booking | None:
    result = await session.execute(
        _base_booking_query().where(Booking.id == booking_id)
    )
    return result.scalars().unique().one_or_none()


async def get_booking_for_user(
    session: AsyncSession, *, booking_id: uuid.UUID, user: User
) -> Booking:
    """Return the booking if ``user`` is its booker, owner or an admin."""
    booking = await get_booking(session, booking_id)
    if booking is None:
        raise LookupError("Booking not found")
    if not can_view(booking, user):
        raise PermissionError("Not authorized to view this booking")
    return booking


async def _paged(
    session: AsyncSession, stmt, *, order_by, skip: int, limit: int
) -> tuple[Sequence[Booking], int]:
    total = await session.scalar(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    )
    result = await session.execute(stmt.order_by(*order_by).offset(skip).limit(limit))
    return result.scalars().unique().all(), int(total or 0)


async def list_bookings(
    session: AsyncSession,
    *,
    user: User | None = None,
    status: BookingStatus | None = None,
    instrument_id: uuid.UUID | None = None,
    skip: int = 0,
    limit: int = 10,
) -> tuple[Sequence[Booking], int]:
    """Role-scoped bookings, newest first; ``user=None`` lists everything."""
    stmt = _base_booking_query()
    if user is not None:
        stmt = _scope_to_user(stmt, user)
    if status is not None:
        stmt = stmt.where(Booking.status == status)
    if instrument_id is not None:
        stmt = stmt.where(Booking.instrument_id == instrument_id)
    return await _paged(
        session, stmt, order_by=[Booking.created_at.desc()], skip=skip, limit=limit
    )


async def list_upcoming(
    session: AsyncSession,
    *,
    user: User,
    now: datetime | None = None,
    skip: int = 0,
    limit: int = 10,
) -> tuple[Sequence[Booking], int]:
    now = _coerce_utc(now or datetime.now(UTC))
    stmt = _scope_to_user(_base_booking_query(), user).where(
        Booking.start_at > now,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
    )
    return await _paged(
        session, stmt, order_by=[Booking.start_at.asc()], skip=skip, limit=limit
    )


async def list_history(
    session: AsyncSession,
    *,
    user: User,
    now: datetime | None = None,
    skip: int = 0,
    limit: int = 10,
) -> tuple[Sequence[Booking], int]:
    """Finished bookings: completed, cancelled, rejected or already ended."""
    now = _coerce_utc(now or datetime.now(UTC))
    stmt = _scope_to_user(_base_booking_query(), user).where(
        or_(
            Booking.status.in_(
                (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REJECTED)
            ),
            Booking.end_at < now,
        )
    )
    return await _paged(
        session, stmt, order_by=[Booking.end_at.desc()], skip=skip, limit=limit
    )


async def quote_for_window(
    session: AsyncSession,
    *,
    instrument_id: uuid.UUID,
    start_at: datetime,
    end_at: datetime,
) -> QuoteResult:
    """Quote a window against the stored rate card of an active instrument."""
    instrument = await instrument_service.get_instrument(session, instrument_id)
    if instrument is None:
        raise LookupError("Instrument not found")
    return quote_instrument(instrument, start_at, end_at)


async def create_booking(
    session: AsyncSession,
    *,
    user: User,
    instrument_id: uuid.UUID,
    start_at: datetime,
    end_at: datetime,
    notes: str | None = None,
    agreement_accepted: bool = False,
    created_by: User | None = None,
    now: datetime | None = None,
) -> Booking:
    """Create a pending booking priced from the instrument's stored rates.

    ``created_by`` is set when an administrator books on the user's behalf.
    """
    if created_by is not None:
        if created_by.role != UserRole.ADMIN:
            raise PermissionError("Only administrators can book for another user")
        if user.role != UserRole.MSME:
            raise ValueError("Bookings can only be made for MSME users")
        if user.status != UserStatus.ACTIVE:
            raise ValueError("User account is not active")
    elif user.role != UserRole.MSME:
        raise PermissionError("Only MSME users can create bookings")

    start_at = _coerce_utc(start_at)
    end_at = _coerce_utc(end_at)
    now = _coerce_utc(now or datetime.now(UTC))
    if end_at <= start_at:
        raise ValueError("End date must be after start date")
    if start_at <= now:
        raise ValueError("Bookings must start in the future")

    result = await session.execute(
        select(Instrument).where(
            Instrument.id == instrument_id,
            Instrument.status == InstrumentStatus.ACTIVE,
        )
    )
    instrument = result.scalar_one_or_none()
    if instrument is None:
        raise LookupError("Instrument not found")
    if instrument.owner_id == user.id:
        raise ValueError("You cannot book your own instrument")
    if instrument.availability in _CLOSED_AVAILABILITY:
        raise ValueError("Instrument is not accepting bookings")

    conflicts = await instrument_service.count_conflicts(
        session, instrument_id=instrument.id, start_at=start_at, end_at=end_at
    )
    if conflicts:
        raise ValueError("Instrument is not available for the selected dates")

    quote: PriceQuote = require_quote(instrument.pricing, start_at, end_at)
    note = "Booking created"
    if created_by is not None:
        note = f"Booking created by {created_by.name}"

    booking = Booking(
        instrument_id=instrument.id,
        instrument_name=instrument.name,
        user_id=user.id,
        user_name=user.name,
        owner_id=instrument.owner_id,
        owner_name=instrument.owner_name,
        start_at=start_at,
        end_at=end_at,
        status=BookingStatus.PENDING,
        rate_type=quote.rate_type,
        rate=quote.rate,
        units_charged=quote.units_charged,
        base_amount=quote.base_amount,
        security_fee_amount=quote.security_fee_amount,
        tax_amount=quote.tax_amount,
        total_amount=quote.total_amount,
        notes=notes,
        agreement_accepted=agreement_accepted,
        invoice_number=_generate_invoice_number(now),
    )
    session.add(booking)
    try:
        await session.flush()
        session.add(
            BookingStatusChange(
                booking_id=booking.id,
                status=BookingStatus.PENDING,
                changed_by_id=(created_by or user).id,
                note=note,
                changed_at=now,
            )
        )
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ValueError("Unable to create booking") from exc
    created = await get_booking(session, booking.id)
    assert created is not None
    return created


async def _apply_status(
    session: AsyncSession,
    booking: Booking,
    *,
    status: BookingStatus,
    actor: User,
    note: str | None,
) -> Booking:
    _validate_status_transition(booking.status, status)
    if status == booking.status:
        return booking
    booking.status = status
    session.add(
        BookingStatusChange(
            booking_id=booking.id,
            status=status,
            changed_by_id=actor.id,
            note=note,
        )
    )
    await session.commit()
    return booking


async def update_status(
    session: AsyncSession,
    *,
    booking: Booking,
    actor: User,
    status: BookingStatus,
    note: str | None = None,
) -> Booking:
    """Owner or admin moves a booking along the transition table."""
    if actor.role != UserRole.ADMIN and booking.owner_id != actor.id:
        raise PermissionError("Not authorized to update this booking")
    return await _apply_status(
        session, booking, status=status, actor=actor, note=note
    )


async def cancel_booking(
    session: AsyncSession,
    *,
    booking: Booking,
    actor: User,
    reason: str | None = None,
) -> Booking:
    if actor.role != UserRole.ADMIN and booking.user_id != actor.id:
        raise PermissionError("Not authorized to cancel this booking")
    if booking.status == BookingStatus.CANCELLED:
        raise ValueError("Booking is already cancelled")
    if booking.status not in ACTIVE_BOOKING_STATUSES:
        raise ValueError(f"Cannot cancel a {booking.status.value} booking")
    return await _apply_status(
        session,
        booking,
        status=BookingStatus.CANCELLED,
        actor=actor,
        note=reason or "Cancelled by user",
    )


async def build_timeline(session: AsyncSession, booking: Booking) -> BookingTimeline:
    result = await session.execute(
        select(BookingStatusChange)
        .where(BookingStatusChange.booking_id == booking.id)
        .order_by(BookingStatusChange.changed_at.asc())
    )
    return BookingTimeline(
        booking_id=booking.id,
        status=booking.status,
        entries=[TimelineEntry.model_validate(row) for row in result.scalars().all()],
    )


async def amount_paid(session: AsyncSession, booking_id: uuid.UUID) -> Decimal:
    """Net collected amount: completed payments less refunds."""
    result = await session.execute(
        select(
            func.coalesce(func.sum(Payment.amount), 0),
            func.coalesce(func.sum(Payment.refund_amount), 0),
        ).where(
            Payment.booking_id == booking_id,
            Payment.status.in_((PaymentStatus.COMPLETED, PaymentStatus.REFUNDED)),
        )
    )
    paid, refunded = result.one()
    return Decimal(str(paid)) - Decimal(str(refunded))


async def build_invoice(
    session: AsyncSession, booking: Booking, *, currency: str
) -> InvoiceRead:
    if not booking.invoice_number:
        booking.invoice_number = _generate_invoice_number(datetime.now(UTC))
        await session.commit()
    return InvoiceRead(
        invoice_number=booking.invoice_number,
        issued_at=booking.created_at,
        booking_id=booking.id,
        status=booking.status,
        instrument_id=booking.instrument_id,
        instrument_name=booking.instrument_name,
        billed_to=InvoiceParty(
            id=booking.user.id,
            name=booking.user.name,
            email=booking.user.email,
            organization=booking.user.organization,
        ),
        provider=InvoiceParty(
            id=booking.owner.id,
            name=booking.owner.name,
            email=booking.owner.email,
            organization=booking.owner.organization,
        ),
        start_at=booking.start_at,
        end_at=booking.end_at,
        rate_type=booking.rate_type,
        rate=booking.rate,
        units_charged=booking.units_charged,
        base_amount=booking.base_amount,
        security_fee_amount=booking.security_fee_amount,
        tax_amount=booking.tax_amount,
        total_amount=booking.total_amount,
        currency=currency,
        amount_paid=await amount_paid(session, booking.id),
    )
