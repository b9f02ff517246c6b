"""Service layer for booking payments."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from decimal import Decimal
from typing import Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.integrations.stripe_client import StripeClient
from lablinc.models import (
    Booking,
    BookingStatus,
    Payment,
    PaymentProvider,
    PaymentStatus,
    User,
    UserRole,
)
from lablinc.services import booking_service

_STATUS_MAP: Mapping[str, PaymentStatus] = {
    "requires_payment_method": PaymentStatus.PENDING,
    "requires_confirmation": PaymentStatus.PENDING,
    "requires_action": PaymentStatus.PENDING,
    "processing": PaymentStatus.PROCESSING,
    "succeeded": PaymentStatus.COMPLETED,
    "canceled": PaymentStatus.FAILED,
}

_OPEN_STATUSES = (PaymentStatus.PENDING, PaymentStatus.PROCESSING)


def _to_status(status: str) -> PaymentStatus:
    return _STATUS_MAP.get(status, PaymentStatus.PROCESSING)


async def get_payment(session: AsyncSession, payment_id: uuid.UUID) -> Payment | None:
    return await session.get(Payment, payment_id)


async def list_for_user(
    session: AsyncSession, *, user: User, skip: int = 0, limit: int = 50
) -> Sequence[Payment]:
    """Payments visible to ``user``: their own, their instruments', or all for admins."""
    stmt = select(Payment).order_by(Payment.created_at.desc())
    if user.role == UserRole.MSME:
        stmt = stmt.where(Payment.user_id == user.id)
    elif user.role == UserRole.INSTITUTE:
        stmt = stmt.join(Booking, Booking.id == Payment.booking_id).where(
            Booking.owner_id == user.id
        )
    result = await session.execute(stmt.offset(skip).limit(limit))
    return result.scalars().all()


async def create_payment(
    session: AsyncSession,
    *,
    booking: Booking,
    user: User,
    currency: str,
    stripe: StripeClient | None = None,
) -> Payment:
    """Open a payment for the outstanding balance of a confirmed booking.

    An existing open payment is returned instead of creating a second one.
    """
    if booking.user_id != user.id:
        raise PermissionError("Only the booking user can pay for this booking")
    if booking.status != BookingStatus.CONFIRMED:
        raise ValueError("Only confirmed bookings can be paid")

    existing = (
        await session.execute(
            select(Payment)
            .where(Payment.booking_id == booking.id, Payment.status.in_(_OPEN_STATUSES))
            .order_by(Payment.created_at.desc())
        )
    ).scalars().first()
    if existing is not None:
        return existing

    balance = Decimal(booking.total_amount) - await booking_service.amount_paid(
        session, booking.id
    )
    if balance <= Decimal("0"):
        raise ValueError("Booking is already paid")

    payment = Payment(
        booking_id=booking.id,
        user_id=user.id,
        amount=balance,
        currency=currency,
    )
    if stripe is not None:
        intent = stripe.create_payment_intent(
            amount=balance,
            booking_id=booking.id,
            currency=currency,
            metadata={"invoice_number": booking.invoice_number or ""},
            customer_email=user.email,
            idempotency_seed=f"booking-{booking.id}-{balance}",
        )
        payment.provider = PaymentProvider.STRIPE
        payment.provider_reference = intent.id
        payment.client_secret = intent.client_secret
        payment.status = _to_status(intent.status)
    else:
        payment.provider = PaymentProvider.MANUAL
        payment.provider_reference = f"manual_{uuid.uuid4().hex}"
        payment.status = PaymentStatus.PENDING

    session.add(payment)
    await session.commit()
    await session.refresh(payment)
    return payment


async def complete_payment(
    session: AsyncSession,
    *,
    payment: Payment,
    provider_reference: str | None = None,
    stripe: StripeClient | None = None,
) -> Payment:
    """Mark an open payment as collected.

    Stripe payments are only completed once the PaymentIntent has succeeded.
    """
    if payment.status not in _OPEN_STATUSES:
        raise ValueError(f"Cannot complete a {payment.status.value} payment")
    if payment.provider == PaymentProvider.STRIPE:
        if stripe is None or payment.provider_reference is None:
            raise ValueError("Stripe is not configured")
        intent = stripe.retrieve_payment_intent(payment.provider_reference)
        status = _to_status(intent.status)
        if status != PaymentStatus.COMPLETED:
            payment.status = status
            payment.failure_reason = (
                f"Payment intent status {intent.status}"
                if status == PaymentStatus.FAILED
                else None
            )
            await session.commit()
            raise ValueError("Payment has not succeeded yet")
    elif provider_reference:
        payment.provider_reference = provider_reference
    payment.status = PaymentStatus.COMPLETED
    payment.failure_reason = None
    await session.commit()
    await session.refresh(payment)
    return payment


async def refund_payment(
    session: AsyncSession,
    *,
    payment: Payment,
    amount: Decimal | None = None,
    reason: str | None = None,
    stripe: StripeClient | None = None,
) -> Payment:
    """Refund all or part of a completed payment."""
    if payment.status != PaymentStatus.COMPLETED:
        raise ValueError("Only completed payments can be refunded")
    refundable = Decimal(payment.amount) - Decimal(payment.refund_amount or 0)
    refund = refundable if amount is None else Decimal(amount)
    if refund <= Decimal("0") or refund > refundable:
        raise ValueError("Refund amount exceeds the refundable balance")

    if payment.provider == PaymentProvider.STRIPE:
        if stripe is None or payment.provider_reference is None:
            raise ValueError("Stripe is not configured")
        stripe.refund_payment_intent(payment.provider_reference, amount=refund)

    payment.refund_amount = Decimal(payment.refund_amount or 0) + refund
    payment.refund_reason = reason
    if payment.refund_amount >= Decimal(payment.amount):
        payment.status = PaymentStatus.REFUNDED
    await session.commit()
    await session.refresh(payment)
    return payment
