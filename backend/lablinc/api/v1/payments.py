"""Payment listing, confirmation and refund endpoints."""

from __future__ import annotations

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.api import deps
from lablinc.integrations.stripe_client import StripeClient, StripeClientError
from lablinc.models.payment import Payment
from lablinc.models.user import User, UserRole
from lablinc.schemas.payment import PaymentComplete, PaymentRead, PaymentRefundRequest
from lablinc.security.permissions import http_error_for
from lablinc.services import (
    audit_service,
    booking_service,
    notification_service,
    payments_service,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_payment(session: AsyncSession, payment_id: uuid.UUID) -> Payment:
    payment = await payments_service.get_payment(session, payment_id)
    if payment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found"
        )
    return payment


@router.get("/payments/my", response_model=list[PaymentRead], summary="My payments")
async def my_payments(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    skip: int = 0,
    limit: int = 50,
) -> list[PaymentRead]:
    payments = await payments_service.list_for_user(
        session, user=current_user, skip=skip, limit=min(limit, 100)
    )
    return [PaymentRead.model_validate(payment) for payment in payments]


@router.post(
    "/payments/{payment_id}/complete",
    response_model=PaymentRead,
    summary="Confirm a payment was collected",
)
async def complete_payment(
    payment_id: uuid.UUID,
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    stripe: Annotated[StripeClient | None, Depends(deps.get_stripe_client)],
    background_tasks: BackgroundTasks,
    payload: PaymentComplete | None = None,
) -> PaymentRead:
    """Admins confirm manual payments; payers may confirm Stripe payments."""
    payment = await _load_payment(session, payment_id)
    if current_user.role != UserRole.ADMIN and payment.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions"
        )
    if current_user.role != UserRole.ADMIN and stripe is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Manual payments are confirmed by an administrator",
        )
    try:
        payment = await payments_service.complete_payment(
            session,
            payment=payment,
            provider_reference=payload.provider_reference if payload else None,
            stripe=stripe,
        )
    except ValueError as exc:
        raise http_error_for(exc) from exc
    except StripeClientError as exc:
        logger.exception("Stripe confirmation failed for payment %s", payment_id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)
        ) from exc

    booking = await booking_service.get_booking(session, payment.booking_id)
    if booking is not None:
        subject, body = notification_service.build_payment_receipt_email(
            invoice_number=booking.invoice_number or str(booking.id),
            amount=str(payment.amount),
            currency=payment.currency,
        )
        notification_service.schedule_email(
            background_tasks,
            recipients=[booking.user.email],
            subject=subject,
            body=body,
        )
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="payment.complete",
        entity_type="payment",
        entity_id=payment.id,
        payload={"amount": str(payment.amount), "provider": payment.provider.value},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return PaymentRead.model_validate(payment)


@router.post(
    "/payments/{payment_id}/refund",
    response_model=PaymentRead,
    summary="Refund a payment",
)
async def refund_payment(
    payment_id: uuid.UUID,
    payload: PaymentRefundRequest,
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_admin)],
    stripe: Annotated[StripeClient | None, Depends(deps.get_stripe_client)],
) -> PaymentRead:
    payment = await _load_payment(session, payment_id)
    try:
        payment = await payments_service.refund_payment(
            session,
            payment=payment,
            amount=payload.amount,
            reason=payload.reason,
            stripe=stripe,
        )
    except ValueError as exc:
        raise http_error_for(exc) from exc
    except StripeClientError as exc:
        logger.exception("Stripe refund failed for payment %s", payment_id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)
        ) from exc
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="payment.refund",
        entity_type="payment",
        entity_id=payment.id,
        payload={"refund_amount": str(payment.refund_amount), "reason": payload.reason},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return PaymentRead.model_validate(payment)
