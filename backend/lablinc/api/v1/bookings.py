"""Booking lifecycle endpoints."""

from __future__ import annotations

import logging
import uuid
from typing import Annotated

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Query,
    Request,
    status,
)
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.api import deps
from lablinc.integrations.stripe_client import StripeClient, StripeClientError
from lablinc.models.booking import Booking, BookingStatus
from lablinc.models.notification import NotificationType
from lablinc.models.user import User
from lablinc.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingPage,
    BookingRead,
    BookingStatusUpdate,
    BookingTimeline,
    InvoiceRead,
)
from lablinc.schemas.common import Pagination
from lablinc.schemas.payment import PaymentRead
from lablinc.schemas.review import ReviewCreate, ReviewRead
from lablinc.security.permissions import http_error_for
from lablinc.services import (
    audit_service,
    booking_service,
    notification_service,
    notifications_service,
    payments_service,
    review_service,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUS_NOTIFICATIONS: dict[BookingStatus, NotificationType] = {
    BookingStatus.CONFIRMED: NotificationType.BOOKING_CONFIRMED,
    BookingStatus.REJECTED: NotificationType.BOOKING_CANCELLED,
    BookingStatus.CANCELLED: NotificationType.BOOKING_CANCELLED,
    BookingStatus.COMPLETED: NotificationType.BOOKING_COMPLETED,
}


def _page(bookings, *, page: int, limit: int, total: int) -> BookingPage:
    return BookingPage(
        bookings=[BookingRead.model_validate(item) for item in bookings],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )


async def _load_booking(
    session: AsyncSession, booking_id: uuid.UUID, user: User
) -> Booking:
    try:
        return await booking_service.get_booking_for_user(
            session, booking_id=booking_id, user=user
        )
    except (LookupError, PermissionError) as exc:
        raise http_error_for(exc) from exc


async def _announce_status(
    session: AsyncSession,
    booking: Booking,
    *,
    actor: User,
    background_tasks: BackgroundTasks,
) -> None:
    """Tell the other party about a status change, in-app and by email."""
    notification_type = _STATUS_NOTIFICATIONS.get(booking.status)
    if notification_type is None:
        return
    recipient = booking.owner if actor.id == booking.user_id else booking.user
    await notifications_service.notify(
        session,
        recipient_id=recipient.id,
        sender_id=actor.id,
        type=notification_type,
        title=f"Booking {booking.status.value}",
        message=f"Your booking for {booking.instrument_name} is {booking.status.value}.",
        booking_id=booking.id,
    )
    subject, body = notification_service.build_booking_status_email(
        user_name=recipient.name,
        instrument_name=booking.instrument_name,
        status=booking.status.value,
        invoice_number=booking.invoice_number,
    )
    notification_service.schedule_email(
        background_tasks, recipients=[recipient.email], subject=subject, body=body
    )


@router.post(
    "",
    response_model=BookingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Request a booking",
)
async def create_booking(
    payload: BookingCreate,
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    background_tasks: BackgroundTasks,
) -> BookingRead:
    """Create a pending booking; the price is computed from stored rates."""
    try:
        booking = await booking_service.create_booking(
            session, user=current_user, **payload.model_dump()
        )
    except (LookupError, PermissionError, ValueError) as exc:
        raise http_error_for(exc) from exc

    await notifications_service.notify(
        session,
        recipient_id=booking.owner_id,
        sender_id=current_user.id,
        type=NotificationType.BOOKING_CREATED,
        title="New booking request",
        message=f"{booking.user_name} requested {booking.instrument_name}.",
        booking_id=booking.id,
    )
    subject, body = notification_service.build_booking_request_email(
        owner_name=booking.owner_name,
        instrument_name=booking.instrument_name,
        user_name=booking.user_name,
        start_at=booking.start_at.isoformat(),
        end_at=booking.end_at.isoformat(),
    )
    notification_service.schedule_email(
        background_tasks, recipients=[booking.owner.email], subject=subject, body=body
    )
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="booking.create",
        entity_type="booking",
        entity_id=booking.id,
        payload={
            "instrument_id": str(booking.instrument_id),
            "total_amount": str(booking.total_amount),
            "rate_type": booking.rate_type.value,
        },
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return BookingRead.model_validate(booking)


@router.get("/my", response_model=BookingPage, summary="Bookings for the current user")
async def my_bookings(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    booking_status: Annotated[BookingStatus | None, Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> BookingPage:
    """MSMEs see their requests, institutes their instruments' bookings, admins all."""
    bookings, total = await booking_service.list_bookings(
        session,
        user=current_user,
        status=booking_status,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return _page(bookings, page=page, limit=limit, total=total)


@router.get("/upcoming", response_model=BookingPage, summary="Upcoming bookings")
async def upcoming_bookings(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> BookingPage:
    bookings, total = await booking_service.list_upcoming(
        session, user=current_user, skip=(page - 1) * limit, limit=limit
    )
    return _page(bookings, page=page, limit=limit, total=total)


@router.get("/history", response_model=BookingPage, summary="Past bookings")
async def booking_history(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> BookingPage:
    bookings, total = await booking_service.list_history(
        session, user=current_user, skip=(page - 1) * limit, limit=limit
    )
    return _page(bookings, page=page, limit=limit, total=total)


@router.get("/{booking_id}", response_model=BookingRead, summary="Get booking")
async def get_booking(
    booking_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> BookingRead:
    booking = await _load_booking(session, booking_id, current_user)
    return BookingRead.model_validate(booking)


@router.patch(
    "/{booking_id}/status", response_model=BookingRead, summary="Change booking status"
)
async def update_booking_status(
    booking_id: uuid.UUID,
    payload: BookingStatusUpdate,
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    background_tasks: BackgroundTasks,
) -> BookingRead:
    booking = await _load_booking(session, booking_id, current_user)
    previous = booking.status
    try:
        booking = await booking_service.update_status(
            session,
            booking=booking,
            actor=current_user,
            status=payload.status,
            note=payload.note,
        )
    except (PermissionError, ValueError) as exc:
        raise http_error_for(exc) from exc
    if booking.status != previous:
        await _announce_status(
            session, booking, actor=current_user, background_tasks=background_tasks
        )
        await audit_service.record_event(
            session,
            actor_id=current_user.id,
            action="booking.status",
            entity_type="booking",
            entity_id=booking.id,
            payload={"from": previous.value, "to": booking.status.value},
            ip_address=deps.client_ip(request),
            user_agent=deps.user_agent(request),
        )
    return BookingRead.model_validate(booking)


@router.patch(
    "/{booking_id}/cancel", response_model=BookingRead, summary="Cancel booking"
)
async def cancel_booking(
    booking_id: uuid.UUID,
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    background_tasks: BackgroundTasks,
    payload: BookingCancelRequest | None = None,
) -> BookingRead:
    booking = await _load_booking(session, booking_id, current_user)
    try:
        booking = await booking_service.cancel_booking(
            session,
            booking=booking,
            actor=current_user,
            reason=payload.reason if payload else None,
        )
    except (PermissionError, ValueError) as exc:
        raise http_error_for(exc) from exc
    await _announce_status(
        session, booking, actor=current_user, background_tasks=background_tasks
    )
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="booking.cancel",
        entity_type="booking",
        entity_id=booking.id,
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return BookingRead.model_validate(booking)


@router.get(
    "/{booking_id}/timeline", response_model=BookingTimeline, summary="Status timeline"
)
async def booking_timeline(
    booking_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> BookingTimeline:
    booking = await _load_booking(session, booking_id, current_user)
    return await booking_service.build_timeline(session, booking)


@router.get("/{booking_id}/invoice", response_model=InvoiceRead, summary="Invoice")
async def booking_invoice(
    booking_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> InvoiceRead:
    booking = await _load_booking(session, booking_id, current_user)
    return await booking_service.build_invoice(
        session, booking, currency=deps.settings.booking_currency
    )


@router.post(
    "/{booking_id}/review",
    response_model=ReviewRead,
    status_code=status.HTTP_201_CREATED,
    summary="Review a completed booking",
)
async def add_review(
    booking_id: uuid.UUID,
    payload: ReviewCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> ReviewRead:
    booking = await _load_booking(session, booking_id, current_user)
    try:
        review = await review_service.add_review(
            session,
            booking=booking,
            user=current_user,
            rating=payload.rating,
            comment=payload.comment,
        )
    except (PermissionError, ValueError) as exc:
        raise http_error_for(exc) from exc
    return ReviewRead.model_validate(review)


@router.post(
    "/{booking_id}/payments",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Start paying for a confirmed booking",
)
async def create_payment(
    booking_id: uuid.UUID,
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    stripe: Annotated[StripeClient | None, Depends(deps.get_stripe_client)],
) -> PaymentRead:
    booking = await _load_booking(session, booking_id, current_user)
    try:
        payment = await payments_service.create_payment(
            session,
            booking=booking,
            user=current_user,
            currency=deps.settings.booking_currency,
            stripe=stripe,
        )
    except (PermissionError, ValueError) as exc:
        raise http_error_for(exc) from exc
    except StripeClientError as exc:
        logger.exception("Stripe payment intent failed for booking %s", booking_id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)
        ) from exc
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="payment.create",
        entity_type="payment",
        entity_id=payment.id,
        payload={"booking_id": str(booking.id), "amount": str(payment.amount)},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return PaymentRead.model_validate(payment)
