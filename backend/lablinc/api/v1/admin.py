"""Administrative endpoints: users, bookings, featuring, inquiries, analytics and logs."""

from __future__ import annotations

import secrets
import uuid
from typing import Annotated

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Query,
    Request,
    Response,
    status,
)
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.api import deps
from lablinc.models.booking import BookingStatus
from lablinc.models.contact_message import ContactMessageStatus
from lablinc.models.notification import NotificationType
from lablinc.models.partner_application import PartnerApplicationStatus
from lablinc.models.user import User, UserRole, UserStatus
from lablinc.schemas.analytics import PlatformAnalytics
from lablinc.schemas.audit import AuditEventPage, AuditEventRead
from lablinc.schemas.booking import AdminBookingCreate, BookingPage, BookingRead
from lablinc.schemas.common import Pagination
from lablinc.schemas.inquiry import (
    ContactMessagePage,
    ContactMessageRead,
    ContactMessageUpdate,
    PartnerApplicationPage,
    PartnerApplicationRead,
    PartnerApplicationUpdate,
)
from lablinc.schemas.instrument import InstrumentFeatureUpdate, InstrumentRead
from lablinc.schemas.user import (
    AdminPasswordReset,
    AdminPasswordResetResult,
    AdminUserCreate,
    UserPage,
    UserRead,
    UserStatusUpdate,
)
from lablinc.security.permissions import http_error_for
from lablinc.services import (
    analytics_service,
    audit_service,
    auth_service,
    booking_service,
    inquiry_service,
    instrument_service,
    notification_service,
    notifications_service,
    user_service,
)
from lablinc.services.cache_service import TTLCache

router = APIRouter()

AdminUser = Annotated[User, Depends(deps.get_current_admin)]
DbSession = Annotated[AsyncSession, Depends(deps.get_db_session)]


@router.get("/users", response_model=UserPage, summary="List users")
async def list_users(
    session: DbSession,
    _: AdminUser,
    role: UserRole | None = None,
    user_status: Annotated[UserStatus | None, Query(alias="status")] = None,
    search: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> UserPage:
    users, total = await user_service.list_users(
        session,
        role=role,
        status=user_status,
        search=search,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return UserPage(
        users=[UserRead.model_validate(user) for user in users],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )


@router.patch(
    "/users/{user_id}/status", response_model=UserRead, summary="Change user status"
)
async def update_user_status(
    user_id: uuid.UUID,
    payload: UserStatusUpdate,
    request: Request,
    session: DbSession,
    current_user: AdminUser,
) -> UserRead:
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Administrators cannot change their own status",
        )
    user = await user_service.get_user(session, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    previous = user.status
    user = await user_service.set_status(session, user, payload.status)
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="user.status",
        entity_type="user",
        entity_id=user.id,
        payload={"from": previous.value, "to": user.status.value},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return UserRead.model_validate(user)


async def _load_user(session: AsyncSession, user_id: uuid.UUID) -> User:
    user = await user_service.get_user(session, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post(
    "/users",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
)
async def create_user(
    payload: AdminUserCreate,
    request: Request,
    session: DbSession,
    current_user: AdminUser,
) -> UserRead:
    try:
        user = await user_service.create_user(session, payload)
    except ValueError as exc:
        raise http_error_for(exc) from exc
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="user.create",
        entity_type="user",
        entity_id=user.id,
        payload={"email": user.email, "role": user.role.value},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return UserRead.model_validate(user)


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a user without marketplace history",
)
async def delete_user(
    user_id: uuid.UUID,
    request: Request,
    session: DbSession,
    current_user: AdminUser,
) -> Response:
    user = await _load_user(session, user_id)
    email = user.email
    try:
        await user_service.delete_user(session, user, actor=current_user)
    except ValueError as exc:
        raise http_error_for(exc) from exc
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="user.delete",
        entity_type="user",
        entity_id=user_id,
        payload={"email": email},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/users/{user_id}/reset-password",
    response_model=AdminPasswordResetResult,
    summary="Set or generate a new password for a user",
)
async def reset_user_password(
    user_id: uuid.UUID,
    request: Request,
    session: DbSession,
    current_user: AdminUser,
    background_tasks: BackgroundTasks,
    payload: AdminPasswordReset | None = None,
) -> AdminPasswordResetResult:
    """Signs the user out everywhere; a generated password is also emailed to them."""
    user = await _load_user(session, user_id)
    temporary = None
    password = payload.password if payload else None
    if password is None:
        temporary = password = secrets.token_urlsafe(12)
    user = await auth_service.set_password(session, user, password)
    if temporary is not None:
        subject, body = notification_service.build_admin_password_email(
            name=user.name, password=temporary
        )
        notification_service.schedule_email(
            background_tasks, recipients=[user.email], subject=subject, body=body
        )
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="user.password_reset",
        entity_type="user",
        entity_id=user.id,
        payload={"generated": temporary is not None},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return AdminPasswordResetResult(
        user=UserRead.model_validate(user), temporary_password=temporary
    )


@router.patch(
    "/users/{user_id}/verify-email",
    response_model=UserRead,
    summary="Mark a user's email as verified",
)
async def verify_user_email(
    user_id: uuid.UUID,
    request: Request,
    session: DbSession,
    current_user: AdminUser,
) -> UserRead:
    user = await _load_user(session, user_id)
    user = await user_service.set_email_verified(session, user)
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="user.verify_email",
        entity_type="user",
        entity_id=user.id,
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return UserRead.model_validate(user)


@router.get("/bookings", response_model=BookingPage, summary="List all bookings")
async def list_bookings(
    session: DbSession,
    _: AdminUser,
    booking_status: Annotated[BookingStatus | None, Query(alias="status")] = None,
    instrument_id: uuid.UUID | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> BookingPage:
    bookings, total = await booking_service.list_bookings(
        session,
        status=booking_status,
        instrument_id=instrument_id,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return BookingPage(
        bookings=[BookingRead.model_validate(item) for item in bookings],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )


@router.post(
    "/bookings",
    response_model=BookingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Book an instrument on behalf of an MSME",
)
async def create_booking(
    payload: AdminBookingCreate,
    request: Request,
    session: DbSession,
    current_user: AdminUser,
    background_tasks: BackgroundTasks,
) -> BookingRead:
    """Priced from the instrument's rate card exactly like a self-service booking."""
    user = await _load_user(session, payload.user_id)
    try:
        booking = await booking_service.create_booking(
            session,
            user=user,
            created_by=current_user,
            **payload.model_dump(exclude={"user_id", "status"}),
        )
        if payload.status == BookingStatus.CONFIRMED:
            booking = await booking_service.update_status(
                session,
                booking=booking,
                actor=current_user,
                status=BookingStatus.CONFIRMED,
                note="Confirmed on creation",
            )
    except (LookupError, PermissionError, ValueError) as exc:
        raise http_error_for(exc) from exc

    await notifications_service.notify(
        session,
        recipient_id=booking.owner_id,
        sender_id=current_user.id,
        type=NotificationType.BOOKING_CREATED,
        title="New booking",
        message=(
            f"{current_user.name} booked {booking.instrument_name} "
            f"for {booking.user_name}."
        ),
        booking_id=booking.id,
    )
    await notifications_service.notify(
        session,
        recipient_id=booking.user_id,
        sender_id=current_user.id,
        type=(
            NotificationType.BOOKING_CONFIRMED
            if booking.status == BookingStatus.CONFIRMED
            else NotificationType.BOOKING_CREATED
        ),
        title=f"Booking {booking.status.value}",
        message=(
            f"A booking for {booking.instrument_name} was made for you and is "
            f"{booking.status.value}."
        ),
        booking_id=booking.id,
    )
    subject, body = notification_service.build_booking_status_email(
        user_name=booking.user_name,
        instrument_name=booking.instrument_name,
        status=booking.status.value,
        invoice_number=booking.invoice_number,
    )
    notification_service.schedule_email(
        background_tasks, recipients=[booking.user.email], subject=subject, body=body
    )
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="booking.admin_create",
        entity_type="booking",
        entity_id=booking.id,
        payload={
            "user_id": str(booking.user_id),
            "instrument_id": str(booking.instrument_id),
            "status": booking.status.value,
            "total_amount": str(booking.total_amount),
        },
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return BookingRead.model_validate(booking)


@router.patch(
    "/instruments/{instrument_id}/feature",
    response_model=InstrumentRead,
    summary="Feature or unfeature an instrument",
)
async def feature_instrument(
    instrument_id: uuid.UUID,
    payload: InstrumentFeatureUpdate,
    request: Request,
    session: DbSession,
    current_user: AdminUser,
    cache: Annotated[TTLCache, Depends(deps.get_cache)],
) -> InstrumentRead:
    instrument = await instrument_service.get_instrument(
        session, instrument_id, include_inactive=True
    )
    if instrument is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Instrument not found"
        )
    instrument = await instrument_service.set_featured(
        session, instrument=instrument, featured=payload.featured, cache=cache
    )
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="instrument.feature",
        entity_type="instrument",
        entity_id=instrument.id,
        payload={"featured": instrument.featured},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return InstrumentRead.model_validate(instrument)


@router.get(
    "/partners", response_model=PartnerApplicationPage, summary="Partner applications"
)
async def list_partner_applications(
    session: DbSession,
    _: AdminUser,
    application_status: Annotated[
        PartnerApplicationStatus | None, Query(alias="status")
    ] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> PartnerApplicationPage:
    applications, total = await inquiry_service.list_partner_applications(
        session, status=application_status, skip=(page - 1) * limit, limit=limit
    )
    return PartnerApplicationPage(
        applications=[PartnerApplicationRead.model_validate(a) for a in applications],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )


@router.patch(
    "/partners/{application_id}",
    response_model=PartnerApplicationRead,
    summary="Review a partner application",
)
async def update_partner_application(
    application_id: uuid.UUID,
    payload: PartnerApplicationUpdate,
    request: Request,
    session: DbSession,
    current_user: AdminUser,
) -> PartnerApplicationRead:
    try:
        application = await inquiry_service.get_partner_application(
            session, application_id
        )
    except LookupError as exc:
        raise http_error_for(exc) from exc
    previous = application.status
    application = await inquiry_service.update_partner_application(
        session, application, payload
    )
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="partner.review",
        entity_type="partner_application",
        entity_id=application.id,
        payload={"from": previous.value, "to": application.status.value},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return PartnerApplicationRead.model_validate(application)


@router.get("/contacts", response_model=ContactMessagePage, summary="Contact messages")
async def list_contact_messages(
    session: DbSession,
    _: AdminUser,
    message_status: Annotated[ContactMessageStatus | None, Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> ContactMessagePage:
    messages, total = await inquiry_service.list_contact_messages(
        session, status=message_status, skip=(page - 1) * limit, limit=limit
    )
    return ContactMessagePage(
        messages=[ContactMessageRead.model_validate(m) for m in messages],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )


@router.patch(
    "/contacts/{message_id}",
    response_model=ContactMessageRead,
    summary="Update a contact message",
)
async def update_contact_message(
    message_id: uuid.UUID,
    payload: ContactMessageUpdate,
    session: DbSession,
    _: AdminUser,
) -> ContactMessageRead:
    try:
        message = await inquiry_service.get_contact_message(session, message_id)
    except LookupError as exc:
        raise http_error_for(exc) from exc
    message = await inquiry_service.update_contact_message(session, message, payload)
    return ContactMessageRead.model_validate(message)


@router.get("/analytics", response_model=PlatformAnalytics, summary="Platform analytics")
async def analytics(session: DbSession, _: AdminUser) -> PlatformAnalytics:
    return await analytics_service.platform_analytics(session)


@router.get("/logs", response_model=AuditEventPage, summary="Audit log")
async def audit_logs(
    session: DbSession,
    _: AdminUser,
    action: str | None = None,
    entity_type: str | None = None,
    actor_id: uuid.UUID | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> AuditEventPage:
    events, total = await audit_service.list_events(
        session,
        action=action,
        entity_type=entity_type,
        actor_id=actor_id,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return AuditEventPage(
        logs=[AuditEventRead.model_validate(event) for event in events],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )
