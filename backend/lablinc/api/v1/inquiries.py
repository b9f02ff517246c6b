"""Public partner-application and contact forms."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.api import deps
from lablinc.schemas.inquiry import (
    ContactMessageCreate,
    ContactMessageRead,
    PartnerApplicationCreate,
    PartnerApplicationRead,
)
from lablinc.security.permissions import http_error_for
from lablinc.services import audit_service, inquiry_service, notification_service

router = APIRouter()

_FORM_RATE_DEP = deps.rate_limit(deps.settings.rate_limit_forms, fallback=(5, 60))
DbSession = Annotated[AsyncSession, Depends(deps.get_db_session)]


@router.post(
    "/partners",
    response_model=PartnerApplicationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to list instruments as a partner institute",
    dependencies=[_FORM_RATE_DEP],
)
async def apply_as_partner(
    payload: PartnerApplicationCreate,
    request: Request,
    session: DbSession,
    background_tasks: BackgroundTasks,
) -> PartnerApplicationRead:
    try:
        application = await inquiry_service.submit_partner_application(
            session, payload
        )
    except ValueError as exc:
        raise http_error_for(exc) from exc
    subject, body = notification_service.build_inquiry_receipt_email(
        name=application.contact_person, topic="partner application"
    )
    notification_service.schedule_email(
        background_tasks, recipients=[application.email], subject=subject, body=body
    )
    await audit_service.record_event(
        session,
        action="partner.apply",
        entity_type="partner_application",
        entity_id=application.id,
        payload={"institute_name": application.institute_name},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return PartnerApplicationRead.model_validate(application)


@router.post(
    "/contact",
    response_model=ContactMessageRead,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message to the LabLinc team",
    dependencies=[_FORM_RATE_DEP],
)
async def send_contact_message(
    payload: ContactMessageCreate,
    request: Request,
    session: DbSession,
    background_tasks: BackgroundTasks,
) -> ContactMessageRead:
    message = await inquiry_service.submit_contact_message(session, payload)
    subject, body = notification_service.build_inquiry_receipt_email(
        name=message.name, topic="message"
    )
    notification_service.schedule_email(
        background_tasks, recipients=[message.email], subject=subject, body=body
    )
    await audit_service.record_event(
        session,
        action="contact.submit",
        entity_type="contact_message",
        entity_id=message.id,
        payload={"subject": message.subject},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return ContactMessageRead.model_validate(message)
