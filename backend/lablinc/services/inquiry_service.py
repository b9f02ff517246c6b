"""Partner applications and contact messages submitted from the public site."""
from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.models.contact_message import ContactMessage, ContactMessageStatus
from lablinc.models.partner_application import (
    PartnerApplication,
    PartnerApplicationStatus,
)
from lablinc.schemas.inquiry import (
    ContactMessageCreate,
    ContactMessageUpdate,
    PartnerApplicationCreate,
    PartnerApplicationUpdate,
)

# An application in any of these states blocks a new one from the same address.
OPEN_APPLICATION_STATUSES = (
    PartnerApplicationStatus.PENDING,
    PartnerApplicationStatus.APPROVED,
    PartnerApplicationStatus.CONTACTED,
)


async def _page(session: AsyncSession, model, *, filters, skip: int, limit: int):
    total = await session.scalar(
        select(func.count()).select_from(model).where(*filters)
    )
    result = await session.execute(
        select(model)
        .where(*filters)
        .order_by(model.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), int(total or 0)


async def submit_partner_application(
    session: AsyncSession, payload: PartnerApplicationCreate
) -> PartnerApplication:
    existing = await session.scalar(
        select(func.count())
        .select_from(PartnerApplication)
        .where(
            PartnerApplication.email == payload.email,
            PartnerApplication.status.in_(OPEN_APPLICATION_STATUSES),
        )
    )
    if existing:
        raise ValueError("An application with this email is already under review")
    application = PartnerApplication(**payload.model_dump())
    session.add(application)
    await session.commit()
    await session.refresh(application)
    return application


async def get_partner_application(
    session: AsyncSession, application_id: uuid.UUID
) -> PartnerApplication:
    application = await session.get(PartnerApplication, application_id)
    if application is None:
        raise LookupError("Partner application not found")
    return application


async def list_partner_applications(
    session: AsyncSession,
    *,
    status: PartnerApplicationStatus | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[Sequence[PartnerApplication], int]:
    filters = [PartnerApplication.status == status] if status is not None else []
    return await _page(
        session, PartnerApplication, filters=filters, skip=skip, limit=limit
    )


async def update_partner_application(
    session: AsyncSession,
    application: PartnerApplication,
    payload: PartnerApplicationUpdate,
) -> PartnerApplication:
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "status" and value is None:
            continue
        setattr(application, field, value)
    await session.commit()
    await session.refresh(application)
    return application


async def submit_contact_message(
    session: AsyncSession, payload: ContactMessageCreate
) -> ContactMessage:
    message = ContactMessage(**payload.model_dump())
    session.add(message)
    await session.commit()
    await session.refresh(message)
    return message


async def get_contact_message(
    session: AsyncSession, message_id: uuid.UUID
) -> ContactMessage:
    message = await session.get(ContactMessage, message_id)
    if message is None:
        raise LookupError("Contact message not found")
    return message


async def list_contact_messages(
    session: AsyncSession,
    *,
    status: ContactMessageStatus | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[Sequence[ContactMessage], int]:
    filters = [ContactMessage.status == status] if status is not None else []
    return await _page(session, ContactMessage, filters=filters, skip=skip, limit=limit)


async def update_contact_message(
    session: AsyncSession, message: ContactMessage, payload: ContactMessageUpdate
) -> ContactMessage:
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "status" and value is None:
            continue
        setattr(message, field, value)
    await session.commit()
    await session.refresh(message)
    return message
