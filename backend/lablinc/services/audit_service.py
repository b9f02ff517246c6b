"""Helper utilities for recording and reading audit events."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.models.audit_event import AuditEvent


async def record_event(
    session: AsyncSession,
    *,
    action: str,
    entity_type: str,
    actor_id: uuid.UUID | None = None,
    entity_id: uuid.UUID | None = None,
    description: str | None = None,
    payload: dict[str, Any] | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AuditEvent:
    """Persist an audit event and return it."""
    event = AuditEvent(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
        payload=payload,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    session.add(event)
    await session.commit()
    await session.refresh(event)
    return event


async def list_events(
    session: AsyncSession,
    *,
    action: str | None = None,
    entity_type: str | None = None,
    actor_id: uuid.UUID | None = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[Sequence[AuditEvent], int]:
    """Return a page of audit events, newest first, plus the total count."""
    filters = []
    if action:
        filters.append(AuditEvent.action == action)
    if entity_type:
        filters.append(AuditEvent.entity_type == entity_type)
    if actor_id:
        filters.append(AuditEvent.actor_id == actor_id)

    total = await session.scalar(
        select(func.count()).select_from(AuditEvent).where(*filters)
    )
    result = await session.execute(
        select(AuditEvent)
        .where(*filters)
        .order_by(AuditEvent.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), int(total or 0)
