"""Audit log schemas."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from lablinc.schemas.common import Pagination


class AuditEventRead(BaseModel):
    id: uuid.UUID
    actor_id: uuid.UUID | None = None
    action: str
    entity_type: str
    entity_id: uuid.UUID | None = None
    description: str | None = None
    payload: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditEventPage(BaseModel):
    logs: list[AuditEventRead]
    pagination: Pagination
