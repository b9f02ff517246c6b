"""Payment schemas."""
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from lablinc.models.payment import PaymentProvider, PaymentStatus


class PaymentRead(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID
    user_id: uuid.UUID
    amount: Decimal
    currency: str
    status: PaymentStatus
    provider: PaymentProvider
    provider_reference: str | None = None
    client_secret: str | None = None
    refund_amount: Decimal
    refund_reason: str | None = None
    failure_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentComplete(BaseModel):
    provider_reference: str | None = Field(default=None, max_length=255)


class PaymentRefundRequest(BaseModel):
    amount: Decimal | None = Field(default=None, gt=Decimal("0"))
    reason: str | None = Field(default=None, max_length=1024)
