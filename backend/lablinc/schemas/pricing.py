"""Schemas for the price quote endpoint."""
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from lablinc.services.pricing_service import PriceQuote, QuoteFailure, QuoteResult, RateType


class QuoteRequest(BaseModel):
    instrument_id: uuid.UUID
    start_at: datetime
    end_at: datetime


class QuoteRead(BaseModel):
    """Breakdown of a successful quote."""

    rate_type: RateType
    rate: Decimal
    units_charged: int
    total_hours: Decimal
    total_days: Decimal
    base_amount: Decimal
    security_fee_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal


class QuoteResponse(BaseModel):
    """Either a quote or the reason the window cannot be priced."""

    available: bool
    quote: QuoteRead | None = None
    reason: QuoteFailure | None = None
    message: str | None = None

    @classmethod
    def from_result(cls, result: QuoteResult) -> QuoteResponse:
        if isinstance(result, PriceQuote):
            return cls(
                available=True,
                quote=QuoteRead(
                    rate_type=result.rate_type,
                    rate=result.rate,
                    units_charged=result.units_charged,
                    total_hours=result.total_hours,
                    total_days=result.total_days,
                    base_amount=result.base_amount,
                    security_fee_amount=result.security_fee_amount,
                    tax_amount=result.tax_amount,
                    total_amount=result.total_amount,
                ),
            )
        return cls(available=False, reason=result.reason, message=result.message)
