"""Price quote endpoint backed by stored rate cards."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.api import deps
from lablinc.schemas.pricing import QuoteRequest, QuoteResponse
from lablinc.services import booking_service

router = APIRouter()


@router.post("/quote", response_model=QuoteResponse, summary="Quote a booking window")
async def quote(
    payload: QuoteRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> QuoteResponse:
    """Price a window; unpriceable windows return ``available=false`` with a reason."""
    try:
        result = await booking_service.quote_for_window(
            session,
            instrument_id=payload.instrument_id,
            start_at=payload.start_at,
            end_at=payload.end_at,
        )
    except LookupError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
        ) from exc
    return QuoteResponse.from_result(result)
