"""Instrument catalogue endpoints."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Annotated

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.api import deps
from lablinc.core.config import get_settings
from lablinc.integrations.s3_client import S3Client, S3ClientError
from lablinc.models.instrument import Instrument, InstrumentAvailability
from lablinc.models.user import User, UserRole
from lablinc.schemas.instrument import (
    InstrumentAvailabilityRead,
    InstrumentCreate,
    InstrumentPage,
    InstrumentRead,
    InstrumentUpdate,
)
from lablinc.schemas.common import Pagination
from lablinc.schemas.review import ReviewRead, ReviewSummary
from lablinc.security.permissions import http_error_for, require_roles
from lablinc.services import audit_service, instrument_service, review_service
from lablinc.services.cache_service import TTLCache

logger = logging.getLogger(__name__)

router = APIRouter()

settings = get_settings()


async def _load_instrument(
    session: AsyncSession, instrument_id: uuid.UUID, *, include_inactive: bool = False
) -> Instrument:
    instrument = await instrument_service.get_instrument(
        session, instrument_id, include_inactive=include_inactive
    )
    if instrument is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Instrument not found"
        )
    return instrument


@router.get("", response_model=InstrumentPage, summary="Browse instruments")
async def list_instruments(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    cache: Annotated[TTLCache, Depends(deps.get_cache)],
    search: str | None = None,
    category: str | None = None,
    availability: InstrumentAvailability | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> InstrumentPage:
    """Active instruments, featured first; pages are cached briefly."""
    return await instrument_service.catalogue_page(
        session,
        cache,
        search=search,
        category=category,
        availability=availability,
        page=page,
        limit=limit,
        ttl=settings.catalog_cache_ttl_seconds,
    )


@router.get("/mine", response_model=InstrumentPage, summary="Own instruments")
async def list_my_instruments(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> InstrumentPage:
    require_roles(current_user, {UserRole.INSTITUTE, UserRole.ADMIN})
    instruments, total = await instrument_service.list_instruments(
        session, owner_id=current_user.id, skip=(page - 1) * limit, limit=limit
    )
    return InstrumentPage(
        instruments=[InstrumentRead.model_validate(item) for item in instruments],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )


@router.get("/{instrument_id}", response_model=InstrumentRead, summary="Get instrument")
async def get_instrument(
    instrument_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> InstrumentRead:
    instrument = await _load_instrument(session, instrument_id)
    return InstrumentRead.model_validate(instrument)


@router.get(
    "/{instrument_id}/availability",
    response_model=InstrumentAvailabilityRead,
    summary="Check availability for a window",
)
async def check_availability(
    instrument_id: uuid.UUID,
    start_at: datetime,
    end_at: datetime,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> InstrumentAvailabilityRead:
    instrument = await _load_instrument(session, instrument_id, include_inactive=True)
    try:
        return await instrument_service.check_availability(
            session, instrument, start_at=start_at, end_at=end_at
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc


@router.post(
    "",
    response_model=InstrumentRead,
    status_code=status.HTTP_201_CREATED,
    summary="List a new instrument",
)
async def create_instrument(
    payload: InstrumentCreate,
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    cache: Annotated[TTLCache, Depends(deps.get_cache)],
) -> InstrumentRead:
    try:
        instrument = await instrument_service.create_instrument(
            session, owner=current_user, payload=payload, cache=cache
        )
    except (PermissionError, ValueError) as exc:
        raise http_error_for(exc) from exc
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="instrument.create",
        entity_type="instrument",
        entity_id=instrument.id,
        payload={"name": instrument.name, "category": instrument.category},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return InstrumentRead.model_validate(instrument)


@router.patch(
    "/{instrument_id}", response_model=InstrumentRead, summary="Update instrument"
)
async def update_instrument(
    instrument_id: uuid.UUID,
    payload: InstrumentUpdate,
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    cache: Annotated[TTLCache, Depends(deps.get_cache)],
) -> InstrumentRead:
    instrument = await _load_instrument(session, instrument_id, include_inactive=True)
    try:
        updated = await instrument_service.update_instrument(
            session,
            instrument=instrument,
            user=current_user,
            payload=payload,
            cache=cache,
        )
    except PermissionError as exc:
        raise http_error_for(exc) from exc
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="instrument.update",
        entity_type="instrument",
        entity_id=updated.id,
        payload={"fields": sorted(payload.model_dump(exclude_unset=True))},
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )
    return InstrumentRead.model_validate(updated)


@router.delete(
    "/{instrument_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove instrument from the catalogue",
)
async def delete_instrument(
    instrument_id: uuid.UUID,
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    cache: Annotated[TTLCache, Depends(deps.get_cache)],
) -> None:
    instrument = await _load_instrument(session, instrument_id, include_inactive=True)
    try:
        await instrument_service.delete_instrument(
            session, instrument=instrument, user=current_user, cache=cache
        )
    except PermissionError as exc:
        raise http_error_for(exc) from exc
    await audit_service.record_event(
        session,
        actor_id=current_user.id,
        action="instrument.delete",
        entity_type="instrument",
        entity_id=instrument_id,
        ip_address=deps.client_ip(request),
        user_agent=deps.user_agent(request),
    )


@router.post(
    "/{instrument_id}/photos",
    response_model=InstrumentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Upload an instrument photo",
)
async def upload_photo(
    instrument_id: uuid.UUID,
    file: Annotated[UploadFile, File(...)],
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    storage: Annotated[S3Client, Depends(deps.get_storage)],
    cache: Annotated[TTLCache, Depends(deps.get_cache)],
) -> InstrumentRead:
    instrument = await _load_instrument(session, instrument_id, include_inactive=True)
    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty upload")
    if len(data) > settings.image_max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Image exceeds the maximum upload size",
        )
    try:
        updated = await instrument_service.add_photo(
            session,
            instrument=instrument,
            user=current_user,
            data=data,
            storage=storage,
            max_width=settings.image_max_width,
            quality=settings.image_webp_quality,
            cache=cache,
        )
    except (PermissionError, ValueError) as exc:
        raise http_error_for(exc) from exc
    except S3ClientError as exc:
        logger.exception("Photo upload failed for instrument %s", instrument_id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Storage unavailable"
        ) from exc
    return InstrumentRead.model_validate(updated)


@router.get(
    "/{instrument_id}/reviews",
    response_model=ReviewSummary,
    summary="Reviews for an instrument",
)
async def list_reviews(
    instrument_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> ReviewSummary:
    await _load_instrument(session, instrument_id, include_inactive=True)
    reviews, average = await review_service.list_for_instrument(session, instrument_id)
    return ReviewSummary(
        instrument_id=instrument_id,
        average_rating=average,
        count=len(reviews),
        reviews=[ReviewRead.model_validate(review) for review in reviews],
    )
