"""Instrument catalogue service helpers."""
from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lablinc.integrations.s3_client import S3Client
from lablinc.models.booking import Booking, BookingStatus
from lablinc.models.instrument import (
    Instrument,
    InstrumentAvailability,
    InstrumentStatus,
)
from lablinc.models.user import User, UserRole
from lablinc.schemas.common import Pagination
from lablinc.schemas.instrument import (
    InstrumentAvailabilityRead,
    InstrumentCreate,
    InstrumentPage,
    InstrumentRead,
    InstrumentUpdate,
)
from lablinc.services import image_service
from lablinc.services.cache_service import TTLCache

CATALOGUE_CACHE_PREFIX = "instruments:"

BLOCKING_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


def _coerce_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _catalogue_key(
    *,
    search: str | None,
    category: str | None,
    availability: InstrumentAvailability | None,
    page: int,
    limit: int,
) -> str:
    availability_value = availability.value if availability else ""
    return (
        f"{CATALOGUE_CACHE_PREFIX}list:{(search or '').strip().lower()}:"
        f"{category or ''}:{availability_value}:{page}:{limit}"
    )


def invalidate_catalogue(cache: TTLCache | None) -> None:
    """Drop every cached catalogue page after an instrument mutation."""
    if cache is not None:
        cache.delete_prefix(CATALOGUE_CACHE_PREFIX)


def assert_can_manage(instrument: Instrument, user: User) -> None:
    if user.role != UserRole.ADMIN and instrument.owner_id != user.id:
        raise PermissionError("Not authorized to modify this instrument")


async def list_instruments(
    session: AsyncSession,
    *,
    search: str | None = None,
    category: str | None = None,
    availability: InstrumentAvailability | None = None,
    owner_id: uuid.UUID | None = None,
    skip: int = 0,
    limit: int = 10,
) -> tuple[Sequence[Instrument], int]:
    """Active instruments matching the filters, featured first then newest."""
    filters = [Instrument.status == InstrumentStatus.ACTIVE]
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        filters.append(
            or_(
                func.lower(Instrument.name).like(pattern),
                func.lower(Instrument.description).like(pattern),
                func.lower(Instrument.category).like(pattern),
                func.lower(Instrument.location).like(pattern),
            )
        )
    if category:
        filters.append(Instrument.category == category)
    if availability is not None:
        filters.append(Instrument.availability == availability)
    if owner_id is not None:
        filters.append(Instrument.owner_id == owner_id)

    total = await session.scalar(
        select(func.count()).select_from(Instrument).where(*filters)
    )
    result = await session.execute(
        select(Instrument)
        .where(*filters)
        .order_by(Instrument.featured.desc(), Instrument.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), int(total or 0)


async def catalogue_page(
    session: AsyncSession,
    cache: TTLCache,
    *,
    search: str | None = None,
    category: str | None = None,
    availability: InstrumentAvailability | None = None,
    page: int = 1,
    limit: int = 10,
    ttl: float | None = None,
) -> InstrumentPage:
    """Public catalogue listing, served from ``cache`` when warm."""
    key = _catalogue_key(
        search=search,
        category=category,
        availability=availability,
        page=page,
        limit=limit,
    )
    cached = cache.get(key)
    if cached is not None:
        return cached
    instruments, total = await list_instruments(
        session,
        search=search,
        category=category,
        availability=availability,
        skip=(page - 1) * limit,
        limit=limit,
    )
    listing = InstrumentPage(
        instruments=[InstrumentRead.model_validate(item) for item in instruments],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )
    cache.set(key, listing, ttl=ttl)
    return listing


async def get_instrument(
    session: AsyncSession,
    instrument_id: uuid.UUID,
    *,
    include_inactive: bool = False,
) -> Instrument | None:
    stmt = select(Instrument).where(Instrument.id == instrument_id)
    if include_inactive:
        stmt = stmt.where(Instrument.status != InstrumentStatus.DELETED)
    else:
        stmt = stmt.where(Instrument.status == InstrumentStatus.ACTIVE)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def count_conflicts(
    session: AsyncSession,
    *,
    instrument_id: uuid.UUID,
    start_at: datetime,
    end_at: datetime,
    exclude_booking_id: uuid.UUID | None = None,
) -> int:
    """Count pending/confirmed bookings overlapping ``[start_at, end_at)``."""
    stmt = (
        select(func.count())
        .select_from(Booking)
        .where(
            Booking.instrument_id == instrument_id,
            Booking.status.in_(BLOCKING_BOOKING_STATUSES),
            Booking.start_at < _coerce_utc(end_at),
            Booking.end_at > _coerce_utc(start_at),
        )
    )
    if exclude_booking_id is not None:
        stmt = stmt.where(Booking.id != exclude_booking_id)
    return int(await session.scalar(stmt) or 0)


async def check_availability(
    session: AsyncSession,
    instrument: Instrument,
    *,
    start_at: datetime,
    end_at: datetime,
) -> InstrumentAvailabilityRead:
    if _coerce_utc(end_at) <= _coerce_utc(start_at):
        raise ValueError("End date must be after start date")
    conflicts = await count_conflicts(
        session, instrument_id=instrument.id, start_at=start_at, end_at=end_at
    )
    return InstrumentAvailabilityRead(
        available=conflicts == 0
        and instrument.availability == InstrumentAvailability.AVAILABLE,
        instrument_status=instrument.availability,
        conflicting_bookings=conflicts,
    )


async def create_instrument(
    session: AsyncSession,
    *,
    owner: User,
    payload: InstrumentCreate,
    cache: TTLCache | None = None,
) -> Instrument:
    if owner.role not in {UserRole.INSTITUTE, UserRole.ADMIN}:
        raise PermissionError("Only institutes can list instruments")
    data = payload.model_dump(exclude={"pricing"})
    instrument = Instrument(**data, owner_id=owner.id, owner_name=owner.name)
    instrument.apply_pricing(payload.pricing.model_dump())
    session.add(instrument)
    await session.commit()
    await session.refresh(instrument)
    invalidate_catalogue(cache)
    return instrument


async def update_instrument(
    session: AsyncSession,
    *,
    instrument: Instrument,
    user: User,
    payload: InstrumentUpdate,
    cache: TTLCache | None = None,
) -> Instrument:
    assert_can_manage(instrument, user)
    changes = payload.model_dump(exclude_unset=True)
    pricing = changes.pop("pricing", None)
    for field, value in changes.items():
        if value is not None:
            setattr(instrument, field, value)
    if pricing is not None:
        instrument.apply_pricing(pricing)
    await session.commit()
    await session.refresh(instrument)
    invalidate_catalogue(cache)
    return instrument


async def delete_instrument(
    session: AsyncSession,
    *,
    instrument: Instrument,
    user: User,
    cache: TTLCache | None = None,
) -> None:
    """Soft-delete: the row stays so existing bookings keep their reference."""
    assert_can_manage(instrument, user)
    instrument.status = InstrumentStatus.DELETED
    instrument.featured = False
    await session.commit()
    invalidate_catalogue(cache)


async def set_featured(
    session: AsyncSession,
    *,
    instrument: Instrument,
    featured: bool,
    cache: TTLCache | None = None,
) -> Instrument:
    instrument.featured = featured
    await session.commit()
    await session.refresh(instrument)
    invalidate_catalogue(cache)
    return instrument


async def add_photo(
    session: AsyncSession,
    *,
    instrument: Instrument,
    user: User,
    data: bytes,
    storage: S3Client,
    max_width: int,
    quality: int,
    cache: TTLCache | None = None,
) -> Instrument:
    """Convert an upload to WebP, store it and append its URL to the listing."""
    assert_can_manage(instrument, user)
    webp_bytes, width, height = image_service.to_webp(data, max_width, quality)
    key = image_service.photo_key(str(instrument.id), image_service.hash_bytes(webp_bytes))
    storage.put_object(
        key,
        webp_bytes,
        content_type="image/webp",
        tags={"instrument_id": str(instrument.id), "size": f"{width}x{height}"},
    )
    url = storage.build_object_url(key)
    if url not in instrument.photos:
        instrument.photos = [*instrument.photos, url]
    await session.commit()
    await session.refresh(instrument)
    invalidate_catalogue(cache)
    return instrument
