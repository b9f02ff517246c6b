"""Bootstrap helpers for default data."""

from __future__ import annotations

import logging

from lablinc.core.config import get_settings
from lablinc.db.session import get_sessionmaker
from lablinc.models import UserRole, UserStatus
from lablinc.schemas.user import UserCreate
from lablinc.services import user_service

logger = logging.getLogger(__name__)


async def ensure_default_admin() -> None:
    """Create the configured admin user if it does not exist yet."""

    settings = get_settings()
    if not settings.default_admin_email or not settings.default_admin_password:
        logger.debug("Default admin credentials not configured; skipping bootstrap")
        return
    sessionmaker = get_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        existing = await user_service.get_user_by_email(
            session, settings.default_admin_email
        )
        if existing is not None:
            return
        payload = UserCreate(
            name=settings.default_admin_name,
            email=settings.default_admin_email,
            password=settings.default_admin_password,
            role=UserRole.ADMIN,
            status=UserStatus.ACTIVE,
            email_verified=True,
        )
        await user_service.create_user(session, payload)
        logger.info("Created default admin %s", payload.email)
