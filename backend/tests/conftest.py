"""Test fixtures for the LabLinc backend."""
from __future__ import annotations

import os
from collections.abc import AsyncIterator
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from lablinc.core.config import get_settings
from lablinc.core.security import get_password_hash
from lablinc.db.base import Base
from lablinc.db.session import dispose_engine, get_sessionmaker
from lablinc.main import app
from lablinc.models import (
    Instrument,
    User,
    UserRole,
    UserSettings,
    UserStatus,
)
from lablinc.services.cache_service import TTLCache


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


def _user(name: str, email: str, password: str, role: UserRole) -> User:
    return User(
        name=name,
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
        status=UserStatus.ACTIVE,
        organization=f"{name} Org",
        email_verified=True,
    )


@pytest_asyncio.fixture()
async def app_context(
    reset_database: AsyncIterator[None], db_url: str
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client plus seeded MSME, institute, admin and instrument."""
    sessionmaker = get_sessionmaker(db_url)
    password = "Passw0rd!"

    async with sessionmaker() as session:
        msme = _user("Asha Startup", "msme@example.com", password, UserRole.MSME)
        institute = _user(
            "Central Lab", "institute@example.com", password, UserRole.INSTITUTE
        )
        admin = _user("Platform Admin", "admin@example.com", password, UserRole.ADMIN)
        session.add_all([msme, institute, admin])
        await session.flush()
        session.add_all([UserSettings(user_id=user.id) for user in (msme, institute, admin)])

        instrument = Instrument(
            name="Scanning Electron Microscope",
            description="Field emission SEM with EDS detector",
            category="Microscopy",
            specifications={"resolution": "1 nm"},
            owner_id=institute.id,
            owner_name=institute.name,
            location="Bengaluru",
            photos=[],
            videos=[],
        )
        instrument.apply_pricing({"hourly": Decimal("100"), "daily": Decimal("1000")})
        session.add(instrument)
        await session.commit()

        context: dict[str, object] = {
            "password": password,
            "msme_id": msme.id,
            "msme_email": msme.email,
            "institute_id": institute.id,
            "institute_email": institute.email,
            "admin_id": admin.id,
            "admin_email": admin.email,
            "instrument_id": instrument.id,
        }

    app.state.cache = TTLCache()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        context["client"] = client
        yield context
    app.dependency_overrides.clear()
