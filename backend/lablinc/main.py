"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from secure import Secure
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi_limiter import FastAPILimiter
import redis.asyncio as redis  # type: ignore[import-untyped]

from lablinc.api import api_router
from lablinc.core.config import get_settings
from lablinc.db.session import dispose_engine
from lablinc.security.logging_filters import install_sensitive_filter
from lablinc.services.bootstrap_service import ensure_default_admin
from lablinc.services.cache_service import TTLCache

logger = logging.getLogger(__name__)

settings = get_settings()

_ALLOWED_ORIGINS = [origin for origin in settings.cors_allowlist if origin]
if not _ALLOWED_ORIGINS:
    _ALLOWED_ORIGINS = ["http://localhost:5173"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    redis_pool = None
    if settings.redis_url:
        try:
            redis_pool = redis.from_url(
                settings.redis_url, encoding="utf-8", decode_responses=True
            )
            await FastAPILimiter.init(redis_pool)
        except Exception:  # pragma: no cover - limiter startup is best effort
            logger.exception("Failed to initialize rate limiter")
    try:
        await ensure_default_admin()
    except Exception:  # pragma: no cover - best effort bootstrap
        logger.exception("Failed to ensure default admin account")
    app.state.cache.start(settings.cache_purge_interval_seconds)
    try:
        yield
    finally:
        await app.state.cache.stop()
        if redis_pool is not None:
            try:
                await FastAPILimiter.close()
                await redis_pool.aclose()
            except Exception:  # pragma: no cover - limiter shutdown
                logger.exception("Failed to close rate limiter")
        await dispose_engine()


_secure_headers = Secure.with_default_headers()


def create_app() -> FastAPI:
    """Build the API application with middleware and a fresh catalogue cache."""
    application = FastAPI(title=settings.app_name, lifespan=lifespan)
    application.state.cache = TTLCache(default_ttl=settings.catalog_cache_ttl_seconds)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=_ALLOWED_ORIGINS,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    application.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")

    @application.middleware("http")
    async def _apply_security_headers(request, call_next):
        response = await call_next(request)
        _secure_headers.set_headers(response)
        return response

    application.include_router(api_router)

    @application.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Return a simple welcome message."""
        return {"message": "LabLinc API"}

    return application


install_sensitive_filter()

app = create_app()
