"""Versioned API router."""

from fastapi import APIRouter

from . import (
    admin,
    auth,
    bookings,
    health,
    inquiries,
    instruments,
    notifications,
    payments,
    pricing,
    users,
)

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(instruments.router, prefix="/instruments", tags=["instruments"])
router.include_router(pricing.router, prefix="/pricing", tags=["pricing"])
router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
router.include_router(payments.router, tags=["payments"])
router.include_router(
    notifications.router, prefix="/notifications", tags=["notifications"]
)
router.include_router(inquiries.router, tags=["inquiries"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
