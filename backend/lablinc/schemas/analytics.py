"""Admin dashboard analytics."""
from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class PlatformAnalytics(BaseModel):
    """Platform-wide counters; revenue counts confirmed and completed bookings."""

    users_by_role: dict[str, int]
    total_users: int
    instruments_by_availability: dict[str, int]
    total_instruments: int
    bookings_by_status: dict[str, int]
    total_bookings: int
    total_revenue: Decimal
    average_booking_value: Decimal
    average_rating: float | None = None
