"""Synchronous Python client for the LabLinc API."""

from lablinc.client.api_client import ApiError, LabLincClient
from lablinc.client.booking_form import BookingForm, BookingFormError

__all__ = ["ApiError", "BookingForm", "BookingFormError", "LabLincClient"]
