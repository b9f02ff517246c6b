"""ORM models package export."""

from lablinc.models.audit_event import AuditEvent
from lablinc.models.auth_token import AuthToken, AuthTokenPurpose
from lablinc.models.booking import Booking, BookingStatus, BookingStatusChange
from lablinc.models.contact_message import ContactMessage, ContactMessageStatus
from lablinc.models.instrument import (
    Instrument,
    InstrumentAvailability,
    InstrumentStatus,
)
from lablinc.models.notification import Notification, NotificationType
from lablinc.models.partner_application import (
    PartnerApplication,
    PartnerApplicationStatus,
)
from lablinc.models.payment import Payment, PaymentProvider, PaymentStatus
from lablinc.models.review import Review
from lablinc.models.user import User, UserRole, UserStatus
from lablinc.models.user_settings import UserSettings
from lablinc.services.pricing_service import RateType

__all__ = [
    "AuditEvent",
    "AuthToken",
    "AuthTokenPurpose",
    "Booking",
    "BookingStatus",
    "BookingStatusChange",
    "ContactMessage",
    "ContactMessageStatus",
    "Instrument",
    "InstrumentAvailability",
    "InstrumentStatus",
    "Notification",
    "NotificationType",
    "PartnerApplication",
    "PartnerApplicationStatus",
    "Payment",
    "PaymentProvider",
    "PaymentStatus",
    "RateType",
    "Review",
    "User",
    "UserRole",
    "UserStatus",
    "UserSettings",
]
