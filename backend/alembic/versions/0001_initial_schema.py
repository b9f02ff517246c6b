"""Initial LabLinc schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_user_role = sa.Enum("MSME", "INSTITUTE", "ADMIN", name="userrole")
_user_status = sa.Enum("ACTIVE", "INACTIVE", "SUSPENDED", name="userstatus")
_instrument_availability = sa.Enum(
    "AVAILABLE", "BOOKED", "MAINTENANCE", "UNAVAILABLE", name="instrumentavailability"
)
_instrument_status = sa.Enum("ACTIVE", "INACTIVE", "DELETED", name="instrumentstatus")
_booking_status = sa.Enum(
    "PENDING", "CONFIRMED", "REJECTED", "COMPLETED", "CANCELLED", name="bookingstatus"
)
_rate_type = sa.Enum("HOURLY", "DAILY", "WEEKLY", "MONTHLY", name="ratetype")
_payment_status = sa.Enum(
    "PENDING", "PROCESSING", "COMPLETED", "FAILED", "REFUNDED", name="paymentstatus"
)
_payment_provider = sa.Enum("STRIPE", "MANUAL", name="paymentprovider")
_notification_type = sa.Enum(
    "BOOKING_CREATED",
    "BOOKING_CONFIRMED",
    "BOOKING_CANCELLED",
    "BOOKING_COMPLETED",
    "SYSTEM",
    name="notificationtype",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _money(name: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", _user_role, nullable=False),
        sa.Column("status", _user_status, nullable=False),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("organization", sa.String(length=255)),
        sa.Column("address", sa.String(length=512)),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "user_settings",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("email_notifications", sa.Boolean(), nullable=False),
        sa.Column("sms_notifications", sa.Boolean(), nullable=False),
        sa.Column("booking_reminders", sa.Boolean(), nullable=False),
        sa.Column("language", sa.String(length=16), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_user_settings_user_id"),
    )

    op.create_table(
        "instruments",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=False),
        sa.Column("specifications", sa.JSON(), nullable=False),
        sa.Column(
            "owner_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("owner_name", sa.String(length=200), nullable=False),
        _money("rate_hourly", nullable=True),
        _money("rate_daily", nullable=True),
        _money("rate_weekly", nullable=True),
        _money("rate_monthly", nullable=True),
        sa.Column("availability", _instrument_availability, nullable=False),
        sa.Column("location", sa.String(length=255), nullable=False),
        sa.Column("photos", sa.JSON(), nullable=False),
        sa.Column("videos", sa.JSON(), nullable=False),
        sa.Column("featured", sa.Boolean(), nullable=False),
        sa.Column("status", _instrument_status, nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_instruments_status_category", "instruments", ["status", "category"]
    )
    op.create_index("ix_instruments_owner_id", "instruments", ["owner_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "instrument_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("instruments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("instrument_name", sa.String(length=255), nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_name", sa.String(length=200), nullable=False),
        sa.Column(
            "owner_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("owner_name", sa.String(length=200), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", _booking_status, nullable=False),
        sa.Column("rate_type", _rate_type, nullable=False),
        _money("rate"),
        sa.Column("units_charged", sa.Integer(), nullable=False),
        _money("base_amount"),
        _money("security_fee_amount"),
        _money("tax_amount"),
        _money("total_amount"),
        sa.Column("notes", sa.Text()),
        sa.Column("invoice_number", sa.String(length=64)),
        sa.Column("agreement_accepted", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("invoice_number", name="uq_bookings_invoice_number"),
    )
    op.create_index("ix_bookings_user_status", "bookings", ["user_id", "status"])
    op.create_index("ix_bookings_owner_status", "bookings", ["owner_id", "status"])
    op.create_index(
        "ix_bookings_instrument_window",
        "bookings",
        ["instrument_id", "start_at", "end_at"],
    )

    op.create_table(
        "booking_status_changes",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", _booking_status, nullable=False),
        sa.Column(
            "changed_by_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("note", sa.String(length=1024)),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_booking_status_changes_booking_id",
        "booking_status_changes",
        ["booking_id"],
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _money("amount"),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("status", _payment_status, nullable=False),
        sa.Column("provider", _payment_provider, nullable=False),
        sa.Column("provider_reference", sa.String(length=255)),
        sa.Column("client_secret", sa.String(length=255)),
        _money("refund_amount"),
        sa.Column("refund_reason", sa.Text()),
        sa.Column("failure_reason", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint(
            "provider_reference", name="uq_payments_provider_reference"
        ),
    )
    op.create_index("ix_payments_booking_id", "payments", ["booking_id"])
    op.create_index("ix_payments_user_status", "payments", ["user_id", "status"])

    op.create_table(
        "reviews",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "instrument_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("instruments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "booking_id", name="uq_reviews_user_booking"),
        sa.CheckConstraint(
            "rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"
        ),
    )
    op.create_index("ix_reviews_instrument_id", "reviews", ["instrument_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "actor_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("entity_type", sa.String(length=40), nullable=False),
        sa.Column("entity_id", sa.Uuid(as_uuid=True)),
        sa.Column("description", sa.String(length=1024)),
        sa.Column("payload", sa.JSON()),
        sa.Column("ip_address", sa.String(length=64)),
        sa.Column("user_agent", sa.String(length=512)),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_audit_events_actor_created", "audit_events", ["actor_id", "created_at"]
    )
    op.create_index(
        "ix_audit_events_entity", "audit_events", ["entity_type", "entity_id"]
    )
    op.create_index(
        "ix_audit_events_action_created", "audit_events", ["action", "created_at"]
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "recipient_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "sender_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("type", _notification_type, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="SET NULL"),
        ),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_notifications_recipient_read", "notifications", ["recipient_id", "read_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_notifications_recipient_read", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_audit_events_action_created", table_name="audit_events")
    op.drop_index("ix_audit_events_entity", table_name="audit_events")
    op.drop_index("ix_audit_events_actor_created", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_reviews_instrument_id", table_name="reviews")
    op.drop_table("reviews")
    op.drop_index("ix_payments_user_status", table_name="payments")
    op.drop_index("ix_payments_booking_id", table_name="payments")
    op.drop_table("payments")
    op.drop_index(
        "ix_booking_status_changes_booking_id", table_name="booking_status_changes"
    )
    op.drop_table("booking_status_changes")
    op.drop_index("ix_bookings_instrument_window", table_name="bookings")
    op.drop_index("ix_bookings_owner_status", table_name="bookings")
    op.drop_index("ix_bookings_user_status", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_instruments_owner_id", table_name="instruments")
    op.drop_index("ix_instruments_status_category", table_name="instruments")
    op.drop_table("instruments")
    op.drop_table("user_settings")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (
        _notification_type,
        _payment_provider,
        _payment_status,
        _rate_type,
        _booking_status,
        _instrument_status,
        _instrument_availability,
        _user_status,
        _user_role,
    ):
        enum_type.drop(bind, checkfirst=True)
