"""Auth tokens, partner applications and contact messages.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-17
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None

_auth_token_purpose = sa.Enum(
    "REFRESH", "PASSWORD_RESET", "EMAIL_VERIFICATION", name="authtokenpurpose"
)
_partner_status = sa.Enum(
    "PENDING", "APPROVED", "REJECTED", "CONTACTED", name="partnerapplicationstatus"
)
_contact_status = sa.Enum(
    "NEW", "READ", "REPLIED", "ARCHIVED", name="contactmessagestatus"
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


def upgrade() -> None:
    op.create_table(
        "auth_tokens",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("purpose", _auth_token_purpose, nullable=False),
        sa.Column("token_hash", sa.String(length=128), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.UniqueConstraint("token_hash", name="uq_auth_tokens_token_hash"),
    )
    op.create_index(
        "ix_auth_tokens_user_purpose", "auth_tokens", ["user_id", "purpose"]
    )

    op.create_table(
        "partner_applications",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("institute_name", sa.String(length=255), nullable=False),
        sa.Column("contact_person", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("address", sa.String(length=512)),
        sa.Column("instruments_available", sa.Text()),
        sa.Column("message", sa.Text()),
        sa.Column("status", _partner_status, nullable=False),
        sa.Column("admin_notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index(
        "ix_partner_applications_email_status",
        "partner_applications",
        ["email", "status"],
    )

    op.create_table(
        "contact_messages",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("status", _contact_status, nullable=False),
        sa.Column("admin_notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_contact_messages_status", "contact_messages", ["status"])


def downgrade() -> None:
    op.drop_index("ix_contact_messages_status", table_name="contact_messages")
    op.drop_table("contact_messages")
    op.drop_index(
        "ix_partner_applications_email_status", table_name="partner_applications"
    )
    op.drop_table("partner_applications")
    op.drop_index("ix_auth_tokens_user_purpose", table_name="auth_tokens")
    op.drop_table("auth_tokens")

    bind = op.get_bind()
    for enum_type in (_contact_status, _partner_status, _auth_token_purpose):
        enum_type.drop(bind, checkfirst=True)
