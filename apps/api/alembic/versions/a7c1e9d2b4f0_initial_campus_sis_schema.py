"""initial campus sis schema

Revision ID: a7c1e9d2b4f0
Revises:
Create Date: 2026-10-18 09:00:00.000000

This migration creates:
1. users - accounts with role, student record and token hashes
2. enrollment_applications - intake records with a single staff decision
3. device_lockouts - per-device failed login counters
4. activity_logs - append-only audit trail
5. email_outbox - emails queued for retry
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a7c1e9d2b4f0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

USER_ROLES = ("STUDENT", "TEACHER", "FACULTY", "ADMIN", "TRANSFEREE", "PENDING")
ACCOUNT_STATUSES = ("active", "completed", "dropped")
ENROLLMENT_STATUSES = ("pending", "approved", "rejected")
ACTIVITY_CATEGORIES = ("Auth", "Security", "Admissions", "Management", "Profile", "System")
OUTBOX_STATUSES = ("pending", "sent", "failed")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create all tables."""
    user_role = postgresql.ENUM(*USER_ROLES, name="user_role", create_type=False)
    account_status = postgresql.ENUM(*ACCOUNT_STATUSES, name="account_status", create_type=False)
    enrollment_status = postgresql.ENUM(
        *ENROLLMENT_STATUSES, name="enrollment_status", create_type=False
    )
    activity_category = postgresql.ENUM(
        *ACTIVITY_CATEGORIES, name="activity_category", create_type=False
    )
    outbox_status = postgresql.ENUM(*OUTBOX_STATUSES, name="outbox_status", create_type=False)

    bind = op.get_bind()
    for enum_type in (user_role, account_status, enrollment_status, activity_category, outbox_status):
        enum_type.create(bind, checkfirst=True)

    # users
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        *_timestamps(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="PENDING"),
        sa.Column("requested_role", sa.String(length=20), nullable=True),
        # Student record
        sa.Column("lrn", sa.String(length=12), nullable=True),
        sa.Column("grade_level", sa.String(length=50), nullable=True),
        sa.Column("section", sa.String(length=100), nullable=True),
        sa.Column("guardian_name", sa.String(length=200), nullable=True),
        sa.Column("guardian_phone", sa.String(length=30), nullable=True),
        sa.Column("status", account_status, nullable=False, server_default="active"),
        # Verification and password reset
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("verification_token_hash", sa.String(length=64), nullable=True),
        sa.Column("must_change_password", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("reset_token_hash", sa.String(length=64), nullable=True),
        sa.Column("reset_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_lrn"), "users", ["lrn"], unique=True)
    op.create_index(
        op.f("ix_users_verification_token_hash"), "users", ["verification_token_hash"], unique=True
    )
    op.create_index(op.f("ix_users_reset_token_hash"), "users", ["reset_token_hash"], unique=True)

    # enrollment_applications
    op.create_table(
        "enrollment_applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("middle_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("name_extension", sa.String(length=10), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("target_grade", sa.String(length=50), nullable=False),
        sa.Column("previous_school", sa.String(length=200), nullable=True),
        sa.Column("psa_number", sa.String(length=50), nullable=True),
        sa.Column("guardian_name", sa.String(length=200), nullable=True),
        sa.Column("guardian_contact", sa.String(length=50), nullable=True),
        sa.Column("document_paths", postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column("status", enrollment_status, nullable=False, server_default="pending"),
        sa.Column(
            "submitted_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decided_by", sa.String(length=64), nullable=True),
        sa.Column("decision_reason", sa.Text(), nullable=True),
        sa.Column("account_id", sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_enrollment_applications_status", "enrollment_applications", ["status"], unique=False
    )
    op.create_index(
        "ix_enrollment_applications_email", "enrollment_applications", ["email"], unique=False
    )

    # device_lockouts
    op.create_table(
        "device_lockouts",
        sa.Column("device_id", sa.String(length=128), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("suspended_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("device_id"),
    )

    # activity_logs
    op.create_table(
        "activity_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("actor_id", sa.String(length=64), nullable=False, server_default="system"),
        sa.Column("actor_name", sa.String(length=200), nullable=False, server_default="System"),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("category", activity_category, nullable=False, server_default="System"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activity_logs_category", "activity_logs", ["category"], unique=False)
    op.create_index("ix_activity_logs_created_at", "activity_logs", ["created_at"], unique=False)

    # email_outbox
    op.create_table(
        "email_outbox",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("to_email", sa.String(length=255), nullable=False),
        sa.Column("subject", sa.String(length=300), nullable=False),
        sa.Column("html_content", sa.Text(), nullable=False),
        sa.Column("status", outbox_status, nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column(
            "next_attempt_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_email_outbox_status_next_attempt",
        "email_outbox",
        ["status", "next_attempt_at"],
        unique=False,
    )


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_index("ix_email_outbox_status_next_attempt", table_name="email_outbox")
    op.drop_table("email_outbox")

    op.drop_index("ix_activity_logs_created_at", table_name="activity_logs")
    op.drop_index("ix_activity_logs_category", table_name="activity_logs")
    op.drop_table("activity_logs")

    op.drop_table("device_lockouts")

    op.drop_index("ix_enrollment_applications_email", table_name="enrollment_applications")
    op.drop_index("ix_enrollment_applications_status", table_name="enrollment_applications")
    op.drop_table("enrollment_applications")

    op.drop_index(op.f("ix_users_reset_token_hash"), table_name="users")
    op.drop_index(op.f("ix_users_verification_token_hash"), table_name="users")
    op.drop_index(op.f("ix_users_lrn"), table_name="users")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")

    for name in (
        "outbox_status",
        "activity_category",
        "enrollment_status",
        "account_status",
        "user_role",
    ):
        op.execute(f"DROP TYPE IF EXISTS {name}")
