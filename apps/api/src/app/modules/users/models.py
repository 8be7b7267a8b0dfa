"""
User Models

Account records for every person who can authenticate: staff, students and
applicants awaiting approval.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.dialects.postgresql import ENUM
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel


class UserRole(str, Enum):
    """User roles in the system."""

    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    FACULTY = "FACULTY"
    ADMIN = "ADMIN"
    TRANSFEREE = "TRANSFEREE"
    PENDING = "PENDING"


class AccountStatus(str, Enum):
    """Enrollment standing of an account."""

    ACTIVE = "active"
    COMPLETED = "completed"
    DROPPED = "dropped"


# Roles allowed to review enrollment and read the audit trail
STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.TEACHER, UserRole.FACULTY})


class User(BaseModel):
    """
    Account model for authentication and authorization.

    Email is unique and stored lower-cased. ``lrn`` is only set for
    STUDENT accounts created by enrollment approval.
    """

    __tablename__ = "users"

    # Authentication fields
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    # Profile fields
    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Role and permissions
    role: Mapped[UserRole] = mapped_column(
        ENUM(
            UserRole,
            name="user_role",
            create_type=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=UserRole.PENDING,
    )
    # Role a PENDING signup asked for, kept for staff review
    requested_role: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Student record
    lrn: Mapped[str | None] = mapped_column(
        String(12),
        unique=True,
        index=True,
        nullable=True,
    )
    grade_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    section: Mapped[str | None] = mapped_column(String(100), nullable=True)
    guardian_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    guardian_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    status: Mapped[AccountStatus] = mapped_column(
        ENUM(
            AccountStatus,
            name="account_status",
            create_type=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=AccountStatus.ACTIVE,
    )

    # Email verification
    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    verification_token_hash: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=True,
    )

    # Password management
    must_change_password: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    reset_token_hash: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=True,
    )
    reset_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"
