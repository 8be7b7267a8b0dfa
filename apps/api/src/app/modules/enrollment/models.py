"""
Enrollment Models

Applications submitted by prospective students. Rows are kept indefinitely
for audit; the only mutation is the single staff decision.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.modules.enrollment.helpers import assemble_full_name


class ApplicationStatus(str, enum.Enum):
    """Status of an enrollment application."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EnrollmentApplication(Base):
    """A candidate's intake record."""

    __tablename__ = "enrollment_applications"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Applicant name parts
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    name_extension: Mapped[str | None] = mapped_column(String(10), nullable=True)

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    # Academic
    target_grade: Mapped[str] = mapped_column(String(50), nullable=False)
    previous_school: Mapped[str | None] = mapped_column(String(200), nullable=True)
    # Birth certificate (PSA) number
    psa_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Guardian
    guardian_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    guardian_contact: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Paths relative to UPLOAD_DIR
    document_paths: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Status tracking
    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(
            ApplicationStatus,
            name="enrollment_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decided_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    decision_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Account created on approval
    account_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_enrollment_applications_status", "status"),
        Index("ix_enrollment_applications_email", "email"),
    )

    @property
    def full_name(self) -> str:
        return assemble_full_name(
            self.first_name, self.middle_name, self.last_name, self.name_extension
        )

    def __repr__(self) -> str:
        return f"<EnrollmentApplication(id={self.id}, email={self.email}, status={self.status.value})>"
