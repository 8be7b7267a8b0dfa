"""
Activity Log Models

Append-only audit trail written as a side effect of mutating operations.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base

SYSTEM_ACTOR_ID = "system"
SYSTEM_ACTOR_NAME = "System"


class ActivityCategory(str, enum.Enum):
    """Audit categories shown in the admin activity feed."""

    AUTH = "Auth"
    SECURITY = "Security"
    ADMISSIONS = "Admissions"
    MANAGEMENT = "Management"
    PROFILE = "Profile"
    SYSTEM = "System"


class ActivityLog(Base):
    """A single audit entry. Rows are never updated or deleted."""

    __tablename__ = "activity_logs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Actor ids are free text: "system" is not a user row
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False, default=SYSTEM_ACTOR_ID)
    actor_name: Mapped[str] = mapped_column(String(200), nullable=False, default=SYSTEM_ACTOR_NAME)

    action: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[ActivityCategory] = mapped_column(
        Enum(
            ActivityCategory,
            name="activity_category",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ActivityCategory.SYSTEM,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_activity_logs_category", "category"),
        Index("ix_activity_logs_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ActivityLog(id={self.id}, category={self.category.value}, action={self.action!r})>"
