"""
Auth Models

Per-device login throttle state.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class LockoutRecord(Base):
    """
    Consecutive failed logins for one device.

    Created on the first failure and deleted on a successful login.
    """

    __tablename__ = "device_lockouts"

    # Opaque identifier persisted by the client
    device_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    suspended_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<LockoutRecord(device_id={self.device_id}, attempts={self.attempts}, "
            f"suspended_until={self.suspended_until})>"
        )
