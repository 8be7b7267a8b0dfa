"""
Email Outbox Repository
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.email import EmailMessage

from .models import OutboxStatus, QueuedEmail


async def enqueue(
    db: AsyncSession,
    message: EmailMessage,
    next_attempt_at: datetime,
    last_error: str | None = None,
) -> QueuedEmail:
    queued = QueuedEmail(
        to_email=message.to_email,
        subject=message.subject,
        html_content=message.html_content,
        status=OutboxStatus.PENDING,
        attempts=1,
        last_error=last_error,
        next_attempt_at=next_attempt_at,
    )
    db.add(queued)
    await db.flush()
    return queued


async def get_due(db: AsyncSession, now: datetime, limit: int = 50) -> list[QueuedEmail]:
    """
    Pending messages whose retry time has come, oldest first.

    Rows are locked with SKIP LOCKED so overlapping job runs on several
    instances never pick the same message.
    """
    result = await db.execute(
        select(QueuedEmail)
        .where(
            QueuedEmail.status == OutboxStatus.PENDING,
            QueuedEmail.next_attempt_at <= now,
        )
        .order_by(QueuedEmail.next_attempt_at)
        .limit(limit)
        .with_for_update(skip_locked=True)
    )
    return list(result.scalars().all())
