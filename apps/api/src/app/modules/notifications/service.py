"""
Notification Service

``dispatch`` is the single entry point for outbound email. Delivery is a
best-effort side effect: a failed send is logged and queued, never raised.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.email import EmailMessage, send_email
from app.modules.notifications import repository
from app.modules.notifications.models import OutboxStatus, QueuedEmail

logger = logging.getLogger(__name__)

RETRY_BASE_MINUTES = 5
RETRY_MAX_MINUTES = 6 * 60


def next_retry_at(attempts: int, now: datetime) -> datetime:
    """Exponential backoff: 5, 10, 20, ... minutes, capped at 6 hours."""
    minutes = min(RETRY_BASE_MINUTES * (2 ** max(attempts - 1, 0)), RETRY_MAX_MINUTES)
    return now + timedelta(minutes=minutes)


async def dispatch(db: AsyncSession, message: EmailMessage) -> bool:
    """
    Send ``message`` now, queueing it for retry if the gateway refuses.

    Commits its own outbox row, so call it only after the business
    transaction has been committed.

    Returns:
        True if the message was delivered immediately
    """
    try:
        if await send_email(message):
            return True
    except Exception as e:
        logger.error(f"Exception sending email to {message.to_email}: {e}", exc_info=True)

    try:
        now = datetime.now(UTC)
        await repository.enqueue(
            db,
            message,
            next_attempt_at=next_retry_at(1, now),
            last_error="initial send failed",
        )
        await db.commit()
        logger.warning(f"Queued email to {message.to_email} for retry: {message.subject}")
    except Exception as e:
        logger.error(f"Failed to queue email to {message.to_email}: {e}", exc_info=True)
        await db.rollback()

    return False


def _finish(queued: QueuedEmail, status: OutboxStatus, now: datetime) -> None:
    queued.status = status
    queued.html_content = ""
    if status == OutboxStatus.SENT:
        queued.sent_at = now


async def retry_due(db: AsyncSession, now: datetime | None = None) -> dict[str, Any]:
    """
    Retry every due message once.

    Returns:
        Summary counts: processed, sent, requeued, failed
    """
    now = now or datetime.now(UTC)
    stats = {"processed": 0, "sent": 0, "requeued": 0, "failed": 0}

    for queued in await repository.get_due(db, now):
        stats["processed"] += 1
        message = EmailMessage(
            to_email=queued.to_email,
            subject=queued.subject,
            html_content=queued.html_content,
        )

        if await send_email(message):
            _finish(queued, OutboxStatus.SENT, now)
            stats["sent"] += 1
            continue

        queued.attempts += 1
        queued.last_error = "send failed"
        if queued.attempts >= settings.email_max_attempts:
            _finish(queued, OutboxStatus.FAILED, now)
            stats["failed"] += 1
            logger.error(
                f"Giving up on email {queued.id} to {queued.to_email} "
                f"after {queued.attempts} attempts"
            )
        else:
            queued.next_attempt_at = next_retry_at(queued.attempts, now)
            stats["requeued"] += 1

    await db.commit()
    return stats
