"""
Notification Background Jobs

- notifications_retry_outbox: re-sends queued emails every
  EMAIL_RETRY_INTERVAL_MINUTES
"""

import logging

from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.core.database import async_session_maker
from app.core.scheduler import register_job
from app.modules.notifications import service

logger = logging.getLogger(__name__)

JOB_ID_RETRY_OUTBOX = "notifications_retry_outbox"


async def retry_outbox() -> None:
    """Scheduled entry point; owns its database session."""
    async with async_session_maker() as db:
        stats = await service.retry_due(db)

    if stats["processed"]:
        logger.info(
            f"Email outbox: processed={stats['processed']} sent={stats['sent']} "
            f"requeued={stats['requeued']} failed={stats['failed']}"
        )


def register_notification_jobs() -> None:
    """Register notification jobs. Call before the scheduler starts."""
    register_job(
        job_id=JOB_ID_RETRY_OUTBOX,
        func=retry_outbox,
        trigger=IntervalTrigger(minutes=settings.email_retry_interval_minutes),
    )
    logger.info(
        f"Registered job: {JOB_ID_RETRY_OUTBOX} "
        f"(interval: {settings.email_retry_interval_minutes} minutes)"
    )
