"""
Activity Log Service

``log_activity`` is called by other services inside their own transaction,
so an audit entry commits or rolls back together with the change it records.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.activity import repository
from app.modules.activity.models import ActivityCategory, ActivityLog

logger = logging.getLogger(__name__)


async def log_activity(
    db: AsyncSession,
    action: str,
    category: ActivityCategory,
    actor_id: str | None = None,
    actor_name: str | None = None,
) -> ActivityLog:
    entry = await repository.append(
        db,
        action=action,
        category=category,
        actor_id=actor_id,
        actor_name=actor_name,
    )
    logger.info(f"[{category.value}] {entry.actor_name}: {action}")
    return entry


async def list_activity(
    db: AsyncSession,
    category: ActivityCategory | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[ActivityLog], int]:
    return await repository.list_entries(db, category=category, limit=limit, offset=offset)
