"""
Activity Log Repository

Insert and read only.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import SYSTEM_ACTOR_ID, SYSTEM_ACTOR_NAME, ActivityCategory, ActivityLog


async def append(
    db: AsyncSession,
    action: str,
    category: ActivityCategory,
    actor_id: str | None = None,
    actor_name: str | None = None,
) -> ActivityLog:
    """Add an entry to the current transaction."""
    entry = ActivityLog(
        actor_id=actor_id or SYSTEM_ACTOR_ID,
        actor_name=actor_name or SYSTEM_ACTOR_NAME,
        action=action,
        category=category,
    )
    db.add(entry)
    await db.flush()
    return entry


async def list_entries(
    db: AsyncSession,
    category: ActivityCategory | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[ActivityLog], int]:
    """List entries newest first, with the total count for pagination."""
    query = select(ActivityLog)
    count_query = select(func.count()).select_from(ActivityLog)

    if category is not None:
        query = query.where(ActivityLog.category == category)
        count_query = count_query.where(ActivityLog.category == category)

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        query.order_by(ActivityLog.created_at.desc()).limit(limit).offset(offset)
    )
    return list(result.scalars().all()), total
