"""
Lockout Repository

Row-level operations on ``device_lockouts``. The failure increment is a
single UPDATE so concurrent failures from one device are never lost.
"""

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import LockoutRecord


async def get(db: AsyncSession, device_id: str) -> LockoutRecord | None:
    result = await db.execute(select(LockoutRecord).where(LockoutRecord.device_id == device_id))
    return result.scalar_one_or_none()


async def increment_attempts(db: AsyncSession, device_id: str) -> LockoutRecord:
    """
    Atomically add one failed attempt, creating the row on first failure.

    Returns:
        The record as it is after the increment
    """
    stmt = (
        update(LockoutRecord)
        .where(LockoutRecord.device_id == device_id)
        .values(attempts=LockoutRecord.attempts + 1)
        .returning(LockoutRecord)
        .execution_options(populate_existing=True)
    )
    record = (await db.execute(stmt)).scalar_one_or_none()
    if record is not None:
        return record

    try:
        async with db.begin_nested():
            record = LockoutRecord(device_id=device_id, attempts=1, suspended_until=None)
            db.add(record)
        return record
    except IntegrityError:
        # A concurrent request inserted the row first
        return (await db.execute(stmt)).scalar_one()


async def set_suspension(
    db: AsyncSession,
    record: LockoutRecord,
    suspended_until: datetime | None,
    attempts: int,
) -> LockoutRecord:
    record.suspended_until = suspended_until
    record.attempts = attempts
    await db.flush()
    return record


async def clear(db: AsyncSession, device_id: str) -> None:
    await db.execute(delete(LockoutRecord).where(LockoutRecord.device_id == device_id))
