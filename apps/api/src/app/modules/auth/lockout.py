"""
Device Lockout Tracker

Throttles brute-force logins per client device.

State per device:
    OK      attempts < LOCKOUT_MAX_ATTEMPTS, no suspension
    LOCKED  attempts == LOCKOUT_MAX_ATTEMPTS, suspended_until in the future

A LOCKED device returns to OK lazily: nothing runs when the suspension
expires, the next login attempt simply finds it stale. What happens to the
attempt counter then is governed by LOCKOUT_RESET_ON_EXPIRY (see
``reset_if_expired``).

All functions take ``now`` so tests can move the clock.
"""

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.modules.auth import repository
from app.modules.auth.models import LockoutRecord

logger = logging.getLogger(__name__)


class _HasLockoutFields(Protocol):
    attempts: int
    suspended_until: datetime | None


@dataclass(frozen=True)
class LockoutState:
    """Snapshot of a device's throttle state."""

    attempts: int = 0
    suspended_until: datetime | None = None


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


def is_suspended(record: _HasLockoutFields, now: datetime | None = None) -> bool:
    """True iff a suspension is set and has not yet passed."""
    return record.suspended_until is not None and _now(now) < record.suspended_until


def is_expired_suspension(record: _HasLockoutFields, now: datetime | None = None) -> bool:
    """True when a suspension was set and the wall clock has passed it."""
    return record.suspended_until is not None and _now(now) >= record.suspended_until


def remaining_hours(record: _HasLockoutFields, now: datetime | None = None) -> int:
    """Whole hours left on a suspension, rounded up. Zero when not suspended."""
    if not is_suspended(record, now):
        return 0
    seconds = (record.suspended_until - _now(now)).total_seconds()
    return math.ceil(seconds / 3600)


def attempts_remaining(record: _HasLockoutFields) -> int:
    return max(settings.lockout_max_attempts - record.attempts, 0)


async def check_lockout(db: AsyncSession, device_id: str) -> LockoutState:
    """Current state for a device; a device never seen has zero attempts."""
    record = await repository.get(db, device_id)
    if record is None:
        return LockoutState()
    return LockoutState(attempts=record.attempts, suspended_until=record.suspended_until)


async def record_failure(
    db: AsyncSession,
    device_id: str,
    now: datetime | None = None,
) -> LockoutRecord:
    """
    Count a failed login.

    Reaching the threshold suspends the device for LOCKOUT_SUSPENSION_HOURS
    and pins attempts at the threshold.
    """
    record = await repository.increment_attempts(db, device_id)

    if record.attempts >= settings.lockout_max_attempts:
        suspended_until = _now(now) + timedelta(hours=settings.lockout_suspension_hours)
        record = await repository.set_suspension(
            db,
            record,
            suspended_until=suspended_until,
            attempts=settings.lockout_max_attempts,
        )
        logger.warning(
            f"Device {device_id} suspended until {suspended_until.isoformat()} "
            f"after {settings.lockout_max_attempts} failed logins"
        )

    return record


async def record_success(db: AsyncSession, device_id: str) -> None:
    """Forget all failures for a device."""
    await repository.clear(db, device_id)


async def reset_if_expired(
    db: AsyncSession,
    device_id: str,
    state: LockoutState,
    now: datetime | None = None,
) -> LockoutState:
    """
    Handle a stale suspension before credentials are compared.

    With LOCKOUT_RESET_ON_EXPIRY (default) the record is cleared so the device
    gets a full set of attempts again. Without it the counter stays at the
    threshold and the next failure re-suspends immediately.
    """
    if not settings.lockout_reset_on_expiry or not is_expired_suspension(state, now):
        return state

    await repository.clear(db, device_id)
    logger.info(f"Suspension for device {device_id} expired; attempts reset")
    return LockoutState()
