"""
Authentication Service

Lockout-guarded login. Order of checks per attempt:

1. Suspended device: refuse without looking at credentials or counting
   the attempt.
2. Stale suspension: reset per LOCKOUT_RESET_ON_EXPIRY.
3. Credential comparison: a mismatch (including unknown email) counts a
   failure; a match clears the device record.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AccountInactiveError,
    DeviceSuspendedError,
    InvalidCredentialsError,
)
from app.core.security import create_access_token, create_refresh_token, verify_password
from app.modules.activity.models import ActivityCategory
from app.modules.activity.service import log_activity
from app.modules.auth import lockout
from app.modules.users.models import AccountStatus, User
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    user: User
    access_token: str
    refresh_token: str


def issue_tokens(user: User) -> tuple[str, str]:
    """Access and refresh tokens carrying the claims ``app.core.auth`` reads."""
    access_token = create_access_token(
        subject=str(user.id),
        additional_claims={
            "email": user.email,
            "role": user.role.value,
            "name": user.name,
        },
    )
    return access_token, create_refresh_token(subject=str(user.id))


async def login(
    db: AsyncSession,
    email: str,
    password: str,
    device_id: str,
    now: datetime | None = None,
) -> LoginResult:
    """
    Authenticate a user from a given device.

    Raises:
        DeviceSuspendedError: Device is under an active suspension (423)
        InvalidCredentialsError: Email/password mismatch (401)
        AccountInactiveError: Account status is dropped (403)
    """
    now = now or datetime.now(UTC)

    state = await lockout.check_lockout(db, device_id)
    if lockout.is_suspended(state, now):
        hours = lockout.remaining_hours(state, now)
        logger.warning(f"Login refused for suspended device {device_id} ({hours}h remaining)")
        raise DeviceSuspendedError(hours)

    await lockout.reset_if_expired(db, device_id, state, now)

    user = await UserRepository.get_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        record = await lockout.record_failure(db, device_id, now)
        await db.commit()
        remaining = lockout.attempts_remaining(record)
        logger.warning(
            f"Failed login for {email} from device {device_id}: "
            f"attempt {record.attempts}, {remaining} remaining"
        )
        raise InvalidCredentialsError(remaining)

    await lockout.record_success(db, device_id)

    if user.status == AccountStatus.DROPPED:
        await db.commit()
        logger.warning(f"Login attempt for dropped account: {user.email}")
        raise AccountInactiveError()

    await log_activity(
        db, "User Logged In", ActivityCategory.AUTH, actor_id=user.id, actor_name=user.name
    )
    await db.commit()

    access_token, refresh_token = issue_tokens(user)
    logger.info(f"User logged in: {user.email} (role: {user.role.value})")
    return LoginResult(user=user, access_token=access_token, refresh_token=refresh_token)
