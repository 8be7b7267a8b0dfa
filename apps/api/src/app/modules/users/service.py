"""
Users Service Layer

Signup, email verification, password reset and account administration.

Security considerations:
- Passwords are bcrypt-hashed; nothing stores or logs plaintext
- Verification and reset tokens come from secrets.token_urlsafe and only
  their SHA-256 digest is stored
- Forgot-password responds identically for known and unknown emails
"""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.email import render_password_reset, render_verification_email
from app.core.exceptions import (
    AccountNotFoundError,
    DuplicateAccountError,
    InvalidTokenError,
    PermissionDeniedError,
    ValidationServiceError,
)
from app.core.security import generate_token, hash_password, hash_token
from app.modules.activity.models import ActivityCategory
from app.modules.activity.service import log_activity
from app.modules.notifications.service import dispatch
from app.modules.users.models import User, UserRole
from app.modules.users.repository import UserRepository, normalize_email
from app.modules.users.schemas import AccountUpdateRequest, SignupRequest

logger = logging.getLogger(__name__)

# Only transferees choose their own role; everyone else waits for staff
SELF_SELECTABLE_ROLES = frozenset({UserRole.TRANSFEREE})


def resolve_signup_role(requested: str) -> tuple[UserRole, str | None]:
    """
    Map a requested role to the role actually granted at signup.

    Returns:
        (granted_role, requested_role_to_remember)
    """
    try:
        role = UserRole(requested)
    except ValueError as e:
        raise ValidationServiceError(
            f"Unknown role '{requested}'.", error_code="INVALID_ROLE"
        ) from e

    if role in SELF_SELECTABLE_ROLES:
        return role, None
    if role == UserRole.PENDING:
        return UserRole.PENDING, None
    return UserRole.PENDING, role.value


async def signup(db: AsyncSession, data: SignupRequest) -> User:
    """
    Create an unprivileged, unverified account and send the verification link.

    Raises:
        DuplicateAccountError: Email already registered
        ValidationServiceError: Unknown role
    """
    email = normalize_email(data.email)
    role, requested_role = resolve_signup_role(data.role)

    if await UserRepository.email_exists(db, email):
        logger.info(f"Signup rejected, email already registered: {email}")
        raise DuplicateAccountError()

    token = generate_token()

    try:
        user = await UserRepository.create(
            db,
            email=email,
            password_hash=hash_password(data.password),
            name=data.name,
            role=role,
            requested_role=requested_role,
            email_verified=False,
            verification_token_hash=hash_token(token),
        )
        await log_activity(
            db,
            f"New User Created ({role.value})",
            ActivityCategory.MANAGEMENT,
            actor_id=user.id,
            actor_name=user.name,
        )
        await db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent signup for the same email
        await db.rollback()
        raise DuplicateAccountError() from e

    await dispatch(db, render_verification_email(user.email, user.name, token))
    return user


async def verify_email(db: AsyncSession, token: str | None) -> User:
    """
    Consume a verification token.

    Raises:
        ValidationServiceError: No token supplied
        InvalidTokenError: Token unknown or already used
    """
    if not token:
        raise ValidationServiceError("Token required", error_code="TOKEN_REQUIRED")

    user = await UserRepository.get_by_verification_token(db, hash_token(token))
    if not user:
        logger.warning("Email verification attempted with unknown token")
        raise InvalidTokenError()

    await UserRepository.mark_verified(db, user)
    await log_activity(
        db, "Email Verified", ActivityCategory.AUTH, actor_id=user.id, actor_name=user.name
    )
    await db.commit()

    logger.info(f"Email verified for user {user.id}")
    return user


async def request_password_reset(
    db: AsyncSession,
    email: str,
    now: datetime | None = None,
) -> None:
    """Issue a reset token if the account exists. Silent otherwise."""
    user = await UserRepository.get_by_email(db, email)
    if not user:
        logger.info("Password reset requested for unknown email")
        return

    now = now or datetime.now(UTC)
    token = generate_token()
    await UserRepository.set_reset_token(
        db,
        user,
        hash_token(token),
        now + timedelta(minutes=settings.password_reset_expiry_minutes),
    )
    await db.commit()

    await dispatch(db, render_password_reset(user.email, user.name, token))


async def reset_password(
    db: AsyncSession,
    token: str,
    new_password: str,
    now: datetime | None = None,
) -> User:
    """
    Complete a password reset.

    Raises:
        InvalidTokenError: Token unknown or expired
    """
    user = await UserRepository.get_by_reset_token(db, hash_token(token))
    now = now or datetime.now(UTC)

    if not user or user.reset_token_expires_at is None or user.reset_token_expires_at <= now:
        raise InvalidTokenError()

    await UserRepository.update_password(db, user, hash_password(new_password))
    await log_activity(
        db, "Password Reset", ActivityCategory.SECURITY, actor_id=user.id, actor_name=user.name
    )
    await db.commit()

    logger.info(f"Password reset for user {user.id}")
    return user


# ============================================
# Account administration
# ============================================


async def get_account(db: AsyncSession, user_id: str) -> User:
    user = await UserRepository.get_by_id(db, user_id)
    if not user:
        raise AccountNotFoundError(user_id)
    return user


async def list_accounts(
    db: AsyncSession,
    role: UserRole | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[User], int]:
    return await UserRepository.list_users(db, role=role, limit=limit, offset=offset)


async def change_role(
    db: AsyncSession,
    user_id: str,
    role: UserRole,
    actor_id: str,
    actor_name: str,
) -> User:
    """Admin role change, e.g. promoting a PENDING signup to TEACHER."""
    user = await get_account(db, user_id)
    previous = user.role

    await UserRepository.update_role(db, user, role)
    await log_activity(
        db,
        f"Changed role of {user.name} from {previous.value} to {role.value}",
        ActivityCategory.MANAGEMENT,
        actor_id=actor_id,
        actor_name=actor_name,
    )
    await db.commit()
    return user


async def update_account(
    db: AsyncSession,
    user_id: str,
    data: AccountUpdateRequest,
    actor_id: str,
    actor_name: str,
    actor_role: UserRole,
) -> User:
    """
    Apply a profile edit or a status change.

    Admins may edit any account, status included. Other callers may only
    edit the profile fields of their own account. Self-edits are logged
    under Profile, edits by an admin to someone else under Management.

    Raises:
        ValidationServiceError: Nothing to update
        PermissionDeniedError: Editing another account, or a status, without ADMIN
        AccountNotFoundError: No such account
    """
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationServiceError("No fields to update.", error_code="NO_FIELDS")

    is_self = str(user_id) == str(actor_id)
    if actor_role != UserRole.ADMIN:
        if not is_self:
            raise PermissionDeniedError("You can only edit your own profile.")
        if "status" in changes:
            raise PermissionDeniedError("Only an administrator can change account status.")

    user = await get_account(db, user_id)
    previous_status = user.status

    await UserRepository.update_fields(db, user, changes)

    new_status = changes.get("status")
    if new_status is not None and new_status != previous_status:
        description = (
            f"Changed status of {user.name} from {previous_status.value} to {new_status.value}"
        )
    elif is_self:
        description = f"Updated own profile ({', '.join(sorted(changes))})"
    else:
        description = f"Updated account of {user.name} ({', '.join(sorted(changes))})"

    await log_activity(
        db,
        description,
        ActivityCategory.PROFILE if is_self else ActivityCategory.MANAGEMENT,
        actor_id=actor_id,
        actor_name=actor_name,
    )
    await db.commit()

    logger.info(f"Account {user_id} updated by {actor_id}: {sorted(changes)}")
    return user


async def remove_account(
    db: AsyncSession,
    user_id: str,
    actor_id: str,
    actor_name: str,
) -> None:
    """
    Explicit admin removal, the only hard delete of an account.

    Raises:
        ValidationServiceError: Admin tried to remove their own account
        AccountNotFoundError: No such account
    """
    if str(user_id) == str(actor_id):
        raise ValidationServiceError(
            "You cannot remove your own account.", error_code="CANNOT_REMOVE_SELF"
        )

    user = await get_account(db, user_id)
    label = f"{user.name} <{user.email}>"

    await UserRepository.delete(db, user.id)
    await log_activity(
        db,
        f"Removed account {label}",
        ActivityCategory.MANAGEMENT,
        actor_id=actor_id,
        actor_name=actor_name,
    )
    await db.commit()
    logger.info(f"Account {user_id} removed by {actor_id}")
