"""
User Repository

Database operations for accounts. Methods flush but never commit; the
calling service owns the transaction.
"""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.users.models import AccountStatus, User, UserRole

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Emails are compared and stored case-insensitively."""
    return email.strip().lower()


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        name: str,
        role: UserRole,
        requested_role: str | None = None,
        lrn: str | None = None,
        grade_level: str | None = None,
        section: str | None = None,
        phone: str | None = None,
        address: str | None = None,
        guardian_name: str | None = None,
        guardian_phone: str | None = None,
        status: AccountStatus = AccountStatus.ACTIVE,
        email_verified: bool = False,
        verification_token_hash: str | None = None,
        must_change_password: bool = False,
    ) -> User:
        """
        Create a new user record.

        Args:
            db: Database session
            email: Email address (unique, normalized here)
            password_hash: bcrypt hash
            name: Display name
            role: Account role
            requested_role: Role asked for at signup (PENDING accounts)
            lrn: Learner reference number (students only)
            grade_level: Grade level (students only)
            email_verified: Whether email is verified
            verification_token_hash: SHA-256 of the emailed verification token
            must_change_password: Whether user must change password on next login

        Returns:
            Created User instance

        Raises:
            sqlalchemy.exc.IntegrityError: If email or LRN collides
        """
        user = User(
            email=normalize_email(email),
            password_hash=password_hash,
            name=name,
            role=role,
            requested_role=requested_role,
            lrn=lrn,
            grade_level=grade_level,
            section=section,
            phone=phone,
            address=address,
            guardian_name=guardian_name,
            guardian_phone=guardian_phone,
            status=status,
            email_verified=email_verified,
            verification_token_hash=verification_token_hash,
            must_change_password=must_change_password,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str | UUID) -> User | None:
        """Get a user by ID."""
        result = await db.execute(select(User).where(User.id == str(user_id)))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Get a user by email address (case-insensitive)."""
        result = await db.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        """Check if an email address is already registered."""
        user = await UserRepository.get_by_email(db, email)
        return user is not None

    @staticmethod
    async def lrn_exists(db: AsyncSession, lrn: str) -> bool:
        result = await db.execute(select(User.id).where(User.lrn == lrn))
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def get_by_verification_token(db: AsyncSession, token_hash: str) -> User | None:
        result = await db.execute(select(User).where(User.verification_token_hash == token_hash))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_reset_token(db: AsyncSession, token_hash: str) -> User | None:
        result = await db.execute(select(User).where(User.reset_token_hash == token_hash))
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_verified(db: AsyncSession, user: User) -> User:
        """Flag the email as verified and consume the verification token."""
        user.email_verified = True
        user.verification_token_hash = None
        await db.flush()
        return user

    @staticmethod
    async def set_reset_token(
        db: AsyncSession,
        user: User,
        token_hash: str,
        expires_at: datetime,
    ) -> User:
        user.reset_token_hash = token_hash
        user.reset_token_expires_at = expires_at
        await db.flush()
        return user

    @staticmethod
    async def update_password(db: AsyncSession, user: User, password_hash: str) -> User:
        """Store a new password hash and clear any outstanding reset token."""
        user.password_hash = password_hash
        user.reset_token_hash = None
        user.reset_token_expires_at = None
        user.must_change_password = False
        await db.flush()
        return user

    @staticmethod
    async def update_role(db: AsyncSession, user: User, role: UserRole) -> User:
        user.role = role
        if role != UserRole.PENDING:
            user.requested_role = None
        await db.flush()
        return user

    @staticmethod
    async def update_fields(db: AsyncSession, user: User, changes: dict[str, Any]) -> User:
        """Assign column values. Callers are responsible for whitelisting keys."""
        for field, value in changes.items():
            setattr(user, field, value)
        await db.flush()
        return user

    @staticmethod
    async def list_users(
        db: AsyncSession,
        role: UserRole | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[User], int]:
        """
        List users, newest first.

        Returns:
            Tuple of (users, total_count)
        """
        query = select(User)
        count_query = select(func.count()).select_from(User)
        if role is not None:
            query = query.where(User.role == role)
            count_query = count_query.where(User.role == role)

        total = (await db.execute(count_query)).scalar_one()
        result = await db.execute(
            query.order_by(User.created_at.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def delete(db: AsyncSession, user_id: str) -> bool:
        """Hard-delete a user. Returns False if nothing was removed."""
        result = await db.execute(delete(User).where(User.id == str(user_id)))
        return result.rowcount > 0
