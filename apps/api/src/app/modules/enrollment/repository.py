"""
Enrollment Repository

Database operations for enrollment applications. Functions flush but never
commit; the service owns the transaction.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ApplicationStatus, EnrollmentApplication
from .schemas import EnrollmentSubmission

# Pending is the only non-terminal state; a decision is never reversed
VALID_STATUS_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.PENDING: {
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
    },
    ApplicationStatus.APPROVED: set(),
    ApplicationStatus.REJECTED: set(),
}


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, current_status: ApplicationStatus, new_status: ApplicationStatus):
        self.current_status = current_status
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


def is_valid_transition(current: ApplicationStatus, new: ApplicationStatus) -> bool:
    return new in VALID_STATUS_TRANSITIONS.get(current, set())


async def create(
    db: AsyncSession,
    data: EnrollmentSubmission,
    document_paths: list[str],
) -> EnrollmentApplication:
    application = EnrollmentApplication(
        first_name=data.first_name,
        middle_name=data.middle_name,
        last_name=data.last_name,
        name_extension=data.name_extension,
        email=data.email,
        target_grade=data.target_grade,
        previous_school=data.previous_school,
        psa_number=data.psa_number,
        guardian_name=data.guardian_name,
        guardian_contact=data.guardian_contact,
        document_paths=document_paths,
        status=ApplicationStatus.PENDING,
    )

    db.add(application)
    await db.flush()
    await db.refresh(application)
    return application


async def get_by_id(db: AsyncSession, id: UUID) -> EnrollmentApplication | None:
    return await db.get(EnrollmentApplication, id)


async def get_pending_by_email(db: AsyncSession, email: str) -> EnrollmentApplication | None:
    result = await db.execute(
        select(EnrollmentApplication)
        .where(
            EnrollmentApplication.email == email.lower(),
            EnrollmentApplication.status == ApplicationStatus.PENDING,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_applications(
    db: AsyncSession,
    status: ApplicationStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[EnrollmentApplication], int]:
    """List applications, newest first, with a total for pagination."""
    query = select(EnrollmentApplication)
    count_query = select(func.count()).select_from(EnrollmentApplication)

    if status is not None:
        query = query.where(EnrollmentApplication.status == status)
        count_query = count_query.where(EnrollmentApplication.status == status)

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        query.order_by(EnrollmentApplication.submitted_at.desc()).limit(limit).offset(offset)
    )
    return list(result.scalars().all()), total


async def apply_decision(
    db: AsyncSession,
    id: UUID,
    status: ApplicationStatus,
    decided_by: str,
    decision_reason: str | None = None,
    account_id: str | None = None,
    decided_at: datetime | None = None,
) -> bool:
    """
    Move a pending application to ``status``.

    The UPDATE is guarded by ``status = 'pending'`` so that of two concurrent
    decisions only one matches a row.

    Returns:
        True if this call made the transition, False if the application was
        no longer pending

    Raises:
        InvalidStatusTransitionError: ``status`` is not a decision
    """
    if not is_valid_transition(ApplicationStatus.PENDING, status):
        raise InvalidStatusTransitionError(ApplicationStatus.PENDING, status)

    result = await db.execute(
        update(EnrollmentApplication)
        .where(
            EnrollmentApplication.id == id,
            EnrollmentApplication.status == ApplicationStatus.PENDING,
        )
        .values(
            status=status,
            decided_by=decided_by,
            decision_reason=decision_reason,
            account_id=account_id,
            decided_at=decided_at or datetime.now(UTC),
        )
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount == 1
