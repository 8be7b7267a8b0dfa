"""
Enrollment Service Layer

Intake of enrollment applications and the staff decision that provisions a
student account.

Approval flow:
1. Application must exist and still be pending
2. No account may already use the application's email
3. Generate LRN and temporary password
4. Create the STUDENT account (verified, active, must change password)
5. Flip the application to approved with a conditional UPDATE
6. Append an Admissions activity entry
7. Commit steps 4-6 together; any failure rolls all of them back
8. After commit, email the credentials (queued for retry on failure)

Concurrency:
- Two approvals of one application: only one conditional UPDATE matches
  ``status = 'pending'``; the loser rolls back its account insert
- Two approvals of different applications with the same email: the unique
  index on users.email rejects the second insert
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.email import (
    render_application_received,
    render_enrollment_approved,
    render_enrollment_rejected,
)
from app.core.exceptions import DuplicateAccountError, ServiceError, ValidationServiceError
from app.core.security import hash_password
from app.core.storage import delete_stored, save_uploads
from app.modules.activity.models import ActivityCategory
from app.modules.activity.service import log_activity
from app.modules.enrollment import repository
from app.modules.enrollment.helpers import generate_lrn, generate_temp_password
from app.modules.enrollment.models import ApplicationStatus, EnrollmentApplication
from app.modules.enrollment.schemas import EnrollmentSubmission
from app.modules.notifications.service import dispatch
from app.modules.users.models import AccountStatus, User, UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

UPLOAD_FOLDER = "enrollment"
LRN_GENERATION_ATTEMPTS = 5


class ApplicationNotFoundError(ServiceError):
    """Raised when an application doesn't exist."""

    def __init__(self, application_id: UUID | str):
        super().__init__(
            message=f"Application {application_id} not found.",
            error_code="APPLICATION_NOT_FOUND",
            status_code=404,
        )


class InvalidApplicationStateError(ServiceError):
    """Raised when an application has already been decided."""

    def __init__(self, current_status: str, action: str):
        self.current_status = current_status
        super().__init__(
            message=f"Cannot {action} application in '{current_status}' status.",
            error_code="INVALID_APPLICATION_STATE",
            status_code=409,
        )


class DuplicateApplicationError(ServiceError):
    """Raised when the email already has a pending application."""

    def __init__(self, email: str):
        super().__init__(
            message=f"A pending application for {email} already exists.",
            error_code="DUPLICATE_APPLICATION",
            status_code=409,
        )


class LrnConflictError(ServiceError):
    """Raised when a concurrent approval took the generated LRN."""

    def __init__(self):
        super().__init__(
            message="The generated learner reference number was taken. Please retry.",
            error_code="LRN_CONFLICT",
            status_code=409,
        )


@dataclass
class ProvisioningResult:
    """Outcome of an approval. The temporary password is deliberately absent."""

    application: EnrollmentApplication
    account: User
    lrn: str
    email_sent: bool


# ============================================
# Intake
# ============================================


async def submit_application(
    db: AsyncSession,
    data: EnrollmentSubmission,
    documents: list[UploadFile] | None = None,
) -> EnrollmentApplication:
    """
    Store a new pending application with its supporting documents.

    Raises:
        DuplicateApplicationError: Email already has a pending application
        ValidationServiceError: A document is too large or of the wrong type
    """
    existing = await repository.get_pending_by_email(db, data.email)
    if existing:
        logger.info(f"Duplicate enrollment submission for {data.email}")
        raise DuplicateApplicationError(data.email)

    document_paths = await save_uploads(documents or [], UPLOAD_FOLDER)

    try:
        application = await repository.create(db, data, document_paths)
        await log_activity(
            db,
            f"Enrollment application submitted by {application.full_name} "
            f"for {application.target_grade}",
            ActivityCategory.ADMISSIONS,
            actor_name=application.full_name,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        await delete_stored(document_paths)
        raise

    logger.info(f"Created enrollment application {application.id} for {application.email}")

    await dispatch(
        db,
        render_application_received(
            application.email, application.full_name, application.target_grade
        ),
    )
    return application


async def get_application(db: AsyncSession, application_id: UUID) -> EnrollmentApplication:
    application = await repository.get_by_id(db, application_id)
    if not application:
        raise ApplicationNotFoundError(application_id)
    return application


async def list_applications(
    db: AsyncSession,
    status: ApplicationStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[EnrollmentApplication], int]:
    return await repository.list_applications(db, status=status, limit=limit, offset=offset)


# ============================================
# Decisions
# ============================================


async def _get_pending(
    db: AsyncSession,
    application_id: UUID,
    action: str,
) -> EnrollmentApplication:
    application = await repository.get_by_id(db, application_id)

    if not application:
        logger.warning(f"Application not found: {application_id}")
        raise ApplicationNotFoundError(application_id)

    if application.status != ApplicationStatus.PENDING:
        logger.warning(
            f"Cannot {action} application {application_id}: status={application.status.value}"
        )
        raise InvalidApplicationStateError(application.status.value, action)

    return application


async def _unused_lrn(db: AsyncSession) -> str:
    for _ in range(LRN_GENERATION_ATTEMPTS):
        lrn = generate_lrn()
        if not await UserRepository.lrn_exists(db, lrn):
            return lrn
    raise ServiceError(
        message="Could not allocate a learner reference number. Please retry.",
        error_code="LRN_ALLOCATION_FAILED",
        status_code=503,
    )


async def approve_application(
    db: AsyncSession,
    application_id: UUID,
    actor_id: str,
    actor_name: str,
) -> ProvisioningResult:
    """
    Approve a pending application and provision its student account.

    Raises:
        ApplicationNotFoundError: No such application
        InvalidApplicationStateError: Application already decided
        DuplicateAccountError: An account already uses the email
        LrnConflictError: A concurrent approval took the generated LRN
    """
    logger.info(f"{actor_name} ({actor_id}) approving application {application_id}")

    application = await _get_pending(db, application_id, "approve")

    if await UserRepository.email_exists(db, application.email):
        logger.warning(
            f"Cannot approve application {application_id}: "
            f"account for {application.email} already exists"
        )
        raise DuplicateAccountError(f"An account with email {application.email} already exists.")

    lrn = await _unused_lrn(db)
    temp_password = generate_temp_password()
    # Rollback expires the application, so read what the handlers need now
    email = application.email
    student_name = application.full_name
    target_grade = application.target_grade

    try:
        account = await UserRepository.create(
            db,
            email=email,
            password_hash=hash_password(temp_password),
            name=student_name,
            role=UserRole.STUDENT,
            lrn=lrn,
            grade_level=target_grade,
            guardian_name=application.guardian_name,
            guardian_phone=application.guardian_contact,
            status=AccountStatus.ACTIVE,
            email_verified=True,
            must_change_password=True,
        )

        decided = await repository.apply_decision(
            db,
            application.id,
            ApplicationStatus.APPROVED,
            decided_by=actor_id,
            account_id=account.id,
        )
        if not decided:
            # A concurrent decision committed between our read and this update
            raise InvalidApplicationStateError("decided", "approve")

        await log_activity(
            db,
            f"Approved enrollment of {student_name} for {target_grade} (LRN {lrn})",
            ActivityCategory.ADMISSIONS,
            actor_id=actor_id,
            actor_name=actor_name,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Approval of {application_id} hit a unique constraint: {e.orig}")
        if "lrn" in str(e.orig).lower():
            raise LrnConflictError() from e
        raise DuplicateAccountError(f"An account with email {email} already exists.") from e
    except ServiceError:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.error(f"Provisioning failed for application {application_id}", exc_info=True)
        raise

    logger.info(
        f"Application {application_id} approved. Account {account.id} provisioned with LRN {lrn}"
    )

    email_sent = await dispatch(
        db,
        render_enrollment_approved(
            to_email=account.email,
            student_name=student_name,
            target_grade=target_grade,
            lrn=lrn,
            temp_password=temp_password,
        ),
    )
    if not email_sent:
        logger.error(
            f"Credentials email for account {account.id} not delivered; queued for retry"
        )

    return ProvisioningResult(
        application=application,
        account=account,
        lrn=lrn,
        email_sent=email_sent,
    )


async def reject_application(
    db: AsyncSession,
    application_id: UUID,
    actor_id: str,
    actor_name: str,
    reason: str | None = None,
) -> EnrollmentApplication:
    """
    Reject a pending application. Creates no account.

    Raises:
        ApplicationNotFoundError: No such application
        InvalidApplicationStateError: Application already decided
    """
    logger.info(f"{actor_name} ({actor_id}) rejecting application {application_id}")

    application = await _get_pending(db, application_id, "reject")

    try:
        decided = await repository.apply_decision(
            db,
            application.id,
            ApplicationStatus.REJECTED,
            decided_by=actor_id,
            decision_reason=reason,
        )
        if not decided:
            raise InvalidApplicationStateError("decided", "reject")

        await log_activity(
            db,
            f"Rejected enrollment of {application.full_name}",
            ActivityCategory.ADMISSIONS,
            actor_id=actor_id,
            actor_name=actor_name,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await dispatch(
        db, render_enrollment_rejected(application.email, application.full_name, reason)
    )
    return application


async def decide_application(
    db: AsyncSession,
    application_id: UUID,
    decision: ApplicationStatus,
    actor_id: str,
    actor_name: str,
    reason: str | None = None,
) -> EnrollmentApplication | ProvisioningResult:
    """
    Apply a staff decision: approval provisions an account, rejection only
    updates the application.

    Raises:
        ValidationServiceError: ``decision`` is pending
    """
    if decision == ApplicationStatus.APPROVED:
        return await approve_application(db, application_id, actor_id, actor_name)
    if decision == ApplicationStatus.REJECTED:
        return await reject_application(db, application_id, actor_id, actor_name, reason)

    raise ValidationServiceError(
        "Decision must be 'approved' or 'rejected'.", error_code="INVALID_DECISION"
    )
