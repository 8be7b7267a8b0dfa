"""
Unit tests for enrollment service layer.

These tests cover:
- Application submission and duplicate detection
- Approval provisioning a student account
- Conflicts: duplicate email, LRN clash, already decided, concurrent decision
- Rejection
- Email delivery failures after commit
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, MissingGreenlet

from app.core.exceptions import DuplicateAccountError, ValidationServiceError
from app.modules.activity.models import ActivityCategory
from app.modules.enrollment.models import ApplicationStatus
from app.modules.enrollment.service import (
    ApplicationNotFoundError,
    DuplicateApplicationError,
    InvalidApplicationStateError,
    LrnConflictError,
    ProvisioningResult,
    approve_application,
    decide_application,
    get_application,
    reject_application,
    submit_application,
)
from app.modules.users.models import AccountStatus, UserRole

STAFF_ID = "staff-0001"
STAFF_NAME = "Registrar"


class _ExpiringRow:
    """Reads fail after the session rolls back, as they do on an expired ORM row."""

    def __init__(self, row, session):
        self._row = row
        self._session = session

    def __getattr__(self, name):
        if self._session.rolled_back:
            raise MissingGreenlet("greenlet_spawn has not been called")
        return getattr(self._row, name)


def _expire_on_rollback(session, row):
    session.rolled_back = False

    def _rollback():
        session.rolled_back = True

    session.rollback.side_effect = _rollback
    return _ExpiringRow(row, session)


class TestSubmitApplication:
    """Tests for submit_application."""

    @pytest.mark.asyncio
    async def test_submit_creates_pending_application(
        self, mock_db, sample_submission, pending_application
    ):
        with (
            patch("app.modules.enrollment.service.repository") as mock_repo,
            patch("app.modules.enrollment.service.save_uploads", new_callable=AsyncMock) as mock_save,
            patch("app.modules.enrollment.service.dispatch", new_callable=AsyncMock) as mock_dispatch,
            patch("app.modules.enrollment.service.log_activity", new_callable=AsyncMock) as mock_log,
        ):
            mock_repo.get_pending_by_email = AsyncMock(return_value=None)
            mock_repo.create = AsyncMock(return_value=pending_application)
            mock_save.return_value = ["enrollment/psa.pdf"]

            result = await submit_application(mock_db, sample_submission, documents=[])

            assert result is pending_application
            mock_repo.create.assert_called_once_with(
                mock_db, sample_submission, ["enrollment/psa.pdf"]
            )
            assert mock_log.call_args.args[2] == ActivityCategory.ADMISSIONS
            mock_db.commit.assert_called_once()
            mock_dispatch.assert_called_once()
            assert mock_dispatch.call_args.args[1].to_email == pending_application.email

    @pytest.mark.asyncio
    async def test_duplicate_pending_application_rejected(
        self, mock_db, sample_submission, pending_application
    ):
        with (
            patch("app.modules.enrollment.service.repository") as mock_repo,
            patch("app.modules.enrollment.service.save_uploads", new_callable=AsyncMock) as mock_save,
        ):
            mock_repo.get_pending_by_email = AsyncMock(return_value=pending_application)

            with pytest.raises(DuplicateApplicationError) as exc_info:
                await submit_application(mock_db, sample_submission)

            assert exc_info.value.status_code == 409
            mock_save.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_insert_removes_saved_documents(self, mock_db, sample_submission):
        with (
            patch("app.modules.enrollment.service.repository") as mock_repo,
            patch("app.modules.enrollment.service.save_uploads", new_callable=AsyncMock) as mock_save,
            patch("app.modules.enrollment.service.delete_stored", new_callable=AsyncMock) as mock_delete,
        ):
            mock_repo.get_pending_by_email = AsyncMock(return_value=None)
            mock_repo.create = AsyncMock(side_effect=RuntimeError("db down"))
            mock_save.return_value = ["enrollment/psa.pdf"]

            with pytest.raises(RuntimeError):
                await submit_application(mock_db, sample_submission)

            mock_db.rollback.assert_called_once()
            mock_delete.assert_called_once_with(["enrollment/psa.pdf"])


class TestGetApplication:
    """Tests for get_application."""

    @pytest.mark.asyncio
    async def test_not_found(self, mock_db):
        with patch("app.modules.enrollment.service.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(ApplicationNotFoundError) as exc_info:
                await get_application(mock_db, uuid4())

            assert exc_info.value.status_code == 404


class TestApproveApplication:
    """Tests for approve_application."""

    @pytest.mark.asyncio
    async def test_approval_provisions_student_account(
        self, mock_db, enrollment_mocks, pending_application, provisioned_account
    ):
        def assert_committed_first(_db, _message):
            assert mock_db.commit.called
            return True

        enrollment_mocks.dispatch.side_effect = assert_committed_first

        result = await approve_application(
            mock_db, pending_application.id, STAFF_ID, STAFF_NAME
        )

        assert isinstance(result, ProvisioningResult)
        assert result.account is provisioned_account
        assert result.email_sent is True
        assert len(result.lrn) == 12 and result.lrn.isdigit()
        assert not hasattr(result, "temp_password")

        kwargs = enrollment_mocks.users.create.call_args.kwargs
        assert kwargs["email"] == pending_application.email
        assert kwargs["name"] == "Maria Clara Santos"
        assert kwargs["role"] == UserRole.STUDENT
        assert kwargs["lrn"] == result.lrn
        assert kwargs["grade_level"] == "Grade 3"
        assert kwargs["status"] == AccountStatus.ACTIVE
        assert kwargs["email_verified"] is True
        assert kwargs["must_change_password"] is True

        enrollment_mocks.repo.apply_decision.assert_called_once_with(
            mock_db,
            pending_application.id,
            ApplicationStatus.APPROVED,
            decided_by=STAFF_ID,
            account_id=provisioned_account.id,
        )
        assert enrollment_mocks.log.call_args.args[2] == ActivityCategory.ADMISSIONS
        mock_db.commit.assert_called_once()
        mock_db.rollback.assert_not_called()

    @pytest.mark.asyncio
    async def test_credentials_email_carries_lrn_and_password(
        self, mock_db, enrollment_mocks, pending_application
    ):
        with patch(
            "app.modules.enrollment.service.generate_temp_password", return_value="Tmp4Pass9xyz"
        ):
            result = await approve_application(
                mock_db, pending_application.id, STAFF_ID, STAFF_NAME
            )

        message = enrollment_mocks.dispatch.call_args.args[1]
        assert message.to_email == pending_application.email
        assert result.lrn in message.html_content
        assert "Tmp4Pass9xyz" in message.html_content

    @pytest.mark.asyncio
    async def test_existing_account_blocks_approval(
        self, mock_db, enrollment_mocks, pending_application
    ):
        enrollment_mocks.users.email_exists.return_value = True

        with pytest.raises(DuplicateAccountError) as exc_info:
            await approve_application(mock_db, pending_application.id, STAFF_ID, STAFF_NAME)

        assert exc_info.value.status_code == 409
        enrollment_mocks.users.create.assert_not_called()
        enrollment_mocks.repo.apply_decision.assert_not_called()
        mock_db.commit.assert_not_called()
        enrollment_mocks.dispatch.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_application(self, mock_db, enrollment_mocks):
        enrollment_mocks.repo.get_by_id.return_value = None

        with pytest.raises(ApplicationNotFoundError):
            await approve_application(mock_db, uuid4(), STAFF_ID, STAFF_NAME)

        enrollment_mocks.users.create.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [ApplicationStatus.APPROVED, ApplicationStatus.REJECTED])
    async def test_decided_application_cannot_be_approved(
        self, mock_db, enrollment_mocks, pending_application, status
    ):
        pending_application.status = status

        with pytest.raises(InvalidApplicationStateError) as exc_info:
            await approve_application(mock_db, pending_application.id, STAFF_ID, STAFF_NAME)

        assert exc_info.value.status_code == 409
        assert exc_info.value.current_status == status.value
        enrollment_mocks.users.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_decision_rolls_back_account(
        self, mock_db, enrollment_mocks, pending_application
    ):
        enrollment_mocks.repo.apply_decision.return_value = False

        with pytest.raises(InvalidApplicationStateError):
            await approve_application(mock_db, pending_application.id, STAFF_ID, STAFF_NAME)

        enrollment_mocks.users.create.assert_called_once()
        mock_db.rollback.assert_called_once()
        mock_db.commit.assert_not_called()
        enrollment_mocks.log.assert_not_called()
        enrollment_mocks.dispatch.assert_not_called()

    @pytest.mark.asyncio
    async def test_unique_violation_maps_to_duplicate(
        self, mock_db, enrollment_mocks, pending_application
    ):
        enrollment_mocks.users.create.side_effect = IntegrityError(
            "INSERT INTO users", {}, Exception("duplicate key value")
        )

        with pytest.raises(DuplicateAccountError):
            await approve_application(mock_db, pending_application.id, STAFF_ID, STAFF_NAME)

        mock_db.rollback.assert_called_once()
        enrollment_mocks.dispatch.assert_not_called()

    @pytest.mark.asyncio
    async def test_lost_email_race_reports_duplicate_after_rollback(
        self, mock_db, enrollment_mocks, pending_application
    ):
        # A signup for the same email committed between the check and the insert
        expiring = _expire_on_rollback(mock_db, pending_application)
        enrollment_mocks.repo.get_by_id.return_value = expiring
        enrollment_mocks.users.create.side_effect = IntegrityError(
            "INSERT INTO users",
            {},
            Exception('duplicate key value violates unique constraint "ix_users_email"'),
        )

        with pytest.raises(DuplicateAccountError) as exc_info:
            await approve_application(mock_db, pending_application.id, STAFF_ID, STAFF_NAME)

        assert exc_info.value.status_code == 409
        assert "maria.santos@example.com" in exc_info.value.message
        mock_db.rollback.assert_called_once()
        enrollment_mocks.dispatch.assert_not_called()

    @pytest.mark.asyncio
    async def test_lrn_collision_is_not_reported_as_email(
        self, mock_db, enrollment_mocks, pending_application
    ):
        enrollment_mocks.repo.get_by_id.return_value = _expire_on_rollback(
            mock_db, pending_application
        )
        enrollment_mocks.users.create.side_effect = IntegrityError(
            "INSERT INTO users",
            {},
            Exception('duplicate key value violates unique constraint "ix_users_lrn"'),
        )

        with pytest.raises(LrnConflictError) as exc_info:
            await approve_application(mock_db, pending_application.id, STAFF_ID, STAFF_NAME)

        assert exc_info.value.status_code == 409
        assert exc_info.value.error_code == "LRN_CONFLICT"
        mock_db.rollback.assert_called_once()

    @pytest.mark.asyncio
    async def test_email_failure_keeps_approval(
        self, mock_db, enrollment_mocks, pending_application
    ):
        enrollment_mocks.dispatch.return_value = False

        result = await approve_application(mock_db, pending_application.id, STAFF_ID, STAFF_NAME)

        assert result.email_sent is False
        mock_db.commit.assert_called_once()
        mock_db.rollback.assert_not_called()


class TestRejectApplication:
    """Tests for reject_application."""

    @pytest.mark.asyncio
    async def test_reject_creates_no_account(
        self, mock_db, enrollment_mocks, pending_application
    ):
        result = await reject_application(
            mock_db, pending_application.id, STAFF_ID, STAFF_NAME, reason="Incomplete documents"
        )

        assert result is pending_application
        enrollment_mocks.users.create.assert_not_called()
        enrollment_mocks.repo.apply_decision.assert_called_once_with(
            mock_db,
            pending_application.id,
            ApplicationStatus.REJECTED,
            decided_by=STAFF_ID,
            decision_reason="Incomplete documents",
        )
        mock_db.commit.assert_called_once()
        message = enrollment_mocks.dispatch.call_args.args[1]
        assert "Incomplete documents" in message.html_content

    @pytest.mark.asyncio
    async def test_rejecting_decided_application_fails(
        self, mock_db, enrollment_mocks, pending_application
    ):
        pending_application.status = ApplicationStatus.APPROVED

        with pytest.raises(InvalidApplicationStateError):
            await reject_application(mock_db, pending_application.id, STAFF_ID, STAFF_NAME)

        enrollment_mocks.repo.apply_decision.assert_not_called()


class TestDecideApplication:
    """Tests for decide_application dispatching on the decision."""

    @pytest.mark.asyncio
    async def test_approved_routes_to_provisioning(
        self, mock_db, enrollment_mocks, pending_application
    ):
        result = await decide_application(
            mock_db, pending_application.id, ApplicationStatus.APPROVED, STAFF_ID, STAFF_NAME
        )
        assert isinstance(result, ProvisioningResult)

    @pytest.mark.asyncio
    async def test_pending_is_not_a_decision(self, mock_db, enrollment_mocks, pending_application):
        with pytest.raises(ValidationServiceError) as exc_info:
            await decide_application(
                mock_db, pending_application.id, ApplicationStatus.PENDING, STAFF_ID, STAFF_NAME
            )

        assert exc_info.value.error_code == "INVALID_DECISION"
        enrollment_mocks.repo.apply_decision.assert_not_called()
