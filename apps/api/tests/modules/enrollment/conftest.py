"""
Fixtures for enrollment tests.
"""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.modules.enrollment.models import ApplicationStatus, EnrollmentApplication
from app.modules.enrollment.schemas import EnrollmentSubmission


@pytest.fixture
def sample_submission():
    return EnrollmentSubmission(
        first_name="Maria",
        middle_name="Clara",
        last_name="Santos",
        email="maria.santos@example.com",
        target_grade="Grade 3",
        guardian_name="Elena Santos",
        guardian_contact="+639171234567",
    )


@pytest.fixture
def pending_application():
    """Create a sample pending application model."""
    app = MagicMock(spec=EnrollmentApplication)
    app.id = uuid4()
    app.first_name = "Maria"
    app.middle_name = "Clara"
    app.last_name = "Santos"
    app.name_extension = None
    app.full_name = "Maria Clara Santos"
    app.email = "maria.santos@example.com"
    app.target_grade = "Grade 3"
    app.guardian_name = "Elena Santos"
    app.guardian_contact = "+639171234567"
    app.document_paths = []
    app.status = ApplicationStatus.PENDING
    app.submitted_at = datetime.now(UTC)
    app.decided_at = None
    app.decided_by = None
    app.account_id = None
    return app


@pytest.fixture
def provisioned_account():
    return SimpleNamespace(id="acc-0001", email="maria.santos@example.com")


@pytest.fixture
def enrollment_mocks(pending_application, provisioned_account):
    """Patch every collaborator of the enrollment service."""
    with (
        patch("app.modules.enrollment.service.repository") as mock_repo,
        patch("app.modules.enrollment.service.UserRepository") as mock_users,
        patch("app.modules.enrollment.service.dispatch", new_callable=AsyncMock) as mock_dispatch,
        patch(
            "app.modules.enrollment.service.log_activity", new_callable=AsyncMock
        ) as mock_log,
        patch("app.modules.enrollment.service.hash_password", return_value="hashed"),
    ):
        mock_repo.get_by_id = AsyncMock(return_value=pending_application)
        mock_repo.apply_decision = AsyncMock(return_value=True)
        mock_users.email_exists = AsyncMock(return_value=False)
        mock_users.lrn_exists = AsyncMock(return_value=False)
        mock_users.create = AsyncMock(return_value=provisioned_account)
        mock_dispatch.return_value = True
        yield SimpleNamespace(
            repo=mock_repo,
            users=mock_users,
            dispatch=mock_dispatch,
            log=mock_log,
        )
