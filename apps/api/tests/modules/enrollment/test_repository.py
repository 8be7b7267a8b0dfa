"""
Unit tests for enrollment repository layer.

These tests focus on the decision state machine and the conditional update.
"""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from app.modules.enrollment.models import ApplicationStatus
from app.modules.enrollment.repository import (
    VALID_STATUS_TRANSITIONS,
    InvalidStatusTransitionError,
    apply_decision,
    is_valid_transition,
)


class TestStatusTransitions:
    """Tests for status transition state machine."""

    def test_pending_can_be_decided(self):
        valid = VALID_STATUS_TRANSITIONS[ApplicationStatus.PENDING]
        assert valid == {ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}

    def test_decisions_are_terminal(self):
        assert VALID_STATUS_TRANSITIONS[ApplicationStatus.APPROVED] == set()
        assert VALID_STATUS_TRANSITIONS[ApplicationStatus.REJECTED] == set()

    def test_all_statuses_are_in_transition_map(self):
        for status in ApplicationStatus:
            assert status in VALID_STATUS_TRANSITIONS

    def test_is_valid_transition(self):
        assert is_valid_transition(ApplicationStatus.PENDING, ApplicationStatus.APPROVED)
        assert not is_valid_transition(ApplicationStatus.APPROVED, ApplicationStatus.REJECTED)
        assert not is_valid_transition(ApplicationStatus.PENDING, ApplicationStatus.PENDING)


class TestInvalidStatusTransitionError:
    """Tests for InvalidStatusTransitionError."""

    def test_error_message_contains_both_statuses(self):
        error = InvalidStatusTransitionError(
            ApplicationStatus.APPROVED, ApplicationStatus.REJECTED
        )
        assert "approved" in str(error)
        assert "rejected" in str(error)
        assert error.current_status == ApplicationStatus.APPROVED
        assert error.new_status == ApplicationStatus.REJECTED


class TestApplyDecision:
    """Tests for apply_decision."""

    @pytest.mark.asyncio
    async def test_returns_true_when_row_updated(self, mock_db):
        mock_db.execute.return_value = MagicMock(rowcount=1)

        result = await apply_decision(
            mock_db, uuid4(), ApplicationStatus.APPROVED, decided_by="staff-1"
        )

        assert result is True
        mock_db.execute.assert_called_once()

    @pytest.mark.asyncio
    async def test_returns_false_when_no_longer_pending(self, mock_db):
        mock_db.execute.return_value = MagicMock(rowcount=0)

        result = await apply_decision(
            mock_db, uuid4(), ApplicationStatus.REJECTED, decided_by="staff-1"
        )

        assert result is False

    @pytest.mark.asyncio
    async def test_rejects_non_decision_status(self, mock_db):
        with pytest.raises(InvalidStatusTransitionError):
            await apply_decision(
                mock_db, uuid4(), ApplicationStatus.PENDING, decided_by="staff-1"
            )

        mock_db.execute.assert_not_called()
