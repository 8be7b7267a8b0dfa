"""
Unit tests for the enrollment submission schema.
"""

import pytest
from pydantic import ValidationError

from app.modules.enrollment.schemas import EnrollmentSubmission


def _form(**overrides):
    data = {
        "first_name": "Maria",
        "last_name": "Santos",
        "email": "Maria.Santos@Example.com",
        "target_grade": "Grade 3",
    }
    data.update(overrides)
    return data


class TestEnrollmentSubmission:
    """Tests for EnrollmentSubmission validation."""

    def test_valid_submission_normalizes_fields(self):
        data = EnrollmentSubmission.model_validate(
            _form(first_name="  Maria  ", target_grade="grade 3", name_extension="jr")
        )
        assert data.first_name == "Maria"
        assert data.email == "maria.santos@example.com"
        assert data.target_grade == "Grade 3"
        assert data.name_extension == "Jr."

    def test_full_name_is_split(self):
        data = EnrollmentSubmission.model_validate(
            {
                "full_name": "Juan Dela Cruz III",
                "email": "juan@example.com",
                "target_grade": "Kindergarten",
            }
        )
        assert data.first_name == "Juan Dela"
        assert data.last_name == "Cruz"
        assert data.name_extension == "III"

    def test_unknown_grade_is_rejected(self):
        with pytest.raises(ValidationError):
            EnrollmentSubmission.model_validate(_form(target_grade="Grade 11"))

    def test_unknown_extension_is_rejected(self):
        with pytest.raises(ValidationError):
            EnrollmentSubmission.model_validate(_form(name_extension="Esq."))

    def test_missing_last_name_is_rejected(self):
        with pytest.raises(ValidationError):
            EnrollmentSubmission.model_validate(_form(last_name="   "))

    def test_invalid_email_is_rejected(self):
        with pytest.raises(ValidationError):
            EnrollmentSubmission.model_validate(_form(email="not-an-email"))
