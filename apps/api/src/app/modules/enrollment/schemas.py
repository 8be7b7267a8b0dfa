"""
Enrollment Schemas

Request/response models for enrollment intake and staff decisions.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from .helpers import GRADE_LEVELS, normalize_extension, split_full_name
from .models import ApplicationStatus


class EnrollmentSubmission(BaseModel):
    """
    Applicant fields from the enrollment form.

    Either the name parts or a single ``full_name`` may be sent; a full name
    is split into parts.
    """

    first_name: str = Field(..., min_length=1, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    name_extension: str | None = Field(default=None, max_length=10)
    email: EmailStr
    target_grade: str
    previous_school: str | None = Field(default=None, max_length=200)
    psa_number: str | None = Field(default=None, max_length=50)
    guardian_name: str | None = Field(default=None, max_length=200)
    guardian_contact: str | None = Field(default=None, max_length=50)

    @model_validator(mode="before")
    @classmethod
    def split_full_name_field(cls, data: Any) -> Any:
        if isinstance(data, dict):
            full_name = data.pop("full_name", None)
            if full_name and not (data.get("first_name") and data.get("last_name")):
                parts = split_full_name(full_name)
                if not data.get("first_name"):
                    data["first_name"] = parts["first_name"]
                if not data.get("last_name"):
                    data["last_name"] = parts["last_name"]
                if not data.get("name_extension"):
                    data["name_extension"] = parts["extension"]
        return data

    @field_validator(
        "first_name",
        "middle_name",
        "last_name",
        "previous_school",
        "psa_number",
        "guardian_name",
        "guardian_contact",
        mode="before",
    )
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = " ".join(str(v).split())
        return v or None

    @field_validator("name_extension")
    @classmethod
    def validate_extension(cls, v: str | None) -> str | None:
        if v is None:
            return None
        extension = normalize_extension(v)
        if extension is None:
            raise ValueError("Name extension must be one of Jr., Sr., II, III, IV, V")
        return extension

    @field_validator("target_grade")
    @classmethod
    def validate_grade(cls, v: str) -> str:
        v = " ".join(v.split())
        for grade in GRADE_LEVELS:
            if grade.lower() == v.lower():
                return grade
        raise ValueError(f"Target grade must be one of: {', '.join(GRADE_LEVELS)}")

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class ApplicationResponse(BaseModel):
    """An enrollment application as returned to staff."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    middle_name: str | None
    last_name: str
    name_extension: str | None
    full_name: str
    email: str
    target_grade: str
    previous_school: str | None
    psa_number: str | None
    guardian_name: str | None
    guardian_contact: str | None
    document_paths: list[str]
    status: ApplicationStatus
    submitted_at: datetime
    decided_at: datetime | None
    decided_by: str | None
    decision_reason: str | None
    account_id: str | None


class SubmissionResponse(BaseModel):
    """Returned to the applicant after submitting."""

    id: UUID
    status: ApplicationStatus
    email: str
    submitted_at: datetime
    message: str


class ApplicationListResponse(BaseModel):
    items: list[ApplicationResponse]
    total: int
    limit: int
    offset: int


class DecisionRequest(BaseModel):
    """Staff decision on a pending application."""

    status: ApplicationStatus
    reason: str | None = Field(default=None, max_length=2000)


class DecisionResponse(BaseModel):
    """
    Outcome of a decision. Approval fills in the provisioned account; the
    temporary password is only ever sent to the applicant by email.
    """

    application_id: UUID
    status: ApplicationStatus
    account_id: str | None = None
    lrn: str | None = None
    email_sent: bool | None = None
    message: str
