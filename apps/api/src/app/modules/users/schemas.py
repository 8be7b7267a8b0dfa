"""User schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.modules.users.models import AccountStatus, UserRole


class SignupRequest(BaseModel):
    """Self-service signup request."""

    name: str = Field(..., min_length=2, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: str = Field(default=UserRole.PENDING.value, max_length=20)
    device_id: str | None = Field(default=None, max_length=128)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = " ".join(v.split())
        if len(v) < 2:
            raise ValueError("Name is required")
        return v

    @field_validator("role")
    @classmethod
    def normalize_role(cls, v: str) -> str:
        return v.strip().upper()


class AccountResponse(BaseModel):
    """Public view of an account. Never carries password or token material."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: UserRole
    requested_role: str | None = None
    lrn: str | None = None
    grade_level: str | None = None
    section: str | None = None
    phone: str | None = None
    address: str | None = None
    guardian_name: str | None = None
    guardian_phone: str | None = None
    status: AccountStatus
    email_verified: bool
    must_change_password: bool
    created_at: datetime


class SignupResponse(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    message: str


class VerifyEmailResponse(BaseModel):
    success: bool
    message: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=10)
    new_password: str = Field(..., min_length=8, max_length=128)


class MessageResponse(BaseModel):
    message: str


class RoleUpdateRequest(BaseModel):
    role: UserRole


class AccountListResponse(BaseModel):
    items: list[AccountResponse]
    total: int
    limit: int
    offset: int


class AccountUpdateRequest(BaseModel):
    """
    Editable account fields. Any other key in the body is refused, so
    credentials, role and email cannot be changed through this request.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=200)
    grade_level: str | None = Field(default=None, max_length=50)
    section: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    address: str | None = Field(default=None, max_length=500)
    guardian_name: str | None = Field(default=None, max_length=200)
    guardian_phone: str | None = Field(default=None, max_length=30)
    status: AccountStatus | None = None

    @field_validator(
        "name",
        "grade_level",
        "section",
        "phone",
        "address",
        "guardian_name",
        "guardian_phone",
        mode="before",
    )
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = " ".join(str(v).split())
        return v or None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str:
        if v is None or len(v) < 2:
            raise ValueError("Name is required")
        return v

    @field_validator("status", mode="before")
    @classmethod
    def status_not_null(cls, v):
        if v is None:
            raise ValueError("Status cannot be cleared")
        return v
