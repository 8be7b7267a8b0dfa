"""Authentication schemas."""

from pydantic import BaseModel, EmailStr, Field

from app.modules.users.schemas import AccountResponse


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    # Falls back to the X-Device-Id header, then the client address
    device_id: str | None = Field(default=None, max_length=128)


class LoginResponse(BaseModel):
    """Login response schema. The account never carries password material."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: AccountResponse
