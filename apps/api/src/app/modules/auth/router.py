"""
Authentication Router

Endpoints:
- POST /login - Lockout-guarded login
- POST /auth/forgot-password - Email a password reset link
- POST /auth/reset-password - Set a new password from a reset token
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import ServiceError
from app.core.rate_limit import client_ip, device_key, enforce_rate_limit
from app.modules.auth import service
from app.modules.auth.schemas import LoginRequest, LoginResponse
from app.modules.users import service as users_service
from app.modules.users.schemas import (
    AccountResponse,
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_FORGOT_PASSWORD = (3, 3600)  # 3 reset emails per hour per address
RATE_LIMIT_RESET_PASSWORD = (10, 3600)  # per client IP


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate and return JWT tokens.

    Raises:
        HTTPException 401: Invalid credentials, with attempts remaining
        HTTPException 403: Account dropped
        HTTPException 423: Device suspended, with hours remaining
    """
    try:
        result = await service.login(
            db,
            email=credentials.email,
            password=credentials.password,
            device_id=device_key(request, credentials.device_id),
        )
    except ServiceError as e:
        raise e.to_http() from e

    return LoginResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        user=AccountResponse.model_validate(result.user),
    )


@router.post("/auth/forgot-password", response_model=MessageResponse)
async def forgot_password(
    data: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Always answers the same way so the endpoint cannot probe for accounts."""
    limit, window = RATE_LIMIT_FORGOT_PASSWORD
    await enforce_rate_limit(f"forgot_password:{data.email.lower()}", limit, window)

    await users_service.request_password_reset(db, data.email)
    return MessageResponse(
        message="If an account exists for that email, a reset link has been sent."
    )


@router.post("/auth/reset-password", response_model=MessageResponse)
async def reset_password(
    request: Request,
    data: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """
    Raises:
        HTTPException 400: Token unknown or expired
    """
    limit, window = RATE_LIMIT_RESET_PASSWORD
    await enforce_rate_limit(f"reset_password:{client_ip(request)}", limit, window)

    try:
        await users_service.reset_password(db, data.token, data.new_password)
    except ServiceError as e:
        raise e.to_http() from e

    return MessageResponse(message="Password updated. You can now sign in.")
