"""
Users Router

Endpoints:
- POST /users - Self-service signup (throttled per device)
- GET /verify?token= - Verify email address
- GET /users - List accounts (admin)
- GET /users/{id} - Account detail (admin)
- PUT /users/{id} - Edit profile (owner or admin) or status (admin)
- PUT /users/{id}/role - Change role (admin)
- DELETE /users/{id} - Remove account (admin)
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_admin_user, get_current_user
from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import ServiceError
from app.core.rate_limit import device_key, enforce_rate_limit, record_rate_limit_hit
from app.modules.users import service
from app.modules.users.models import UserRole
from app.modules.users.schemas import (
    AccountListResponse,
    AccountResponse,
    AccountUpdateRequest,
    RoleUpdateRequest,
    SignupRequest,
    SignupResponse,
    VerifyEmailResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/users", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    request: Request,
    data: SignupRequest,
    db: AsyncSession = Depends(get_db),
) -> SignupResponse:
    """
    Create an account from the signup form.

    Transferees get the TRANSFEREE role; every other request becomes PENDING
    until staff assign a role. A device may register once per
    SIGNUP_DEVICE_WINDOW_HOURS.

    Raises:
        HTTPException 409: Email already exists
        HTTPException 429: Device already signed up in the window
    """
    window_seconds = settings.signup_device_window_hours * 3600
    key = f"signup:device:{device_key(request, data.device_id)}"

    await enforce_rate_limit(
        key,
        settings.signup_device_limit,
        window_seconds,
        message=(
            "An account was already requested from this device. "
            f"Please wait {settings.signup_device_window_hours} hours or contact the registrar."
        ),
        record=False,
    )

    try:
        user = await service.signup(db, data)
    except ServiceError as e:
        raise e.to_http() from e

    await record_rate_limit_hit(key, window_seconds)

    return SignupResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        message="Account created. Please check your email to verify your address.",
    )


@router.get("/verify", response_model=VerifyEmailResponse)
async def verify_email(
    token: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> VerifyEmailResponse:
    """
    Verify an email address from the link sent at signup.

    Raises:
        HTTPException 400: Token missing, unknown or already used
    """
    try:
        await service.verify_email(db, token)
    except ServiceError as e:
        raise e.to_http() from e

    return VerifyEmailResponse(success=True, message="Email verified. You can now sign in.")


@router.get("/users", response_model=AccountListResponse)
async def list_users(
    role: UserRole | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _admin: CurrentUser = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
) -> AccountListResponse:
    users, total = await service.list_accounts(db, role=role, limit=limit, offset=offset)
    return AccountListResponse(
        items=[AccountResponse.model_validate(user) for user in users],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/users/{user_id}", response_model=AccountResponse)
async def get_user(
    user_id: str,
    _admin: CurrentUser = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
) -> AccountResponse:
    try:
        user = await service.get_account(db, user_id)
    except ServiceError as e:
        raise e.to_http() from e
    return AccountResponse.model_validate(user)


@router.put("/users/{user_id}", response_model=AccountResponse)
async def update_user(
    user_id: str,
    data: AccountUpdateRequest,
    caller: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> AccountResponse:
    """
    Edit profile fields, or (admins only) set the account status.

    Raises:
        HTTPException 400: Empty update
        HTTPException 403: Not an admin and not the account owner, or a
            non-admin status change
        HTTPException 404: Account not found
        HTTPException 422: Unknown or invalid fields
    """
    try:
        user = await service.update_account(
            db,
            user_id,
            data,
            actor_id=caller.id,
            actor_name=caller.name or caller.email,
            actor_role=caller.role,
        )
    except ServiceError as e:
        raise e.to_http() from e
    return AccountResponse.model_validate(user)


@router.put("/users/{user_id}/role", response_model=AccountResponse)
async def change_role(
    user_id: str,
    data: RoleUpdateRequest,
    admin: CurrentUser = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
) -> AccountResponse:
    try:
        user = await service.change_role(db, user_id, data.role, admin.id, admin.name)
    except ServiceError as e:
        raise e.to_http() from e
    return AccountResponse.model_validate(user)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user(
    user_id: str,
    admin: CurrentUser = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.remove_account(db, user_id, admin.id, admin.name)
    except ServiceError as e:
        raise e.to_http() from e
