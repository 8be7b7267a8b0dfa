"""
Enrollment Router

Endpoints:
- POST /enrollment - Submit an application (multipart form with optional documents, or JSON)
- GET /enrollment - List applications (staff)
- GET /enrollment/{id} - Application detail (staff)
- PUT /enrollment/{id} - Approve or reject (staff)
"""

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_staff_user
from app.core.database import get_db
from app.core.exceptions import ServiceError
from app.core.rate_limit import enforce_rate_limit
from app.modules.enrollment import service
from app.modules.enrollment.models import ApplicationStatus
from app.modules.enrollment.schemas import (
    ApplicationListResponse,
    ApplicationResponse,
    DecisionRequest,
    DecisionResponse,
    EnrollmentSubmission,
    SubmissionResponse,
)
from app.modules.enrollment.service import ProvisioningResult

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_DECISIONS = (30, 60)  # decisions per staff member per minute


# Text fields accepted by the intake form, full_name included
SUBMISSION_FIELDS = (*EnrollmentSubmission.model_fields, "full_name")


async def _read_submission(request: Request) -> tuple[dict[str, Any], list[UploadFile]]:
    """
    Pull applicant fields (and any documents) out of a JSON or form body.

    Raises:
        HTTPException 415: Body is neither JSON nor a form
        HTTPException 422: JSON body is malformed or not an object
    """
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Request body is not valid JSON.",
            ) from e
        if not isinstance(body, dict):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Request body must be a JSON object.",
            )
        return body, []

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        fields: dict[str, Any] = {}
        for name in SUBMISSION_FIELDS:
            value = form.get(name)
            if isinstance(value, str):
                fields[name] = value or None
        documents = [item for item in form.getlist("documents") if not isinstance(item, str)]
        return fields, documents

    raise HTTPException(
        status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
        detail="Send the application as multipart/form-data or application/json.",
    )


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_enrollment(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SubmissionResponse:
    """
    Submit an enrollment application.

    Accepts a multipart form (with optional ``documents`` files) or a JSON
    object with the same fields. JSON submissions carry no documents.

    Raises:
        HTTPException 400: Invalid document
        HTTPException 409: A pending application already exists for the email
        HTTPException 415: Unsupported body type
        HTTPException 422: Missing or invalid fields
    """
    fields, documents = await _read_submission(request)
    try:
        data = EnrollmentSubmission.model_validate(fields)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        ) from e

    try:
        application = await service.submit_application(db, data, documents)
    except ServiceError as e:
        raise e.to_http() from e

    return SubmissionResponse(
        id=application.id,
        status=application.status,
        email=application.email,
        submitted_at=application.submitted_at,
        message="Application submitted. You will be notified by email once it is reviewed.",
    )


@router.get("", response_model=ApplicationListResponse)
async def list_enrollments(
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _staff: CurrentUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> ApplicationListResponse:
    applications, total = await service.list_applications(
        db, status=status_filter, limit=limit, offset=offset
    )
    return ApplicationListResponse(
        items=[ApplicationResponse.model_validate(a) for a in applications],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_enrollment(
    application_id: UUID,
    _staff: CurrentUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    try:
        application = await service.get_application(db, application_id)
    except ServiceError as e:
        raise e.to_http() from e
    return ApplicationResponse.model_validate(application)


@router.put("/{application_id}", response_model=DecisionResponse)
async def decide_enrollment(
    application_id: UUID,
    decision: DecisionRequest,
    staff: CurrentUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> DecisionResponse:
    """
    Approve or reject a pending application.

    Approval provisions a STUDENT account and emails its credentials.

    Raises:
        HTTPException 400: Decision is not approved/rejected
        HTTPException 404: Application not found
        HTTPException 409: Already decided, or an account already uses the email
    """
    limit, window = RATE_LIMIT_DECISIONS
    await enforce_rate_limit(f"enrollment:decide:{staff.id}", limit, window)

    try:
        outcome = await service.decide_application(
            db,
            application_id,
            decision.status,
            actor_id=staff.id,
            actor_name=staff.name or staff.email,
            reason=decision.reason,
        )
    except ServiceError as e:
        raise e.to_http() from e

    if isinstance(outcome, ProvisioningResult):
        return DecisionResponse(
            application_id=outcome.application.id,
            status=ApplicationStatus.APPROVED,
            account_id=outcome.account.id,
            lrn=outcome.lrn,
            email_sent=outcome.email_sent,
            message="Application approved. Student account created.",
        )

    return DecisionResponse(
        application_id=outcome.id,
        status=ApplicationStatus.REJECTED,
        message="Application rejected.",
    )
