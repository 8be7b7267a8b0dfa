"""
Activity Log Router

- GET /activity-logs - Paginated audit trail (staff only)
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_staff_user
from app.core.database import get_db
from app.modules.activity import service
from app.modules.activity.models import ActivityCategory
from app.modules.activity.schemas import ActivityLogItem, ActivityLogListResponse

router = APIRouter()


@router.get("", response_model=ActivityLogListResponse)
async def list_activity_logs(
    category: ActivityCategory | None = Query(None, description="Filter by category"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _staff: CurrentUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> ActivityLogListResponse:
    entries, total = await service.list_activity(db, category=category, limit=limit, offset=offset)
    return ActivityLogListResponse(
        items=[ActivityLogItem.model_validate(entry) for entry in entries],
        total=total,
        limit=limit,
        offset=offset,
    )
