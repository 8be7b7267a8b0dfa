"""Activity log schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .models import ActivityCategory


class ActivityLogItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    actor_id: str
    actor_name: str
    action: str
    category: ActivityCategory
    created_at: datetime


class ActivityLogListResponse(BaseModel):
    items: list[ActivityLogItem]
    total: int
    limit: int
    offset: int
