"""Activity log module - append-only audit trail."""

from app.modules.activity.models import ActivityCategory, ActivityLog
from app.modules.activity.router import router
from app.modules.activity.service import log_activity

__all__ = ["ActivityCategory", "ActivityLog", "log_activity", "router"]
