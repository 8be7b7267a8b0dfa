"""
Model registry.

Importing this module registers every table on ``Base.metadata`` (used by
``init_db`` and alembic autogenerate).
"""

from app.modules.activity.models import ActivityLog
from app.modules.auth.models import LockoutRecord
from app.modules.enrollment.models import EnrollmentApplication
from app.modules.notifications.models import QueuedEmail
from app.modules.users.models import User

__all__ = [
    "ActivityLog",
    "EnrollmentApplication",
    "LockoutRecord",
    "QueuedEmail",
    "User",
]
