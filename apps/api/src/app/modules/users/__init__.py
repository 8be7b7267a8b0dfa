"""
Users module - account records and account administration.
"""

from app.modules.users.models import AccountStatus, User, UserRole
from app.modules.users.repository import UserRepository

__all__ = ["AccountStatus", "User", "UserRole", "UserRepository"]
