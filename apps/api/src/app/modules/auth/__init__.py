"""Authentication module - device lockout and login."""

from app.modules.auth.models import LockoutRecord
from app.modules.auth.router import router
from app.modules.auth.schemas import LoginRequest, LoginResponse

__all__ = ["LockoutRecord", "router", "LoginRequest", "LoginResponse"]
