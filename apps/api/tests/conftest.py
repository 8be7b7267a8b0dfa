"""
Shared fixtures.
"""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.api import api_router
from app.core.database import get_db
from app.core.rate_limit import reset_memory_store
from app.core.security import create_access_token
from app.modules.users.models import AccountStatus, UserRole


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def fixed_now():
    return datetime(2026, 3, 2, 8, 0, tzinfo=UTC)


@pytest.fixture
def student_user():
    """A plain account object carrying the fields services read."""
    return SimpleNamespace(
        id="7d0e5f3c-2b1a-4c8e-9f10-3a2b1c0d9e8f",
        email="maria.santos@school.test",
        name="Maria Santos",
        role=UserRole.STUDENT,
        status=AccountStatus.ACTIVE,
        password_hash="$2b$12$stored",
        reset_token_hash=None,
        reset_token_expires_at=None,
        email_verified=True,
        must_change_password=False,
        created_at=datetime(2025, 6, 1, tzinfo=UTC),
    )


@pytest.fixture(autouse=True)
def clear_rate_limits():
    reset_memory_store()
    yield
    reset_memory_store()


# ============================================
# HTTP layer
# ============================================


@pytest.fixture
def api_app(mock_db):
    """The v1 API routers on a bare app, with the session replaced by ``mock_db``."""
    app = FastAPI()
    app.include_router(api_router, prefix="/api/v1")

    async def _get_db():
        yield mock_db

    app.dependency_overrides[get_db] = _get_db
    return app


@pytest_asyncio.fixture
async def client(api_app):
    transport = ASGITransport(app=api_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http


def bearer(role: UserRole, user_id: str = "00000000-0000-0000-0000-0000000000aa") -> dict:
    """Authorization header carrying an access token for ``role``."""
    token = create_access_token(
        user_id,
        {"role": role.value, "email": f"{role.value.lower()}@school.test", "name": role.value},
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return bearer
