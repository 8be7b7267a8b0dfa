"""
HTTP tests for the login endpoint.

These tests cover:
- 401 with the attempts remaining, then 423 once the device is suspended
- Device identity from the X-Device-Id header, the body, or the client address
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.config import settings
from app.core.exceptions import DeviceSuspendedError, InvalidCredentialsError

LOGIN_URL = "/api/v1/login"


@pytest.fixture
def login_stack(lockout_repo, student_user):
    """Real login service over the fake lockout store and a one-account directory."""
    verify = MagicMock(side_effect=lambda password, _hash: password == "correct-horse")
    with (
        patch("app.modules.auth.lockout.repository", lockout_repo),
        patch("app.modules.auth.service.UserRepository") as mock_users,
        patch("app.modules.auth.service.verify_password", verify),
        patch("app.modules.auth.service.log_activity", new_callable=AsyncMock),
    ):
        mock_users.get_by_email = AsyncMock(
            side_effect=lambda _db, email: student_user if email == student_user.email else None
        )
        yield verify


@pytest.fixture
def mock_login():
    with patch("app.modules.auth.service.login", new_callable=AsyncMock) as login:
        login.side_effect = InvalidCredentialsError(2)
        yield login


def _credentials(password: str = "wrong", **extra) -> dict:
    return {"email": "maria.santos@school.test", "password": password, **extra}


class TestLoginEndpoint:
    """Tests for POST /login."""

    @pytest.mark.asyncio
    async def test_failures_count_down_then_device_is_suspended(
        self, client, login_stack, lockout_repo
    ):
        headers = {"X-Device-Id": "tablet-7"}

        for remaining in range(settings.lockout_max_attempts - 1, -1, -1):
            response = await client.post(LOGIN_URL, json=_credentials(), headers=headers)
            assert response.status_code == 401
            detail = response.json()["detail"]
            assert detail["error"] == "INVALID_CREDENTIALS"
            assert detail["message"] == f"Incorrect credentials. {remaining} attempts remaining."

        response = await client.post(
            LOGIN_URL, json=_credentials("correct-horse"), headers=headers
        )

        assert response.status_code == 423
        detail = response.json()["detail"]
        assert detail["error"] == "DEVICE_SUSPENDED"
        assert f"another {settings.lockout_suspension_hours} hours" in detail["message"]
        assert login_stack.call_count == settings.lockout_max_attempts
        assert lockout_repo.records["tablet-7"].suspended_until is not None

    @pytest.mark.asyncio
    async def test_suspension_does_not_follow_to_another_device(
        self, client, login_stack, lockout_repo
    ):
        for _ in range(settings.lockout_max_attempts):
            await client.post(LOGIN_URL, json=_credentials(), headers={"X-Device-Id": "tablet-7"})

        response = await client.post(
            LOGIN_URL, json=_credentials("correct-horse"), headers={"X-Device-Id": "laptop-2"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["access_token"]
        assert body["user"]["email"] == "maria.santos@school.test"
        assert "password_hash" not in body["user"]

    @pytest.mark.asyncio
    async def test_suspended_device_response(self, client, mock_login):
        mock_login.side_effect = DeviceSuspendedError(9)

        response = await client.post(LOGIN_URL, json=_credentials())

        assert response.status_code == 423
        assert response.json()["detail"]["message"] == (
            "Device suspended. Your access is restricted for another 9 hours."
        )

    @pytest.mark.asyncio
    async def test_header_device_id_takes_precedence(self, client, mock_login):
        await client.post(
            LOGIN_URL,
            json=_credentials(device_id="body-dev"),
            headers={"X-Device-Id": "header-dev"},
        )

        assert mock_login.call_args.kwargs["device_id"] == "header-dev"

    @pytest.mark.asyncio
    async def test_body_device_id_without_header(self, client, mock_login):
        await client.post(LOGIN_URL, json=_credentials(device_id="body-dev"))

        assert mock_login.call_args.kwargs["device_id"] == "body-dev"

    @pytest.mark.asyncio
    async def test_blank_device_id_falls_back_to_client_address(self, client, mock_login):
        await client.post(LOGIN_URL, json=_credentials(), headers={"X-Device-Id": "   "})

        assert mock_login.call_args.kwargs["device_id"].startswith("ip:")
