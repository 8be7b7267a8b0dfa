"""
Unit tests for rate limiting with the in-memory fallback.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.rate_limit import (
    DEVICE_ID_HEADER,
    RateLimitExceeded,
    check_rate_limit,
    device_key,
    enforce_rate_limit,
    record_rate_limit_hit,
)


@pytest.fixture
def no_redis():
    with patch("app.core.rate_limit.get_redis", new_callable=AsyncMock) as mock_get:
        mock_get.return_value = None
        yield mock_get


class TestMemoryFallback:
    """Tests for the in-memory sliding window."""

    @pytest.mark.asyncio
    async def test_allows_up_to_limit(self, no_redis):
        assert await check_rate_limit("k", 2, 60) is True
        assert await check_rate_limit("k", 2, 60) is True
        assert await check_rate_limit("k", 2, 60) is False

    @pytest.mark.asyncio
    async def test_peek_does_not_consume(self, no_redis):
        for _ in range(3):
            assert await check_rate_limit("signup:dev-1", 1, 60, record=False) is True

        await record_rate_limit_hit("signup:dev-1", 60)
        assert await check_rate_limit("signup:dev-1", 1, 60, record=False) is False

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, no_redis):
        assert await check_rate_limit("a", 1, 60) is True
        assert await check_rate_limit("b", 1, 60) is True

    @pytest.mark.asyncio
    async def test_enforce_raises_429(self, no_redis):
        await enforce_rate_limit("k", 1, 60)

        with pytest.raises(RateLimitExceeded) as exc_info:
            await enforce_rate_limit("k", 1, 60, message="Slow down")

        assert exc_info.value.status_code == 429
        assert exc_info.value.detail["message"] == "Slow down"
        assert exc_info.value.headers["Retry-After"] == "60"

    @pytest.mark.asyncio
    async def test_redis_failure_falls_back_to_memory(self):
        broken = MagicMock()
        broken.pipeline.side_effect = ConnectionError("redis gone")
        with patch("app.core.rate_limit.get_redis", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = broken

            assert await check_rate_limit("k", 1, 60) is True
            assert await check_rate_limit("k", 1, 60) is False


class TestDeviceKey:
    """Tests for device identification."""

    def _request(self, headers=None, host="10.0.0.5"):
        request = MagicMock()
        request.headers = headers or {}
        request.client.host = host
        return request

    def test_header_wins_over_body_id(self):
        request = self._request({DEVICE_ID_HEADER: "header-dev"})
        assert device_key(request, "body-dev") == "header-dev"

    def test_body_id_used_when_no_header(self):
        assert device_key(self._request(), "body-dev") == "body-dev"

    def test_blank_ids_fall_back_to_client_address(self):
        request = self._request({DEVICE_ID_HEADER: "   "})
        assert device_key(request, "\t ") == "ip:10.0.0.5"

    def test_blank_header_defers_to_body_id(self):
        request = self._request({DEVICE_ID_HEADER: "  "})
        assert device_key(request, " body-dev ") == "body-dev"

    def test_falls_back_to_client_address(self):
        assert device_key(self._request()) == "ip:10.0.0.5"
