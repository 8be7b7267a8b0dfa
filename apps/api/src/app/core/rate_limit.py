"""
Rate Limiting Module

Sliding-window request throttling backed by Redis sorted sets, falling back
to a per-process in-memory window when Redis is unavailable.

Used for:
- Signup (one signup per device per day)
- Forgot-password requests (prevents email bombing)
- Staff decision endpoints (prevents mass operations)
"""

import logging
import time
import uuid

from fastapi import HTTPException, Request, status

from app.core.redis import get_redis

logger = logging.getLogger(__name__)

DEVICE_ID_HEADER = "X-Device-Id"

# In-memory fallback: {key: [timestamp, ...]}
_memory_store: dict[str, list[float]] = {}


class RateLimitExceeded(HTTPException):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, limit: int, window_seconds: int, message: str | None = None):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": message
                or f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after_seconds": window_seconds,
            },
            headers={"Retry-After": str(window_seconds)},
        )


async def _record_hit_redis(client, key: str, window_seconds: int) -> None:
    now = time.time()
    pipe = client.pipeline()
    pipe.zadd(key, {f"{now}:{uuid.uuid4().hex[:8]}": now})
    pipe.expire(key, window_seconds)
    await pipe.execute()


async def _check_rate_limit_redis(
    client,
    key: str,
    limit: int,
    window_seconds: int,
    record: bool,
) -> bool:
    """
    Sliding window over a sorted set scored by request time.

    The current request is recorded only when it is admitted, so rejected
    retries do not extend the window.
    """
    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, time.time() - window_seconds)
    pipe.zcard(key)
    results = await pipe.execute()

    if results[1] >= limit:
        return False

    if record:
        await _record_hit_redis(client, key, window_seconds)
    return True


def _check_rate_limit_memory(key: str, limit: int, window_seconds: int, record: bool) -> bool:
    """Fallback window. Not shared across server instances."""
    now = time.time()
    window_start = now - window_seconds

    entries = [ts for ts in _memory_store.get(key, []) if ts > window_start]
    admitted = len(entries) < limit
    if admitted and record:
        entries.append(now)
    _memory_store[key] = entries
    return admitted


async def check_rate_limit(
    key: str,
    limit: int,
    window_seconds: int,
    record: bool = True,
) -> bool:
    """
    Check a request against a rate limit.

    Args:
        key: Unique key for this rate limit (e.g., "signup:device:dev-abc")
        limit: Maximum requests allowed in the window
        window_seconds: Time window in seconds
        record: Count this request when admitted. Pass False to only peek and
            call ``record_rate_limit_hit`` once the guarded action succeeds.

    Returns:
        True if request is allowed, False if rate limit exceeded
    """
    client = await get_redis()

    if client is not None:
        try:
            return await _check_rate_limit_redis(client, key, limit, window_seconds, record)
        except Exception as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")

    return _check_rate_limit_memory(key, limit, window_seconds, record)


async def record_rate_limit_hit(key: str, window_seconds: int) -> None:
    """Count one hit against ``key`` without checking the limit."""
    client = await get_redis()

    if client is not None:
        try:
            await _record_hit_redis(client, key, window_seconds)
            return
        except Exception as e:
            logger.warning(f"Redis rate limit record failed, using memory: {e}")

    _memory_store.setdefault(key, []).append(time.time())


async def enforce_rate_limit(
    key: str,
    limit: int,
    window_seconds: int,
    message: str | None = None,
    record: bool = True,
) -> None:
    """
    Raise ``RateLimitExceeded`` when ``key`` is over its limit.

    Raises:
        RateLimitExceeded: HTTP 429
    """
    if not await check_rate_limit(key, limit, window_seconds, record=record):
        logger.warning(f"Rate limit exceeded for {key}: {limit}/{window_seconds}s")
        raise RateLimitExceeded(limit, window_seconds, message)


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def device_key(request: Request, device_id: str | None = None) -> str:
    """
    Identify the calling device.

    Uses the ``X-Device-Id`` header, then the body's device id, then the
    client address. Blank ids are ignored. The value is client-controlled
    and only suitable for throttling.
    """
    for candidate in (request.headers.get(DEVICE_ID_HEADER), device_id):
        device = (candidate or "").strip()
        if device:
            return device[:128]
    return f"ip:{client_ip(request)}"


def reset_memory_store() -> None:
    """Clear the in-memory fallback (tests)."""
    _memory_store.clear()


__all__ = [
    "DEVICE_ID_HEADER",
    "RateLimitExceeded",
    "check_rate_limit",
    "enforce_rate_limit",
    "record_rate_limit_hit",
    "client_ip",
    "device_key",
    "reset_memory_store",
]
