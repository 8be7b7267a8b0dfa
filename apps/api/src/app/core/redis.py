"""
Redis Client

Shared async Redis connection used for request throttling. Redis is optional:
callers must cope with ``get_redis()`` returning None.
"""

import logging

from redis.asyncio import Redis, from_url

from app.core.config import settings

logger = logging.getLogger(__name__)

REDIS_SOCKET_TIMEOUT_SECONDS = 2.0

redis_client: Redis | None = None


async def init_redis() -> Redis:
    """Connect on application startup and verify with PING."""
    global redis_client
    client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=REDIS_SOCKET_TIMEOUT_SECONDS,
        socket_connect_timeout=REDIS_SOCKET_TIMEOUT_SECONDS,
    )
    await client.ping()
    redis_client = client
    return redis_client


async def get_redis() -> Redis | None:
    """Return the shared client, or None when Redis was never connected."""
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
