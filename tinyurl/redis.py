"""Redis client management for the redirect cache.

A single lazily-created client is shared by every request; its connection
pool is process-wide and closed on shutdown.

Functions:
    get_redis():  Return the shared Redis client.
    close_redis():  Cleanup function for shutdown.
"""

import redis.asyncio as redis

from tinyurl.config import get_settings

__all__ = ["close_redis", "get_redis"]

settings = get_settings()

redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    global redis_client
    if redis_client is None:
        redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.STORE_TIMEOUT_SECONDS,
            socket_connect_timeout=settings.STORE_TIMEOUT_SECONDS,
        )
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
