"""Redirect cache: short code → destination URL with a bounded TTL.

The cache is never authoritative. Entries are written through when a code is
created and filled lazily on a redirect miss; they may expire or vanish at
any time.

Key Layout
==========
::
    url:<short_code>  →  "<destination url>"   (EX CACHE_TTL_SECONDS)

Classes:
    URLCache:  Interface the services depend on.
    RedisURLCache:  redis.asyncio implementation.
"""

from typing import Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from tinyurl.enums import StoreName
from tinyurl.exceptions import StoreUnavailableError

__all__ = ["URLCache", "RedisURLCache", "cache_key"]

DEFAULT_CACHE_TTL_SECONDS = 3600  # 1 hour


def cache_key(short_code: str) -> str:
    return f"url:{short_code}"


class URLCache(Protocol):
    async def get(self, short_code: str) -> str | None: ...

    async def set(self, short_code: str, destination_url: str) -> None: ...

    async def ping(self) -> None: ...


class RedisURLCache:
    def __init__(self, client: redis.Redis, ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS):
        assert ttl_seconds > 0, f"ttl_seconds must be positive, got {ttl_seconds!r}"
        self._client = client
        self._ttl_seconds = ttl_seconds

    async def get(self, short_code: str) -> str | None:
        try:
            return await self._client.get(cache_key(short_code))
        except (RedisError, OSError) as exc:
            raise StoreUnavailableError(StoreName.REDIS, str(exc)) from exc

    async def set(self, short_code: str, destination_url: str) -> None:
        try:
            await self._client.setex(cache_key(short_code), self._ttl_seconds, destination_url)
        except (RedisError, OSError) as exc:
            raise StoreUnavailableError(StoreName.REDIS, str(exc)) from exc

    async def ping(self) -> None:
        try:
            await self._client.ping()
        except (RedisError, OSError) as exc:
            raise StoreUnavailableError(StoreName.REDIS, str(exc)) from exc
