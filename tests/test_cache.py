"""Tests for the Redis redirect cache adapter."""

from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from tinyurl.cache import RedisURLCache, cache_key
from tinyurl.exceptions import StoreUnavailableError


@pytest.fixture
def mock_redis() -> AsyncMock:
    redis_client = AsyncMock(spec=redis.Redis)
    redis_client.get = AsyncMock(return_value=None)
    redis_client.setex = AsyncMock(return_value=True)
    redis_client.ping = AsyncMock(return_value=True)
    return redis_client


def test_cache_key_layout() -> None:
    assert cache_key("aB3dE7gH") == "url:aB3dE7gH"


@pytest.mark.asyncio
async def test_get_reads_prefixed_key(mock_redis) -> None:
    mock_redis.get.return_value = "https://example.com"
    cache = RedisURLCache(mock_redis)

    assert await cache.get("aB3dE7gH") == "https://example.com"
    mock_redis.get.assert_awaited_once_with("url:aB3dE7gH")


@pytest.mark.asyncio
async def test_get_miss_returns_none(mock_redis) -> None:
    assert await RedisURLCache(mock_redis).get("missing1") is None


@pytest.mark.asyncio
async def test_set_uses_configured_ttl(mock_redis) -> None:
    cache = RedisURLCache(mock_redis, ttl_seconds=120)

    await cache.set("aB3dE7gH", "https://example.com")

    mock_redis.setex.assert_awaited_once_with("url:aB3dE7gH", 120, "https://example.com")


@pytest.mark.asyncio
async def test_default_ttl_is_one_hour(mock_redis) -> None:
    await RedisURLCache(mock_redis).set("aB3dE7gH", "https://example.com")

    mock_redis.setex.assert_awaited_once_with("url:aB3dE7gH", 3600, "https://example.com")


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [RedisConnectionError("refused"), RedisTimeoutError("timed out")])
async def test_redis_errors_become_store_unavailable(mock_redis, error) -> None:
    mock_redis.get.side_effect = error
    mock_redis.setex.side_effect = error
    mock_redis.ping.side_effect = error
    cache = RedisURLCache(mock_redis)

    with pytest.raises(StoreUnavailableError) as exc_info:
        await cache.get("aB3dE7gH")
    assert exc_info.value.store == "redis"

    with pytest.raises(StoreUnavailableError):
        await cache.set("aB3dE7gH", "https://example.com")

    with pytest.raises(StoreUnavailableError):
        await cache.ping()
