"""Shared pytest fixtures: in-memory store fakes and an API client wired to them."""

import logging
from collections.abc import AsyncGenerator
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tinyurl.config import get_settings
from tinyurl.dependencies import get_service_manager
from tinyurl.main import app
from tinyurl.url_service import URLShorteningService

from fakes import FakeCache, FakeCodePool, FakeRecordStore


POOL_CODES = ["aB3dE7gH", "Zx9_k2Lm", "Qw-4rT6y", "pL0oK9iJ", "mN8bV7cX"]


@pytest.fixture
def code_pool() -> FakeCodePool:
    return FakeCodePool(POOL_CODES)


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def records() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def url_service(code_pool, cache, records) -> URLShorteningService:
    return URLShorteningService(code_pool, cache, records, logger=logging.getLogger("tinyurl.tests"))


@pytest.fixture
def service_manager(code_pool, cache, records) -> SimpleNamespace:
    return SimpleNamespace(
        settings=get_settings(),
        logger=logging.getLogger("tinyurl.tests"),
        code_pool=code_pool,
        cache=cache,
        records=records,
    )


@pytest_asyncio.fixture
async def client(service_manager) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_service_manager() -> SimpleNamespace:
        return service_manager

    app.dependency_overrides[get_service_manager] = override_get_service_manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
