"""Dependency injection with a singleton service manager.

Connection pools to the three stores are process-wide and created once at
startup; requests only receive a lightweight context pointing at them.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import httpx
from fastapi import Depends, Request

from tinyurl.cache import RedisURLCache
from tinyurl.code_pool import SQLCodePool
from tinyurl.config import get_settings
from tinyurl.database import async_session
from tinyurl.health import HealthReporter
from tinyurl.records import CouchDBRecordStore, create_couchdb_client
from tinyurl.redis import get_redis
from tinyurl.url_service import URLShorteningService


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton owner of the shared store clients.

    Attributes set by ``initialize``:
        settings: Application settings.
        logger: The shared ``tinyurl`` logger.
        code_pool: PostgreSQL short-code pool.
        cache: Redis redirect cache.
        records: CouchDB record store.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False
    _init_lock = asyncio.Lock()

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(self) -> None:
        """Initialize shared resources once, even under concurrent callers."""
        async with self._init_lock:
            if self._initialized:
                return
            self.settings = get_settings()
            self.logger = self._setup_logger()
            self._couchdb_client = create_couchdb_client(self.settings)
            self.code_pool = SQLCodePool(async_session)
            self.cache = RedisURLCache(await get_redis(), self.settings.CACHE_TTL_SECONDS)
            self.records = CouchDBRecordStore(self._couchdb_client, self.settings.COUCHDB_DATABASE)
            self._initialized = True

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("tinyurl")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        client: httpx.AsyncClient | None = getattr(self, "_couchdb_client", None)
        if client is not None:
            await client.aclose()
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request identifiers and timing on top of the shared resources.

    Attributes:
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address, first X-Forwarded-For hop when present
        start_time: Request start timestamp
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    @property
    def settings(self):
        """Get shared settings."""
        return self.service_manager.settings

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


def _client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        service_manager=manager,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        user_agent=request.headers.get("user-agent"),
        client_ip=_client_ip(request),
    )


def get_url_service(ctx: RequestContext = Depends(get_request_context)) -> URLShorteningService:
    return URLShorteningService.from_context(ctx)


def get_health_reporter(ctx: RequestContext = Depends(get_request_context)) -> HealthReporter:
    manager = ctx.service_manager
    return HealthReporter(
        manager.code_pool,
        manager.cache,
        manager.records,
        timeout=ctx.settings.HEALTH_PROBE_TIMEOUT_SECONDS,
        logger=ctx.logger,
    )
