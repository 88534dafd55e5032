"""Liveness probes for the three backing stores.

Each store is pinged concurrently under its own timeout. A failing or hung
store only flips its own flag; ``check_health`` itself never raises.

    postgres  ── SELECT 1
    redis     ── PING
    couchdb   ── GET /_all_dbs
"""

import asyncio
import datetime
import logging

from tinyurl.cache import URLCache
from tinyurl.code_pool import CodePool
from tinyurl.enums import HealthStatus, StoreName
from tinyurl.records import RecordStore
from tinyurl.schemas import HealthResponse, ServicesHealth

__all__ = ["HealthReporter"]


class HealthReporter:
    def __init__(
        self,
        code_pool: CodePool,
        cache: URLCache,
        records: RecordStore,
        timeout: float = 2.0,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        assert timeout > 0, f"timeout must be positive, got {timeout!r}"
        self._probes = {
            StoreName.POSTGRES: code_pool.ping,
            StoreName.REDIS: cache.ping,
            StoreName.COUCHDB: records.ping,
        }
        self._timeout = timeout
        self._logger = logger or logging.getLogger("tinyurl")

    async def check_health(self) -> HealthResponse:
        names = list(self._probes)
        results = await asyncio.gather(*(self._probe(name) for name in names))
        services = ServicesHealth(**{name.value: ok for name, ok in zip(names, results)})

        status = HealthStatus.from_checks(*results)
        self._logger.info(f"Health check completed: {status.value}")
        return HealthResponse(
            status=status,
            timestamp=datetime.datetime.now(datetime.timezone.utc),
            services=services,
        )

    async def _probe(self, name: StoreName) -> bool:
        try:
            await asyncio.wait_for(self._probes[name](), timeout=self._timeout)
        except Exception as exc:
            self._logger.error(f"{name} health check failed: {exc!r}")
            return False
        self._logger.debug(f"{name} health check passed")
        return True
