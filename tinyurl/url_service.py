"""TinyURL Service Layer - Core Business Logic

This module orchestrates the three stores behind the two hot paths
(shortening and redirecting) and the administrative listing.

Architecture Overview
=====================
::
    ┌──────────────────────────────────────────────────────────────┐
    │                      URLShorteningService                    │
    │   shorten()              resolve()             list_all()    │
    └──────┬──────────────────────┬─────────────────────┬──────────┘
           │                      │                     │
           ▼                      ▼                     ▼
    ┌─────────────┐        ┌─────────────┐       ┌─────────────┐
    │  CodePool   │        │  URLCache   │       │ RecordStore │
    │ (PostgreSQL)│        │   (Redis)   │       │  (CouchDB)  │
    └─────────────┘        └─────────────┘       └─────────────┘

Request Flow Diagrams
=====================

Shorten Flow
------------
::
    ┌─────────────┐
    │ POST /api/  │
    │ shorten     │
    └──────┬──────┘
           ▼
    ┌─────────────┐   empty
    │ Non-empty   │──────────▶ ValidationError (400)
    │ url?        │
    └──────┬──────┘
           ▼
    ┌─────────────┐   none left
    │ Allocate    │──────────▶ PoolExhaustedError (500)
    │ pool code   │
    └──────┬──────┘
           ▼
    ┌─────────────┐   failure
    │ Write-      │──────────▶ logged, ignored
    │ through     │
    │ cache       │
    └──────┬──────┘
           ▼
    ┌─────────────┐   failure
    │ Insert      │──────────▶ StoreUnavailableError (500),
    │ record      │            code stays used (logged)
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Return      │
    │ record      │
    └─────────────┘

Resolve Flow (cache-aside)
--------------------------
::
    ┌─────────────┐
    │ GET /:code  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check Redis │
    └──────┬──────┘
    HIT?   │
    ┌──────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌──────────┐  ┌─────────┐
│ Query    │  │ Return  │
│ CouchDB  │  │ cached  │
└────┬─────┘  └─────────┘
     │ none → NotFoundError (404)
     ▼
┌──────────┐
│ Refill   │
│ cache    │
└────┬─────┘
     ▼
   Return

Key Behaviours
===============
- Exactly one allocation attempt per shorten call; failures are never
  retried.
- The cache is best-effort on both paths: read failures fall through to
  CouchDB and write failures are logged and counted.
- CouchDB and PostgreSQL failures propagate to the caller.
- A record-write failure after allocation leaves the code marked used with no
  record. It is logged at error level with the code so operators can find it.

Usage Examples
==============
```python
@router.post("/api/shorten")
async def shorten_url(
    payload: URLCreate,
    service: URLShorteningService = Depends(get_url_service),
):
    record = await service.shorten(payload.url, source_ip="203.0.113.7")
    return record.short_code
```
"""

import logging
import time

from prometheus_client import Counter, Histogram

from tinyurl.cache import URLCache
from tinyurl.code_pool import CodePool
from tinyurl.enums import CacheStatus, RequestStatus
from tinyurl.exceptions import (
    NotFoundError,
    PoolExhaustedError,
    ShortenerError,
    StoreUnavailableError,
    ValidationError,
)
from tinyurl.records import RecordStore
from tinyurl.schemas import URLRecord

__all__ = ["URLShorteningService"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

URL_CREATION_REQUESTS_TOTAL = Counter(
    "tinyurl_creation_requests_total",
    "Total URL creation requests",
    ["status"],
)
URL_LOOKUP_REQUESTS_TOTAL = Counter(
    "tinyurl_lookup_requests_total",
    "Total URL lookup requests",
    ["status", "cache_hit"],
)
URL_CREATION_DURATION = Histogram(
    "tinyurl_creation_duration_seconds",
    "Time taken to create short URLs",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)
URL_LOOKUP_DURATION = Histogram(
    "tinyurl_lookup_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)
CACHE_HITS_TOTAL = Counter(
    "tinyurl_cache_hits_total",
    "Total cache hits for redirect lookups",
)
CACHE_MISSES_TOTAL = Counter(
    "tinyurl_cache_misses_total",
    "Total cache misses for redirect lookups",
)
CACHE_ERRORS_TOTAL = Counter(
    "tinyurl_cache_errors_total",
    "Cache operations that failed and were skipped",
    ["operation"],
)
STRANDED_CODES_TOTAL = Counter(
    "tinyurl_stranded_codes_total",
    "Codes allocated from the pool whose record write failed",
)


def _request_status(exc: ShortenerError) -> RequestStatus:
    if isinstance(exc, ValidationError):
        return RequestStatus.VALIDATION_ERROR
    if isinstance(exc, NotFoundError):
        return RequestStatus.NOT_FOUND
    if isinstance(exc, PoolExhaustedError):
        return RequestStatus.POOL_EXHAUSTED
    return RequestStatus.ERROR


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================


class URLShorteningService:
    """Shortening, redirect and listing operations over the three stores.

    The service holds no per-request state of its own; the stores it is given
    share process-wide connection pools.

    Example:
        >>> service = URLShorteningService(code_pool, cache, records)
        >>> record = await service.shorten("https://example.com")
        >>> await service.resolve(record.short_code)
        'https://example.com'
    """

    def __init__(
        self,
        code_pool: CodePool,
        cache: URLCache,
        records: RecordStore,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._code_pool = code_pool
        self._cache = cache
        self._records = records
        self._logger = logger or logging.getLogger("tinyurl")

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "URLShorteningService":  # noqa: F821
        """Build a service from the request context's shared stores."""
        manager = ctx.service_manager
        return cls(
            code_pool=manager.code_pool,
            cache=manager.cache,
            records=manager.records,
            logger=ctx.logger,
        )

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def shorten(self, destination_url: object, source_ip: str | None = None) -> URLRecord:
        """Allocate a code for ``destination_url`` and persist the mapping.

        Args:
            destination_url: Target URL. Must be a non-empty string; its
                format is not checked.
            source_ip: Caller address stored with the record.

        Returns:
            URLRecord: The record written to CouchDB.

        Raises:
            ValidationError: If the URL is missing, empty or not a string.
            PoolExhaustedError: If no unused code is left.
            StoreUnavailableError: If PostgreSQL or CouchDB failed.
        """
        start_time = time.perf_counter()
        try:
            if not isinstance(destination_url, str) or not destination_url:
                raise ValidationError("URL is required")

            short_code = await self._code_pool.allocate()
            self._logger.debug(f"Allocated short code {short_code}")

            await self._write_cache(short_code, destination_url)

            record = URLRecord(
                short_code=short_code,
                destination_url=destination_url,
                source_ip=source_ip,
            )
            try:
                await self._records.insert(record)
            except StoreUnavailableError:
                STRANDED_CODES_TOTAL.inc()
                self._logger.error(
                    f"Record write failed after allocating {short_code}; code is used but unresolvable"
                )
                raise

        except ShortenerError as exc:
            URL_CREATION_REQUESTS_TOTAL.labels(status=_request_status(exc)).inc()
            self._logger.warning(f"URL creation failed: {exc}")
            raise
        finally:
            URL_CREATION_DURATION.observe(time.perf_counter() - start_time)

        URL_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Created short code {short_code} for {destination_url}")
        return record

    async def resolve(self, short_code: str) -> str:
        """Return the destination URL for ``short_code``.

        Raises:
            NotFoundError: If no record exists for the code.
            StoreUnavailableError: If CouchDB failed on a cache miss.
        """
        start_time = time.perf_counter()
        cache_status = CacheStatus.MISS
        try:
            cached = await self._read_cache(short_code)
            if cached is not None:
                cache_status = CacheStatus.HIT
                CACHE_HITS_TOTAL.inc()
                self._logger.debug(f"Cache hit for {short_code}")
                destination_url = cached
            else:
                CACHE_MISSES_TOTAL.inc()
                record = await self._records.find_by_code(short_code)
                if record is None:
                    raise NotFoundError(short_code)
                destination_url = record.destination_url
                await self._write_cache(short_code, destination_url)
                self._logger.debug(f"Record hit and cached for {short_code}")

        except ShortenerError as exc:
            URL_LOOKUP_REQUESTS_TOTAL.labels(status=_request_status(exc), cache_hit=cache_status).inc()
            raise
        finally:
            URL_LOOKUP_DURATION.observe(time.perf_counter() - start_time)

        URL_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache_hit=cache_status).inc()
        return destination_url

    async def list_all(self) -> list[URLRecord]:
        """Return every stored record. Full scan, no pagination."""
        records = await self._records.list_all()
        self._logger.info(f"Listed {len(records)} records")
        return records

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _read_cache(self, short_code: str) -> str | None:
        try:
            return await self._cache.get(short_code)
        except StoreUnavailableError as exc:
            CACHE_ERRORS_TOTAL.labels(operation="get").inc()
            self._logger.warning(f"Cache read failed for {short_code}, falling back to records: {exc}")
            return None

    async def _write_cache(self, short_code: str, destination_url: str) -> None:
        try:
            await self._cache.set(short_code, destination_url)
        except StoreUnavailableError as exc:
            CACHE_ERRORS_TOTAL.labels(operation="set").inc()
            self._logger.warning(f"Cache write failed for {short_code}: {exc}")
