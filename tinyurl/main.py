"""FastAPI application entry point for the TinyURL service.

Application Lifecycle Diagram
=============================
::
    ┌──────────────┐
    │  uvicorn     │
    │  startup     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ init_db()    │  create short_codes
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ service      │  redis, couchdb clients
    │ manager init │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ ensure       │  database + indexes
    │ couchdb      │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ seed_pool()  │  only below threshold
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Serve HTTP   │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ shutdown:    │
    │ close clients│
    └──────────────┘

How to Use
===========
**Run with uvicorn**::
    uvicorn tinyurl.main:app --host 0.0.0.0 --port 3000

**Make API calls**::
    curl -X POST http://localhost:3000/api/shorten \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com"}'

Key Behaviours
===============
- Startup fails if any store is unreachable, so a broken instance never
  joins the load balancer.
- The pool is seeded once per process start, never continuously.
- Prometheus metrics are exposed at /metrics.
"""

__all__ = ["app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from tinyurl.code_pool import seed_pool
from tinyurl.config import get_settings
from tinyurl.database import close_db, init_db
from tinyurl.dependencies import _service_manager
from tinyurl.middleware import SecurityHeadersMiddleware
from tinyurl.redis import close_redis
from tinyurl.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await init_db()
    await _service_manager.initialize()
    await _service_manager.records.ensure_database()
    await seed_pool(
        _service_manager.code_pool,
        threshold=settings.POOL_SEED_THRESHOLD,
        size=settings.POOL_SEED_SIZE,
        length=settings.SHORT_CODE_LENGTH,
        alphabet=settings.SHORT_CODE_ALPHABET,
    )
    _service_manager.logger.info(f"{settings.APP_NAME} started")
    yield
    # Shutdown
    await _service_manager.cleanup()
    await close_db()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="URL shortener backed by a pre-seeded short code pool",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
