"""Database engine and session factory for the short-code pool.

PostgreSQL holds only the pool of pre-generated short codes. The engine is
process-wide; each pool operation opens its own short transaction through
``async_session`` rather than borrowing a per-request session.

Flow Diagram: Database Lifecycle
=================================
::
    ┌─────────────┐
    │  lifespan   │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ init_db()   │
    │ create      │
    │ short_codes │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ SQLCodePool │
    │ sessions    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ close_db()  │
    │ dispose     │
    └─────────────┘

Key Behaviours
===============
- asyncpg ``timeout`` bounds connection setup, ``command_timeout`` bounds
  every statement, and ``pool_timeout`` bounds waiting for a free connection.
- Tables are created automatically on application startup.
- Engine is disposed on application shutdown.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from tinyurl.config import get_settings

__all__ = ["Base", "async_session", "engine", "init_db", "close_db"]

settings = get_settings()

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=(settings.APP_ENV == "development"),
    pool_size=20,
    max_overflow=10,
    pool_pre_ping=True,
    pool_timeout=settings.STORE_TIMEOUT_SECONDS,
    connect_args={
        "timeout": settings.STORE_TIMEOUT_SECONDS,
        "command_timeout": settings.STORE_TIMEOUT_SECONDS,
    },
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def init_db() -> None:
    # Registers the mapped tables on Base.metadata.
    from tinyurl import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
