"""Short-code pool: atomic allocation and start-up seeding.

Short codes are generated ahead of demand and stored in PostgreSQL, each
flagged used/unused. Allocation hands out one unused code per call and must
never hand the same code to two callers, including callers in different
service instances behind the load balancer.

Flow Diagram: allocate()
=========================
::
    ┌──────────────────────────────┐
    │ BEGIN                        │
    └──────────────┬───────────────┘
                   ▼
    ┌──────────────────────────────┐
    │ UPDATE short_codes           │
    │   SET used = true            │
    │ WHERE short_code = (         │
    │   SELECT short_code          │
    │     FROM short_codes         │
    │    WHERE used = false        │
    │    LIMIT 1                   │
    │    FOR UPDATE SKIP LOCKED)   │
    │ RETURNING short_code         │
    └──────────────┬───────────────┘
           ROW?    │
           ┌───────┴───────┐
           │ YES           │ NO
           ▼               ▼
    ┌─────────────┐  ┌──────────────────┐
    │ COMMIT,     │  │ PoolExhausted    │
    │ return code │  │ Error            │
    └─────────────┘  └──────────────────┘

Flow Diagram: seed_pool()
==========================
::
    count(short_codes) < threshold ?
        │ NO  → log "plenty available", do nothing
        │ YES → generate `size` codes with nanoid
        ▼
    INSERT ... ON CONFLICT (short_code) DO NOTHING
        in batches of INSERT_BATCH_SIZE rows, one transaction

Key Behaviours
===============
- Selection and marking happen in one statement; ``SKIP LOCKED`` lets
  concurrent allocators pass over a row another transaction is claiming
  instead of blocking on it or claiming it twice.
- Exactly one allocation attempt is made per call. There is no retry.
- Seeding only inserts; it never touches existing rows, so running it twice
  cannot duplicate codes or reduce the unused count.
- The pool is seeded at process start only. Operators top it up with
  ``scripts/top_up_pool.py``.

Classes:
    CodePool:  Interface the services depend on.
    SQLCodePool:  PostgreSQL implementation.

Functions:
    generate_short_code():  Random URL-safe code via nanoid.
    allocation_statement():  The single select-and-mark statement.
    insert_statement():  Insert-or-ignore for one batch of codes.
    seed_pool():  Idempotent start-up top-up.
"""

import logging
from collections.abc import Iterable
from typing import Protocol

from nanoid import generate
from sqlalchemy import func, select, text, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from tinyurl.config import get_settings
from tinyurl.enums import StoreName
from tinyurl.exceptions import PoolExhaustedError, StoreUnavailableError
from tinyurl.models import ShortCode

__all__ = [
    "CodePool",
    "SQLCodePool",
    "INSERT_BATCH_SIZE",
    "allocation_statement",
    "generate_short_code",
    "insert_statement",
    "seed_pool",
]

settings = get_settings()
logger = logging.getLogger("tinyurl.code_pool")

# asyncpg caps a statement at 32767 bind parameters.
INSERT_BATCH_SIZE = 5000


class CodePool(Protocol):
    async def allocate(self) -> str: ...

    async def count(self) -> int: ...

    async def count_unused(self) -> int: ...

    async def insert_codes(self, codes: Iterable[str]) -> int: ...

    async def ping(self) -> None: ...


def generate_short_code(
    length: int = settings.SHORT_CODE_LENGTH,
    alphabet: str = settings.SHORT_CODE_ALPHABET,
) -> str:
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    assert alphabet, "alphabet must not be empty"
    return generate(alphabet, length)


def allocation_statement():
    # Aliased so the subquery is not correlated against the UPDATE target.
    candidate = aliased(ShortCode)
    next_unused = (
        select(candidate.short_code)
        .where(candidate.used.is_(False))
        .limit(1)
        .with_for_update(skip_locked=True)
        .scalar_subquery()
    )
    return (
        update(ShortCode)
        .where(ShortCode.short_code == next_unused)
        .values(used=True)
        .returning(ShortCode.short_code)
        .execution_options(synchronize_session=False)
    )


def insert_statement(codes: list[str]):
    # `used` is left to the server default so each row costs one bind parameter.
    return (
        insert(ShortCode)
        .values([{"short_code": code} for code in codes])
        .on_conflict_do_nothing(index_elements=[ShortCode.short_code])
        .returning(ShortCode.short_code)
    )


class SQLCodePool:
    """Code pool backed by the ``short_codes`` table.

    Every method runs in its own short transaction from ``session_factory``
    so no session is shared between concurrent requests.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def allocate(self) -> str:
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(allocation_statement())
                short_code = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(StoreName.POSTGRES, str(exc)) from exc

        if short_code is None:
            raise PoolExhaustedError()
        return short_code

    async def count(self) -> int:
        return await self._scalar(select(func.count()).select_from(ShortCode))

    async def count_unused(self) -> int:
        return await self._scalar(
            select(func.count()).select_from(ShortCode).where(ShortCode.used.is_(False))
        )

    async def insert_codes(self, codes: Iterable[str]) -> int:
        codes = list(codes)
        if not codes:
            return 0

        inserted = 0
        try:
            async with self._session_factory() as session, session.begin():
                for start in range(0, len(codes), INSERT_BATCH_SIZE):
                    batch = codes[start : start + INSERT_BATCH_SIZE]
                    result = await session.execute(insert_statement(batch))
                    inserted += len(result.scalars().all())
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(StoreName.POSTGRES, str(exc)) from exc
        return inserted

    async def ping(self) -> None:
        await self._scalar(text("SELECT 1"))

    async def _scalar(self, stmt) -> int:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return result.scalar_one()
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(StoreName.POSTGRES, str(exc)) from exc


async def seed_pool(
    pool: CodePool,
    threshold: int = settings.POOL_SEED_THRESHOLD,
    size: int = settings.POOL_SEED_SIZE,
    length: int = settings.SHORT_CODE_LENGTH,
    alphabet: str = settings.SHORT_CODE_ALPHABET,
) -> int:
    """Top up the pool when it holds fewer than ``threshold`` codes.

    Generates ``size`` fresh codes and inserts them, silently skipping any
    that collide with existing rows.

    Returns:
        int: Number of codes actually inserted.
    """
    assert threshold >= 0, f"threshold must be non-negative, got {threshold!r}"
    assert size >= 0, f"size must be non-negative, got {size!r}"

    existing = await pool.count()
    if existing >= threshold:
        logger.info(f"Plenty of short codes available ({existing}), skipping seed")
        return 0

    logger.info(f"Seeding short codes: {existing} in pool, threshold {threshold}, generating {size}")
    codes = {generate_short_code(length, alphabet) for _ in range(size)}
    inserted = await pool.insert_codes(codes)
    logger.info(f"Seeded {inserted} short codes ({len(codes) - inserted} skipped as duplicates)")
    return inserted
