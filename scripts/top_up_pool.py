"""Manual short-code pool top-up.

The service seeds the pool only when a process starts. Run this to add codes
to a live pool without restarting anything; it uses the same insert-or-ignore
seeding as start-up, against the database in DATABASE_URL.

Usage
-----
python scripts/top_up_pool.py                    # same rule as start-up
python scripts/top_up_pool.py --threshold 50000 --size 10000
"""

import argparse
import asyncio
import sys

from tinyurl.code_pool import SQLCodePool, seed_pool
from tinyurl.config import get_settings
from tinyurl.database import async_session, close_db, init_db
from tinyurl.exceptions import StoreUnavailableError


async def top_up(threshold: int, size: int) -> int:
    settings = get_settings()
    pool = SQLCodePool(async_session)
    try:
        await init_db()
        inserted = await seed_pool(
            pool,
            threshold=threshold,
            size=size,
            length=settings.SHORT_CODE_LENGTH,
            alphabet=settings.SHORT_CODE_ALPHABET,
        )
        total = await pool.count()
        unused = await pool.count_unused()
    finally:
        await close_db()

    print(f"Inserted {inserted} codes. Pool now holds {total} codes, {unused} unused.")
    return inserted


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Top up the short code pool")
    parser.add_argument(
        "--threshold",
        type=int,
        default=settings.POOL_SEED_THRESHOLD,
        help="Seed only when the pool holds fewer codes than this",
    )
    parser.add_argument("--size", type=int, default=settings.POOL_SEED_SIZE, help="Number of codes to generate")
    args = parser.parse_args()

    try:
        asyncio.run(top_up(args.threshold, args.size))
    except StoreUnavailableError as exc:
        print(f"[FAILED] {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
