"""In-memory fakes for the three stores, with availability switches."""

import asyncio
from collections.abc import Iterable

from tinyurl.enums import StoreName
from tinyurl.exceptions import PoolExhaustedError, StoreUnavailableError
from tinyurl.schemas import URLRecord


class FakeStore:
    """Availability switches shared by the fakes."""

    store_name: StoreName

    def __init__(self) -> None:
        self.available = True
        self.hang = False

    async def _check(self) -> None:
        if self.hang:
            await asyncio.sleep(3600)
        if not self.available:
            raise StoreUnavailableError(self.store_name, "connection refused")

    async def ping(self) -> None:
        await self._check()


class FakeCodePool(FakeStore):
    store_name = StoreName.POSTGRES

    def __init__(self, codes: Iterable[str] = ()) -> None:
        super().__init__()
        self.rows: dict[str, bool] = {code: False for code in codes}
        self.allocate_calls = 0
        self._lock = asyncio.Lock()

    async def allocate(self) -> str:
        self.allocate_calls += 1
        await self._check()
        async with self._lock:
            # Yield inside the critical section so concurrent callers interleave.
            await asyncio.sleep(0)
            for code, used in self.rows.items():
                if not used:
                    self.rows[code] = True
                    return code
        raise PoolExhaustedError()

    async def count(self) -> int:
        await self._check()
        return len(self.rows)

    async def count_unused(self) -> int:
        await self._check()
        return sum(1 for used in self.rows.values() if not used)

    async def insert_codes(self, codes: Iterable[str]) -> int:
        await self._check()
        inserted = 0
        for code in codes:
            if code not in self.rows:
                self.rows[code] = False
                inserted += 1
        return inserted


class FakeCache(FakeStore):
    store_name = StoreName.REDIS

    def __init__(self) -> None:
        super().__init__()
        self.entries: dict[str, str] = {}
        self.set_calls: list[tuple[str, str]] = []

    async def get(self, short_code: str) -> str | None:
        await self._check()
        return self.entries.get(short_code)

    async def set(self, short_code: str, destination_url: str) -> None:
        self.set_calls.append((short_code, destination_url))
        await self._check()
        self.entries[short_code] = destination_url


class FakeRecordStore(FakeStore):
    store_name = StoreName.COUCHDB

    def __init__(self) -> None:
        super().__init__()
        self.records: dict[str, URLRecord] = {}
        self.insert_calls = 0
        self.find_calls = 0

    async def insert(self, record: URLRecord) -> None:
        self.insert_calls += 1
        await self._check()
        self.records[record.short_code] = record

    async def find_by_code(self, short_code: str) -> URLRecord | None:
        self.find_calls += 1
        await self._check()
        return self.records.get(short_code)

    async def list_all(self) -> list[URLRecord]:
        await self._check()
        return list(self.records.values())

