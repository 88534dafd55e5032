"""URL record store backed by CouchDB's HTTP API.

CouchDB is the source of truth for short code → destination mappings. The
store talks to it with a shared ``httpx.AsyncClient`` whose base URL,
credentials and timeout are fixed at start-up.

CouchDB Endpoints Used
======================
::
    PUT  /{db}                          create database (412 = exists)
    POST /{db}/_index                   create Mango index
    POST /{db}                          insert document
    POST /{db}/_find                    selector query by shortCode
    GET  /{db}/_all_docs?include_docs   full scan for listing
    GET  /_all_dbs                      liveness probe

Key Behaviours
===============
- Transport errors, timeouts and unexpected HTTP statuses all surface as
  ``StoreUnavailableError("couchdb")``.
- Design documents created by the index calls are skipped when listing,
  and so are documents that do not parse as a record. A malformed document
  found by code is reported as ``StoreUnavailableError``.
- Records are immutable: there is no update or delete.

Classes:
    RecordStore:  Interface the services depend on.
    CouchDBRecordStore:  httpx implementation.
"""

import logging
from typing import Protocol

import httpx
import pydantic

from tinyurl.config import Settings
from tinyurl.enums import StoreName
from tinyurl.exceptions import StoreUnavailableError
from tinyurl.schemas import URLRecord

__all__ = ["RecordStore", "CouchDBRecordStore", "INDEXES", "create_couchdb_client"]

logger = logging.getLogger("tinyurl.records")

INDEXES: dict[str, list[str]] = {
    "short_code_created_at_index": ["shortCode", "created_at", "long_url"],
    "created_at_index": ["created_at"],
    "long_url_index": ["long_url"],
}

DESIGN_DOC_PREFIX = "_design/"


class RecordStore(Protocol):
    async def insert(self, record: URLRecord) -> None: ...

    async def find_by_code(self, short_code: str) -> URLRecord | None: ...

    async def list_all(self) -> list[URLRecord]: ...

    async def ping(self) -> None: ...


def create_couchdb_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.COUCHDB_URL,
        auth=(settings.COUCHDB_USER, settings.COUCHDB_PASSWORD),
        timeout=settings.STORE_TIMEOUT_SECONDS,
        headers={"Accept": "application/json"},
    )


class CouchDBRecordStore:
    def __init__(self, client: httpx.AsyncClient, database: str):
        assert database, "database name must not be empty"
        self._client = client
        self._database = database

    async def ensure_database(self) -> None:
        """Create the database and its indexes if they do not exist yet."""
        response = await self._request("PUT", f"/{self._database}", accept=(412,))
        if response.status_code == 412:
            logger.info(f"CouchDB database '{self._database}' already exists")
        else:
            logger.info(f"Created CouchDB database '{self._database}'")

        for name, fields in INDEXES.items():
            await self._request(
                "POST",
                f"/{self._database}/_index",
                json={"index": {"fields": fields}, "name": name, "type": "json"},
            )
        logger.info(f"Ensured {len(INDEXES)} indexes on '{self._database}'")

    async def insert(self, record: URLRecord) -> None:
        await self._request("POST", f"/{self._database}", json=record.to_document())

    async def find_by_code(self, short_code: str) -> URLRecord | None:
        response = await self._request(
            "POST",
            f"/{self._database}/_find",
            json={"selector": {"shortCode": short_code}, "limit": 1},
        )
        docs = response.json().get("docs", [])
        if not docs:
            return None
        try:
            return URLRecord.model_validate(docs[0])
        except pydantic.ValidationError as exc:
            raise StoreUnavailableError(
                StoreName.COUCHDB, f"malformed document for {short_code}: {exc.error_count()} errors"
            ) from exc

    async def list_all(self) -> list[URLRecord]:
        response = await self._request(
            "GET",
            f"/{self._database}/_all_docs",
            params={"include_docs": "true"},
        )
        records = []
        for row in response.json().get("rows", []):
            if row["id"].startswith(DESIGN_DOC_PREFIX):
                continue
            try:
                records.append(URLRecord.model_validate(row.get("doc")))
            except pydantic.ValidationError:
                logger.warning(f"Skipping malformed CouchDB document {row['id']}")
        return records

    async def ping(self) -> None:
        await self._request("GET", "/_all_dbs")

    async def _request(self, method: str, path: str, accept: tuple[int, ...] = (), **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise StoreUnavailableError(StoreName.COUCHDB, f"{method} {path}: {exc!r}") from exc

        if response.is_error and response.status_code not in accept:
            raise StoreUnavailableError(
                StoreName.COUCHDB, f"{method} {path} returned {response.status_code}"
            )
        return response
