"""Pydantic schemas for the HTTP API and the stored URL record.

Schema Hierarchy
=================
::
    URLCreate (Input)
    └─ url: any JSON value

    ShortenResponse (Output, camelCase)
    ├─ shortUrl: str
    ├─ shortCode: str
    └─ longUrl: str

    URLListItem (Output, camelCase)
    ├─ shortCode: str
    └─ longUrl: str

    HealthResponse (Output)
    ├─ status: healthy | unhealthy
    ├─ timestamp: datetime
    └─ services: {postgres, redis, couchdb}: bool

    URLRecord (CouchDB document)
    ├─ shortCode: str
    ├─ long_url: str
    ├─ created_at: datetime (UTC)
    └─ ip: str | None

Key Behaviours
===============
- ``url`` is optional and untyped at the schema level so that a missing
  or non-string value is reported as a 400 by the service instead of a 422
  by FastAPI.
- No URL format validation happens beyond non-emptiness.
- API output uses camelCase keys; the document keeps the field names the
  CouchDB indexes are built on.
"""

import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tinyurl.enums import HealthStatus

__all__ = [
    "URLCreate",
    "ShortenResponse",
    "URLListItem",
    "HealthResponse",
    "ServicesHealth",
    "URLRecord",
]


class URLCreate(BaseModel):
    # Any JSON value is accepted here; the service rejects non-strings.
    url: Any = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ShortenResponse(_CamelModel):
    short_url: str
    short_code: str
    long_url: str


class URLListItem(_CamelModel):
    short_code: str
    long_url: str


class ServicesHealth(BaseModel):
    postgres: bool = False
    redis: bool = False
    couchdb: bool = False


class HealthResponse(BaseModel):
    status: HealthStatus
    timestamp: datetime.datetime
    services: ServicesHealth


class URLRecord(BaseModel):
    """Permanent mapping of a short code to its destination."""

    short_code: str = Field(alias="shortCode")
    destination_url: str = Field(alias="long_url")
    created_at: datetime.datetime = Field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )
    source_ip: str | None = Field(default=None, alias="ip")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
