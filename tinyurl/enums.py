"""Shared enums for the TinyURL service.

Status values used in health responses and as Prometheus label values.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "CacheStatus", "StoreName"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"

    @classmethod
    def from_checks(cls, *checks: bool) -> "HealthStatus":
        """Return HEALTHY only when every check passed."""
        return cls.HEALTHY if all(checks) else cls.UNHEALTHY


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    POOL_EXHAUSTED = "pool_exhausted"
    ERROR = "error"


class CacheStatus(StrEnum):
    """Cache status values for metrics."""

    HIT = "true"
    MISS = "false"


class StoreName(StrEnum):
    """Names of the three backing stores, as reported by /health."""

    POSTGRES = "postgres"
    REDIS = "redis"
    COUCHDB = "couchdb"
