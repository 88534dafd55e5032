"""Error taxonomy for the TinyURL service.

Routes translate these into HTTP status codes; nothing below the route layer
knows about HTTP.

    ShortenerError
    ├─ ValidationError         → 400
    ├─ NotFoundError           → 404
    ├─ PoolExhaustedError      → 500
    └─ StoreUnavailableError   → 500 (swallowed for the cache)
"""

__all__ = [
    "ShortenerError",
    "ValidationError",
    "NotFoundError",
    "PoolExhaustedError",
    "StoreUnavailableError",
]


class ShortenerError(Exception):
    """Base class for all service errors."""


class ValidationError(ShortenerError):
    """Client input is missing or malformed."""


class NotFoundError(ShortenerError):
    def __init__(self, short_code: str):
        super().__init__(f"Short URL not found: {short_code}")
        self.short_code = short_code


class PoolExhaustedError(ShortenerError):
    """No unused short code is left in the pool."""

    def __init__(self, message: str = "No available short codes"):
        super().__init__(message)


class StoreUnavailableError(ShortenerError):
    """A backing store could not be reached or timed out."""

    def __init__(self, store: str, reason: str = ""):
        message = f"{store} unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.store = store
