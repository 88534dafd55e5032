"""FastAPI route definitions for the TinyURL REST API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200 healthy / 503 unhealthy)

    POST /api/shorten
        ├─ URLCreate (request body)
        └─ ShortenResponse (200) or 400/500

    GET  /api/urls
        └─ list[URLListItem] (200) or 500

    GET  /:short_code
        └─ 302 Redirect or 404/500

Key Behaviours
===============
- Service errors are mapped to status codes here and nowhere else.
- Error bodies carry a fixed message; store details only reach the logs.
- ``/:short_code`` is registered last so it never shadows the fixed paths.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Response
from fastapi.responses import RedirectResponse

from tinyurl.dependencies import RequestContext, get_health_reporter, get_request_context, get_url_service
from tinyurl.enums import HealthStatus
from tinyurl.exceptions import NotFoundError, PoolExhaustedError, ShortenerError, ValidationError
from tinyurl.health import HealthReporter
from tinyurl.schemas import HealthResponse, ShortenResponse, URLCreate, URLListItem
from tinyurl.url_service import URLShorteningService

__all__ = ["router"]

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    response: Response,
    reporter: HealthReporter = Depends(get_health_reporter),
) -> HealthResponse:
    health = await reporter.check_health()
    if health.status is not HealthStatus.HEALTHY:
        response.status_code = 503
    return health


@router.post("/api/shorten", response_model=ShortenResponse, tags=["urls"])
async def shorten_url(
    body: Any = Body(default=None, examples=[{"url": "https://example.com"}]),
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> ShortenResponse:
    # Missing, non-JSON and non-object bodies all read as a missing url.
    payload = URLCreate.model_validate(body) if isinstance(body, dict) else URLCreate()
    try:
        record = await service.shorten(payload.url, source_ip=ctx.client_ip)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="URL is required") from exc
    except PoolExhaustedError as exc:
        ctx.logger.error(
            "Short code pool exhausted",
            extra={"operation": "shorten", "duration_ms": ctx.get_duration()},
        )
        raise HTTPException(status_code=500, detail="No available short codes") from exc
    except ShortenerError as exc:
        ctx.logger.error(
            f"Error creating short URL: {exc}",
            extra={"operation": "shorten", "duration_ms": ctx.get_duration()},
        )
        raise HTTPException(status_code=500, detail="Failed to create short URL") from exc

    ctx.logger.info(
        f"URL shortened successfully: {record.short_code}",
        extra={"operation": "shorten", "short_code": record.short_code, "duration_ms": ctx.get_duration()},
    )
    return ShortenResponse(
        short_url=f"{ctx.settings.BASE_URL.rstrip('/')}/{record.short_code}",
        short_code=record.short_code,
        long_url=record.destination_url,
    )


@router.get("/api/urls", response_model=list[URLListItem], tags=["urls"])
async def list_urls(
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> list[URLListItem]:
    try:
        records = await service.list_all()
    except ShortenerError as exc:
        ctx.logger.error(f"Error listing URLs: {exc}", extra={"operation": "list"})
        raise HTTPException(status_code=500, detail="Failed to list URLs") from exc

    return [URLListItem(short_code=r.short_code, long_url=r.destination_url) for r in records]


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> RedirectResponse:
    try:
        destination_url = await service.resolve(short_code)
    except NotFoundError as exc:
        ctx.logger.warning(
            f"Redirect failed - short code not found: {short_code}",
            extra={"operation": "redirect", "short_code": short_code, "error": "not_found"},
        )
        raise HTTPException(status_code=404, detail="Short URL not found") from exc
    except ShortenerError as exc:
        ctx.logger.error(
            f"Error redirecting {short_code}: {exc}",
            extra={"operation": "redirect", "short_code": short_code, "duration_ms": ctx.get_duration()},
        )
        raise HTTPException(status_code=500, detail="Failed to redirect") from exc

    ctx.logger.info(
        f"Redirect successful: {short_code} -> {destination_url}",
        extra={"operation": "redirect", "short_code": short_code, "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=destination_url, status_code=302)
