"""FastAPI route definitions for the URL shortener.

API Endpoint Overview
=====================
::
    POST /
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (201) or 400/409/500

    GET  /:code
        └─ 302 Redirect or 404

    GET  /-/health
        └─ HealthResponse (200 or 503)

Request Flow Diagram
====================
::
    ┌─────────────┐
    │  HTTP       │
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Validate &  │
    │ Parse       │
    │ (Pydantic)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Inject      │
    │ store via   │
    │ Depends     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Call Service│
    │ Layer       │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Response or │
    │ ShortenerErr│
    │ → handler   │
    └─────────────┘

Key Behaviours
===============
- Operational routes live under ``/-/``; ``/`` is outside the short code
  alphabet, so they never shadow a code.
- Errors raised by the service are turned into ``{"error": ...}`` bodies by
  the exception handlers registered in ``shortener.main``.
- Redirects use 302 Found.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, RedirectResponse

from shortener.dependencies import RequestContext, get_request_context, get_shortening_service
from shortener.enums import HealthStatus
from shortener.exceptions import StoreError
from shortener.schemas import ErrorResponse, HealthResponse, ShortenRequest, ShortenResponse
from shortener.service import ShorteningService, build_short_url

__all__ = ["router", "OPS_PREFIX"]

OPS_PREFIX = "/-"

router = APIRouter()

_error_responses = {
    400: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.get(f"{OPS_PREFIX}/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> JSONResponse:
    store_status = HealthStatus.HEALTHY
    try:
        await ctx.store.ping()
    except StoreError as exc:
        ctx.logger.error(f"Store health check failed: {exc}")
        store_status = HealthStatus.UNHEALTHY

    body = HealthResponse(status=store_status, store=store_status)
    status_code = 200 if store_status is HealthStatus.HEALTHY else 503
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@router.post(
    "/",
    response_model=ShortenResponse,
    status_code=201,
    responses=_error_responses,
    tags=["urls"],
)
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: ShorteningService = Depends(get_shortening_service),
) -> ShortenResponse:
    ctx.logger.info(f"URL shortening requested: {payload.url} (custom_code={payload.custom_code})")
    short_url = await service.create_short_url(payload)
    ctx.logger.info(f"URL shortened in {ctx.get_duration():.1f}ms: {short_url.code}")
    return ShortenResponse(
        short_url=build_short_url(ctx.settings.BASE_URL, short_url.code),
        code=short_url.code,
    )


@router.get("/{code}", status_code=302, responses={404: {"model": ErrorResponse}}, tags=["redirect"])
async def redirect_to_url(
    code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ShorteningService = Depends(get_shortening_service),
) -> RedirectResponse:
    target = await service.resolve(code)
    ctx.logger.info(f"Redirect: {code} -> {target}")
    return RedirectResponse(url=target, status_code=302)
