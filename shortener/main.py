"""FastAPI application entry point for the URL shortener service.

Application Lifecycle Diagram
=============================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan(): │
    │ init store  │
    │ PING Redis  │
    └──────┬──────┘
    REACHABLE?
    ┌──────┴──────┐
    │ NO          │ YES
    ▼             ▼
┌──────────┐  ┌─────────────┐
│ CRITICAL │  │ Serve HTTP  │
│ log,     │  │ requests    │
│ abort    │  └──────┬──────┘
│ startup  │         ▼
└──────────┘  ┌─────────────┐
              │ lifespan(): │
              │ close Redis │
              └─────────────┘

How to Use
===========
**Step 1 — Run**::
    shortener
    # or
    uvicorn shortener.main:app --host 0.0.0.0 --port 8080

**Step 2 — Make API calls**::
    curl -X POST http://localhost:8080/ \\
         -H "Content-Type: application/json" \\
         -d '{"url": "https://example.com", "ttl": 3600}'

    curl -i http://localhost:8080/aB3xZ9

**Step 3 — Operate**::
    curl http://localhost:8080/-/health
    curl http://localhost:8080/-/metrics

Key Behaviours
===============
- The service refuses to start without a reachable store; uvicorn exits
  with a non-zero status when the lifespan startup fails.
- Errors are rendered as ``{"error": "<message>"}``. Server errors use a
  generic message; details only go to the log.
- CORS origins come from ``CORS_ORIGINS``.
"""

__all__ = ["app", "run"]

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shortener.config import get_settings
from shortener.dependencies import LOGGER_NAME, _service_manager
from shortener.exceptions import INTERNAL_ERROR_MESSAGE, ShortenerError, StartupFailure, StoreError
from shortener.routes import OPS_PREFIX, router

settings = get_settings()
logger = logging.getLogger(LOGGER_NAME)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await _service_manager.initialize()
    try:
        await _service_manager.store.ping()
    except StoreError as exc:
        logger.critical(f"Mapping store not reachable, refusing to start: {exc}")
        await _service_manager.cleanup()
        raise StartupFailure("mapping store not reachable") from exc
    logger.info(f"{settings.APP_NAME} started ({settings.APP_ENV})")
    yield
    # Shutdown
    await _service_manager.cleanup()
    logger.info(f"{settings.APP_NAME} stopped")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: RequestValidationError) -> str:
    for error in exc.errors():
        if error["type"] == "json_invalid":
            return "invalid JSON"
        loc = error.get("loc", ())
        field = str(loc[-1]) if len(loc) > 1 else "body"
        if error["type"] == "missing":
            return f"{field} is required"
        if error["type"] == "value_error":
            return str(error["msg"]).removeprefix("Value error, ")
        return f"invalid {field}: {error['msg']}"
    return "invalid request"


async def shortener_error_handler(request: Request, exc: ShortenerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}", exc_info=exc.__cause__)
        return _error(exc.status_code, exc.default_message)
    return _error(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    logger.info(f"{request.method} {request.url.path} rejected: {message}")
    return _error(400, message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} crashed", exc_info=exc)
    return _error(500, INTERNAL_ERROR_MESSAGE)


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Short codes for long URLs, backed by Redis",
    lifespan=lifespan,
    docs_url=f"{OPS_PREFIX}/docs",
    redoc_url=None,
    openapi_url=f"{OPS_PREFIX}/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
    max_age=settings.CORS_MAX_AGE_SECONDS,
)

app.add_exception_handler(ShortenerError, shortener_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
    excluded_handlers=[f"{OPS_PREFIX}/metrics"],
).instrument(app).expose(app, endpoint=f"{OPS_PREFIX}/metrics", include_in_schema=False)

app.include_router(router)


def run() -> None:
    uvicorn.run("shortener.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
