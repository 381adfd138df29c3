"""
Blogify API

FastAPI backend for the Blogify blogging platform: auth, profiles and posts.
"""

import logging
import time
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from blogify.config import get_settings
from blogify.errors import BlogifyError
from blogify.middleware import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    SecurityHeadersMiddleware,
)
from blogify.models.envelope import ErrorEnvelope
from blogify.routers import auth, blogs, profile
from blogify.services.gateway import DuplicateKeyError, get_gateway

logger = logging.getLogger(__name__)

settings = get_settings()

API_PREFIX = "/api"

# Health check cache: (result_dict, timestamp)
_health_cache: tuple[dict[str, Any], float] | None = None
_HEALTH_CACHE_TTL = 30  # seconds


def _install_log_filter() -> None:
    root = logging.getLogger()
    for handler in root.handlers:
        if not any(isinstance(f, RequestIDLogFilter) for f in handler.filters):
            handler.addFilter(RequestIDLogFilter())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    _install_log_filter()
    logger.info(
        "Blogify API starting (environment=%s, storage=%s)",
        settings.environment,
        settings.storage_backend,
    )
    yield


app = FastAPI(
    title="Blogify API",
    description="Blogging platform: drafts, publishing, tags and search",
    version="0.1.0",
    lifespan=lifespan,
)

# Request ID wraps the security headers middleware
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIDMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

# Routers
app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(profile.router, prefix=API_PREFIX)
app.include_router(blogs.router, prefix=API_PREFIX)


# ── Error envelope ───────────────────────────────────────────────


def _error_response(
    status_code: int, message: str, errors: Any = None, meta: dict[str, Any] | None = None
) -> JSONResponse:
    body = ErrorEnvelope(
        message=message, status_code=status_code, errors=errors, meta=meta
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@app.exception_handler(BlogifyError)
async def blogify_error_handler(request: Request, exc: BlogifyError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message, exc.errors)


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    return _error_response(
        409, "Duplicate value", {exc.field: f"{exc.field} already exists"}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors: dict[str, str] = {}
    for err in exc.errors():
        # Drop the leading "body"/"query"/"path" location
        loc = [str(part) for part in err.get("loc", ())[1:]]
        errors[".".join(loc) or "body"] = err.get("msg", "Invalid value")
    return _error_response(400, "Validation Error", errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    meta = None
    if get_settings().debug:
        meta = {
            "method": request.method,
            "path": request.url.path,
            "exception": type(exc).__name__,
        }
    return _error_response(500, "Internal Server Error", meta=meta)


# ── Health ───────────────────────────────────────────────────────


def _check_config() -> str:
    """Verify required configuration is loaded. Returns 'ok' or 'fail'."""
    s = get_settings()
    if not s.jwt_secret:
        return "fail"
    if s.storage_backend == "blob" and not (
        s.azure_storage_account and s.azure_storage_container
    ):
        return "fail"
    return "ok"


def _check_storage() -> str:
    try:
        return "ok" if get_gateway().check_connectivity() else "fail"
    except ValueError:
        logger.warning("Storage backend misconfigured", exc_info=True)
        return "fail"


def _run_health_checks() -> dict[str, Any]:
    """Run all health checks, returning the full response body."""
    global _health_cache
    now = time.time()
    if _health_cache is not None:
        cached_result, cached_at = _health_cache
        if now - cached_at < _HEALTH_CACHE_TTL:
            return cached_result

    checks = {"config": _check_config(), "storage": _check_storage()}
    failed = [k for k, v in checks.items() if v != "ok"]

    if failed:
        overall = "degraded"
        logger.warning("Health check degraded — failed: %s", ", ".join(failed))
    else:
        overall = "ok"

    result: dict[str, Any] = {
        "status": overall,
        "service": "blogify-api",
        "version": "0.1.0",
        "checks": checks,
    }
    _health_cache = (result, now)
    return result


@app.get(f"{API_PREFIX}/health")
async def health_check() -> JSONResponse:
    """Health check verifying configuration and storage."""
    result = _run_health_checks()
    status_code = 200 if result["status"] == "ok" else 503
    return JSONResponse(content=result, status_code=status_code)
