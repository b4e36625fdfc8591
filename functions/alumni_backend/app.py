"""
FastAPI application entry point for the alumni portal backend.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from alumni_backend.config import get_settings
from alumni_backend.identity import IdentityProviderError
from alumni_backend.kv import KvConflictError
from alumni_backend.routes import router

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error(400, _validation_message(exc))


async def conflict_exception_handler(request: Request, exc: KvConflictError):
    logger.warning("Giving up on %s %s: %s", request.method, request.url.path, exc)
    return _error(409, "Concurrent update conflict, please retry")


async def identity_exception_handler(request: Request, exc: IdentityProviderError):
    logger.error("Identity service failure on %s: %s", request.url.path, exc)
    return _error(502, "Identity service unavailable")


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Alumni Portal Backend (FastAPI)", version="0.1.0")

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            response = _error(500, "Internal server error")
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    # Must stay the outermost middleware.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_headers=["Content-Type", "Authorization"],
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        expose_headers=["Content-Length"],
        max_age=600,
    )
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(KvConflictError, conflict_exception_handler)
    app.add_exception_handler(IdentityProviderError, identity_exception_handler)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
