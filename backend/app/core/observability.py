from __future__ import annotations

import logging
import os
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

_APP_START_MONOTONIC = time.monotonic()

_SLOW_REQUEST_MS = int(os.getenv("SLOW_REQUEST_MS", "2000"))

_QUIET_PATHS = {"/health", "/healthz", "/api/health"}


def _app_logger(request: Request) -> logging.Logger:
    return getattr(request.app.state, "logger", None) or logging.getLogger("rice_ledger")


def request_id_for(request: Request) -> str:
    rid = getattr(request.state, "request_id", None)
    return rid or request.headers.get("x-request-id") or str(uuid.uuid4())


def uptime_seconds() -> float:
    return max(0.0, time.monotonic() - _APP_START_MONOTONIC)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="seconds") + "Z"


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler that returns a structured error response.

    Internal details stay in the log; the client gets a request id to quote.
    """
    request_id = request_id_for(request)

    extra = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "exception_type": type(exc).__name__,
    }
    _app_logger(request).exception("unhandled_exception", extra=extra)

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error. Please try again later.",
            "request_id": request_id,
            "code": "INTERNAL_SERVER_ERROR",
        },
        headers={"X-Request-ID": request_id},
    )


async def request_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Request-level logging middleware.

    Adds/propagates X-Request-ID and measures request duration.
    Does not log request/response bodies.
    """

    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    logger = _app_logger(request)

    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    except Exception:
        duration_ms = (time.perf_counter() - start) * 1000.0
        logger.exception(
            "http_request_failed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "duration_ms": round(duration_ms, 2),
            },
        )
        raise

    duration_ms = (time.perf_counter() - start) * 1000.0
    extra = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "status_code": response.status_code,
        "duration_ms": round(duration_ms, 2),
    }
    if duration_ms >= _SLOW_REQUEST_MS:
        logger.warning("slow_request", extra=extra)
    elif request.url.path not in _QUIET_PATHS:
        logger.info("http_request", extra=extra)

    response.headers.setdefault("X-Request-ID", request_id)
    return response
