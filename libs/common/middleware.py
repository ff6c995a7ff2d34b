"""Request tracing middleware for the shop API.

Every request gets an ``X-Request-ID`` (propagated from the caller when
present) that is bound to the logging context and echoed on the response.
"""
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

QUIET_PATHS = frozenset({"/health"})


def _client_host(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "-"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the log context and log one line per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        started = time.perf_counter()
        try:
            return await self._traced(request, call_next, request_id, started)
        finally:
            clear_request_context()

    async def _traced(
        self, request: Request, call_next: Callable, request_id: str, started: float
    ) -> Response:
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "%s %s crashed after %.1fms",
                request.method,
                request.url.path,
                (time.perf_counter() - started) * 1000,
            )
            raise

        response.headers["X-Request-ID"] = request_id
        if request.url.path in QUIET_PATHS:
            return response

        status = response.status_code
        if status >= 500:
            log = logger.error
        elif status >= 400:
            log = logger.warning
        else:
            log = logger.info
        log(
            "%s %s -> %d",
            request.method,
            request.url.path,
            status,
            extra={
                "extra_fields": {
                    "status_code": status,
                    "client": _client_host(request),
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                }
            },
        )
        return response


def add_observability_middleware(app: FastAPI) -> None:
    """Install request tracing on ``app``."""
    app.add_middleware(RequestContextMiddleware)
