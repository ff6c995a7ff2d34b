"""Global exception handlers.

Every error leaving the API is rendered as::

    {"success": false, "error": "<human readable message>", "details": ...}

``details`` is only present when there is something actionable to show the
caller (per-item stock shortfalls, field validation errors). Internal error
detail is logged, never returned.
"""

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from libs.common.logging import get_logger

logger = get_logger(__name__)


class APIError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code: int = 500
    error: str = "Internal server error. Please try again."

    def __init__(
        self,
        error: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        self.error = error or self.error
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.error)


def error_body(error: str, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    return body


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc.error,
            exc_info=exc.__cause__ is not None,
        )
    return JSONResponse(
        status_code=exc.status_code, content=error_body(exc.error, exc.details)
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
            "message": err.get("msg"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400, content=error_body("Invalid request data", details)
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body("Internal server error. Please try again."),
    )


def add_exception_handlers(app: FastAPI) -> None:
    """Register the envelope-producing handlers on an app."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
