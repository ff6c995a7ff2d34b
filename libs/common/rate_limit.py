"""slowapi limiter shared by the shop routers.

Counters live in process memory unless RATE_LIMIT_STORAGE_URI points at a
shared backend such as Redis.
"""

from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings
from libs.common.error_handler import error_body


def client_key(request: Request) -> str:
    """Key requests by the first X-Forwarded-For hop, else the peer address."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    return first_hop or get_remote_address(request)


@lru_cache
def get_limiter() -> Limiter:
    settings = get_settings()
    return Limiter(
        key_func=client_key,
        default_limits=[settings.DEFAULT_RATE_LIMIT],
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """429 in the shop error envelope."""
    return JSONResponse(
        status_code=429,
        content=error_body(
            "Too many requests. Please wait a moment and try again.",
            details={"limit": str(exc.detail)} if exc.detail else None,
        ),
        headers={"Retry-After": "60"},
    )


def checkout_limit(func: Callable) -> Callable:
    """Throttle order submission per client."""
    return limiter.limit(get_settings().CHECKOUT_RATE_LIMIT)(func)


def admin_limit(func: Callable) -> Callable:
    return limiter.limit(get_settings().ADMIN_RATE_LIMIT)(func)
