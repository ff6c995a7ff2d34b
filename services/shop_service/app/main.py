"""FastAPI application for the Shop Service."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.logging import configure_logging
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.shop_service.routers import (
    admin_inventory_router,
    admin_notifications_router,
    orders_router,
)


def create_app() -> FastAPI:
    """Create and configure the Shop Service FastAPI app."""
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title="Ashhadu Shop Service",
        version="0.1.0",
        description="Order intake and stock management for the Ashhadu store.",
    )

    # Add rate limiter state to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Add global exception handlers for consistent error responses
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "shop"}

    # Storefront checkout and order routes
    app.include_router(orders_router, prefix="/api")

    # Admin inventory routes
    app.include_router(admin_inventory_router, prefix="/api")

    # Admin inbox routes
    app.include_router(admin_notifications_router, prefix="/api")

    return app


app = create_app()
