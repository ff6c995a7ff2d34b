"""Shop service routers package."""

from services.shop_service.routers.admin_inventory import (
    router as admin_inventory_router,
)
from services.shop_service.routers.admin_notifications import (
    router as admin_notifications_router,
)
from services.shop_service.routers.orders import router as orders_router

__all__ = [
    "admin_inventory_router",
    "admin_notifications_router",
    "orders_router",
]
