"""Shop Service models package."""

from services.shop_service.models.catalog import Product
from services.shop_service.models.commerce import Order, OrderItem
from services.shop_service.models.customers import Address, Customer
from services.shop_service.models.enums import (
    AddressType,
    NotificationPriority,
    NotificationType,
    OrderStatus,
    PaymentStatus,
    ProductStatus,
    RelatedEntityType,
    StockMovementType,
    StockStatus,
)
from services.shop_service.models.inventory import StockMovement
from services.shop_service.models.notifications import AdminNotification
from services.shop_service.models.settings import (
    ADMIN_NOTIFICATION_EMAILS,
    SiteSetting,
)

__all__ = [
    "ADMIN_NOTIFICATION_EMAILS",
    "Address",
    "AddressType",
    "AdminNotification",
    "Customer",
    "NotificationPriority",
    "NotificationType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "Product",
    "ProductStatus",
    "RelatedEntityType",
    "SiteSetting",
    "StockMovement",
    "StockMovementType",
    "StockStatus",
]
