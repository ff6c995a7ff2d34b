"""Enum definitions for shop service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class ProductStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class StockStatus(str, enum.Enum):
    IN_STOCK = "in-stock"
    LOW_STOCK = "low-stock"
    OUT_OF_STOCK = "out-of-stock"


class StockMovementType(str, enum.Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"


class AddressType(str, enum.Enum):
    BILLING = "billing"
    SHIPPING = "shipping"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class NotificationType(str, enum.Enum):
    ORDER_NEW = "order_new"
    ORDER_CANCELLED = "order_cancelled"
    PRODUCT_LOW_STOCK = "product_low_stock"
    PRODUCT_OUT_OF_STOCK = "product_out_of_stock"
    PRODUCT_BACK_IN_STOCK = "product_back_in_stock"
    INVENTORY_UPDATED = "inventory_updated"
    PAYMENT_FAILED = "payment_failed"
    SYSTEM_ALERT = "system_alert"


class NotificationPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class RelatedEntityType(str, enum.Enum):
    ORDER = "order"
    PRODUCT = "product"
    CUSTOMER = "customer"
    PAYMENT = "payment"
