"""Pydantic schemas for shop service.

The storefront speaks camelCase JSON; fields are snake_case here and aliased
on the wire. Responses are wrapped in ``{"success": true, "data": ...}``.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from services.shop_service.models import (
    AddressType,
    NotificationPriority,
    NotificationType,
    OrderStatus,
    PaymentStatus,
    RelatedEntityType,
    StockMovementType,
    StockStatus,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# ============================================================================
# ORDER INTAKE SCHEMAS
# ============================================================================


class CustomerIn(CamelModel):
    email: EmailStr
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)


class MarketingIn(CamelModel):
    consent: bool = False


class BillingIn(CamelModel):
    address: Optional[str] = Field(None, max_length=255)
    address2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    county: Optional[str] = Field(None, max_length=100)
    postcode: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=2)
    existing_address_id: Optional[uuid.UUID] = None


class ShippingIn(BillingIn):
    same_as_billing: bool = False


class OrderItemIn(CamelModel):
    product_id: uuid.UUID
    quantity: int = Field(..., gt=0)
    price: Decimal = Field(..., ge=0)
    name: str = Field(..., max_length=255)
    sku: Optional[str] = Field(None, max_length=100)
    total: Optional[Decimal] = Field(None, ge=0)


class OrderCreateRequest(CamelModel):
    # Presence of customer/items is checked by the workflow so the caller gets
    # the storefront's own error message rather than a field list.
    customer: Optional[CustomerIn] = None
    items: list[OrderItemIn] = Field(default_factory=list)
    billing: Optional[BillingIn] = None
    shipping: Optional[ShippingIn] = None
    marketing: Optional[MarketingIn] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_status: Optional[Literal["pending", "paid"]] = None
    payment_intent_id: Optional[str] = Field(None, max_length=255)
    total: Decimal = Field(..., ge=0)
    subtotal: Optional[Decimal] = Field(None, ge=0)
    vat_amount: Optional[Decimal] = Field(None, ge=0)
    shipping_amount: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    notes: Optional[str] = None
    user_id: Optional[str] = None


class OrderCreateData(CamelModel):
    order_id: uuid.UUID
    order_number: str
    customer_id: uuid.UUID
    total: float
    status: OrderStatus
    payment_status: PaymentStatus
    is_guest_order: bool
    message: str


class OrderCreateResponse(CamelModel):
    success: bool = True
    data: OrderCreateData


class OrderStatusData(CamelModel):
    order_id: uuid.UUID
    order_number: str
    order_status: OrderStatus
    payment_status: PaymentStatus


class OrderStatusResponse(CamelModel):
    success: bool = True
    data: OrderStatusData


class AddressOut(CamelModel):
    id: uuid.UUID
    type: AddressType
    first_name: str
    last_name: str
    address_line_1: str
    address_line_2: Optional[str] = None
    city: str
    county: Optional[str] = None
    postcode: str
    country: str


class OrderItemOut(CamelModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    product_sku: str
    arabic_name: Optional[str] = None
    image_url: Optional[str] = None
    quantity: int
    price: float
    total: float


class OrderConfirmation(CamelModel):
    order_id: uuid.UUID
    order_number: str
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: Optional[str] = None
    customer_email: str
    customer_name: str
    currency: str
    subtotal: float
    tax_amount: float
    shipping_amount: float
    total: float
    items: list[OrderItemOut]
    billing_address: Optional[AddressOut] = None
    shipping_address: Optional[AddressOut] = None
    created_at: datetime


class OrderConfirmationResponse(CamelModel):
    success: bool = True
    data: OrderConfirmation


class OrderCancelData(CamelModel):
    order_id: uuid.UUID
    status: OrderStatus
    payment_status: PaymentStatus


class OrderCancelResponse(CamelModel):
    success: bool = True
    message: str
    data: OrderCancelData


# ============================================================================
# INVENTORY SCHEMAS
# ============================================================================


class StockAdjustmentRequest(CamelModel):
    product_id: uuid.UUID
    new_quantity: int = Field(..., ge=0)
    reason: str = Field(..., min_length=1, max_length=500)


class ProductStockOut(CamelModel):
    id: uuid.UUID
    name: str
    sku: str
    stock: int
    stock_status: StockStatus
    low_stock_threshold: int


class StockAdjustmentResponse(CamelModel):
    success: bool = True
    message: str = "Stock adjustment completed successfully"
    data: ProductStockOut


class StockMovementOut(CamelModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: Optional[str] = None
    product_sku: Optional[str] = None
    type: StockMovementType
    quantity: int
    reason: str
    reference: str
    performed_by: str
    created_at: datetime


class Pagination(CamelModel):
    limit: int
    offset: int
    total: int


class StockMovementListResponse(CamelModel):
    success: bool = True
    data: list[StockMovementOut]
    pagination: Pagination


class LowStockListResponse(CamelModel):
    success: bool = True
    data: list[ProductStockOut]


class StockSummary(CamelModel):
    total_products: int
    in_stock: int
    low_stock: int
    out_of_stock: int
    total_stock_value: float


class StockSummaryResponse(CamelModel):
    success: bool = True
    data: StockSummary


# ============================================================================
# ADMIN NOTIFICATION SCHEMAS
# ============================================================================


class AdminNotificationOut(CamelModel):
    id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    related_id: Optional[str] = None
    related_type: Optional[RelatedEntityType] = None
    priority: NotificationPriority
    read: bool
    dismissed: bool
    action_url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    created_at: datetime
    expires_at: Optional[datetime] = None


class AdminNotificationCreate(CamelModel):
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    related_id: Optional[str] = Field(None, max_length=255)
    related_type: Optional[RelatedEntityType] = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    action_url: Optional[str] = Field(None, max_length=500)
    metadata: dict[str, Any] = Field(default_factory=dict)
    expires_at: Optional[datetime] = None


class AdminNotificationUpdate(CamelModel):
    read: Optional[bool] = None
    dismissed: Optional[bool] = None


class AdminNotificationList(CamelModel):
    notifications: list[AdminNotificationOut]
    total: int
    unread_count: int
    has_more: bool


class AdminNotificationListResponse(CamelModel):
    success: bool = True
    data: AdminNotificationList


class AdminNotificationResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: AdminNotificationOut


class UnreadCount(CamelModel):
    unread_count: int


class UnreadCountResponse(CamelModel):
    success: bool = True
    data: UnreadCount


class BulkNotificationFilters(CamelModel):
    type: Optional[NotificationType] = None
    days_old: Optional[int] = Field(None, gt=0)


class BulkNotificationRequest(CamelModel):
    action: str
    notification_ids: Optional[list[uuid.UUID]] = None
    filters: Optional[BulkNotificationFilters] = None


class BulkResult(CamelModel):
    affected_count: int
    message: str


class BulkNotificationResponse(CamelModel):
    success: bool = True
    data: BulkResult


class MessageResponse(CamelModel):
    success: bool = True
    message: str
