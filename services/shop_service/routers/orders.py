"""Shop orders router: checkout intake, status, confirmation and cancellation."""

import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.rate_limit import checkout_limit
from libs.db.session import get_async_db
from services.shop_service.schemas import (
    AddressOut,
    OrderCancelData,
    OrderCancelResponse,
    OrderConfirmation,
    OrderConfirmationResponse,
    OrderCreateData,
    OrderCreateRequest,
    OrderCreateResponse,
    OrderItemOut,
    OrderStatusData,
    OrderStatusResponse,
)
from services.shop_service.services.notifications import (
    OrderNotifier,
    get_order_notifier,
)
from services.shop_service.services.order_intake import (
    DEFAULT_CANCEL_REASON,
    SYSTEM_PERFORMER,
    OrderIntakeConfig,
    cancel_pending_order,
    create_order,
    get_intake_config,
    get_order,
    get_order_confirmation,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["orders"])
logger = get_logger(__name__)


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post("/orders/create", response_model=OrderCreateResponse)
@checkout_limit
async def create_order_endpoint(
    request: Request,
    payload: OrderCreateRequest,
    background_tasks: BackgroundTasks,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    config: OrderIntakeConfig = Depends(get_intake_config),
    notifier: OrderNotifier = Depends(get_order_notifier),
    db: AsyncSession = Depends(get_async_db),
):
    """Turn a checkout submission into a persisted order.

    Guests and signed-in customers both land here. Notifications are sent
    after the response, and only for paid orders.
    """
    result = await create_order(
        db,
        payload,
        config,
        user_id=current_user.user_id if current_user else None,
    )

    background_tasks.add_task(notifier.notify_order_created, result.order_id)
    if result.stock_alerts:
        background_tasks.add_task(notifier.notify_stock_alerts, result.stock_alerts)

    return OrderCreateResponse(
        data=OrderCreateData(
            order_id=result.order_id,
            order_number=result.order_number,
            customer_id=result.customer_id,
            total=float(result.total),
            status=result.status,
            payment_status=result.payment_status,
            is_guest_order=result.is_guest_order,
            message=result.message,
        )
    )


# ============================================================================
# ORDER LOOKUPS
# ============================================================================


@router.get("/orders/{order_id}/status", response_model=OrderStatusResponse)
async def get_order_status(
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    """Poll an order's payment and fulfilment status."""
    order = await get_order(db, order_id)
    return OrderStatusResponse(
        data=OrderStatusData(
            order_id=order.id,
            order_number=order.order_number,
            order_status=order.status,
            payment_status=order.payment_status,
        )
    )


@router.get(
    "/orders/confirmation/{order_number}", response_model=OrderConfirmationResponse
)
async def get_order_confirmation_endpoint(
    order_number: str,
    db: AsyncSession = Depends(get_async_db),
):
    """Order summary for the post-checkout confirmation page."""
    order = await get_order_confirmation(db, order_number)
    customer = order.customer

    items = [
        OrderItemOut(
            id=item.id,
            product_id=item.product_id,
            product_name=item.product_name,
            product_sku=item.product_sku,
            arabic_name=item.product.arabic_name if item.product else None,
            image_url=item.product.image_url if item.product else None,
            quantity=item.quantity,
            price=float(item.price),
            total=float(item.total),
        )
        for item in order.items
    ]

    return OrderConfirmationResponse(
        data=OrderConfirmation(
            order_id=order.id,
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            customer_email=customer.email,
            customer_name=customer.full_name,
            currency=order.currency,
            subtotal=float(order.subtotal),
            tax_amount=float(order.tax_amount),
            shipping_amount=float(order.shipping_amount),
            total=float(order.total),
            items=items,
            billing_address=(
                AddressOut.model_validate(order.billing_address)
                if order.billing_address
                else None
            ),
            shipping_address=(
                AddressOut.model_validate(order.shipping_address)
                if order.shipping_address
                else None
            ),
            created_at=order.created_at,
        )
    )


# ============================================================================
# CANCELLATION
# ============================================================================


@router.post("/orders/{order_id}/cancel", response_model=OrderCancelResponse)
async def cancel_order(
    order_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    notifier: OrderNotifier = Depends(get_order_notifier),
    db: AsyncSession = Depends(get_async_db),
):
    """Cancel an unpaid order (abandoned or failed payment) and restock it."""
    order = await cancel_pending_order(
        db,
        order_id,
        reason=DEFAULT_CANCEL_REASON,
        performed_by=current_user.user_id if current_user else SYSTEM_PERFORMER,
    )
    background_tasks.add_task(
        notifier.notify_order_cancelled,
        order.id,
        order.order_number,
        DEFAULT_CANCEL_REASON,
    )
    return OrderCancelResponse(
        message="Order cancelled successfully",
        data=OrderCancelData(
            order_id=order.id,
            status=order.status,
            payment_status=order.payment_status,
        ),
    )
