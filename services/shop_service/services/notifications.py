"""Post-commit order and stock notifications: admin inbox entries and emails.

Runs after the response is sent (FastAPI background task) on its own
sessions. Nothing here can fail an order: every error is logged and dropped.
"""

import uuid
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional

from libs.common.config import Settings, get_settings
from libs.common.emails.store import (
    send_admin_low_stock_notification,
    send_admin_new_order_notification,
    send_order_confirmation_email,
)
from libs.common.logging import get_logger
from libs.db.session import get_session_factory
from services.shop_service.models import (
    ADMIN_NOTIFICATION_EMAILS,
    Order,
    OrderItem,
    PaymentStatus,
    SiteSetting,
)
from services.shop_service.services.admin_notifications import (
    record_new_order,
    record_order_cancelled,
    record_stock_alerts,
)
from services.shop_service.services.inventory import StockAlert
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


async def get_admin_notification_emails(
    db: AsyncSession, settings: Settings
) -> list[str]:
    """Admin recipients from site settings, falling back to ADMIN_EMAIL."""
    try:
        setting = await db.get(SiteSetting, ADMIN_NOTIFICATION_EMAILS)
    except SQLAlchemyError as e:
        logger.warning("Could not read admin notification emails: %s", e)
        setting = None

    value = setting.value if setting else None
    if isinstance(value, str):
        value = [value]
    if isinstance(value, list):
        emails = [v.strip() for v in value if isinstance(v, str) and v.strip()]
        if emails:
            return emails
    return [settings.ADMIN_EMAIL]


def _item_payload(item: OrderItem) -> dict:
    product = item.product
    return {
        "name": item.product_name,
        "arabic_name": product.arabic_name if product else None,
        "image_url": product.image_url if product else None,
        "quantity": item.quantity,
        "price": float(item.price),
        "total": float(item.total),
        "sku": item.product_sku,
    }


class OrderNotifier:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Optional[Settings] = None,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    async def _load_order(self, db: AsyncSession, order_id: uuid.UUID) -> Optional[Order]:
        result = await db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(
                selectinload(Order.customer),
                selectinload(Order.items).selectinload(OrderItem.product),
                selectinload(Order.billing_address),
                selectinload(Order.shipping_address),
            )
        )
        return result.scalar_one_or_none()

    async def _record(self, record: Callable[..., Awaitable[Any]], *args) -> None:
        """Write an admin inbox entry on a fresh session. Failures are logged only."""
        try:
            async with self.session_factory() as db:
                await record(db, *args)
                await db.commit()
        except Exception:
            logger.exception("Could not record admin notification (%s)", record.__name__)

    def _is_urgent(self, order: Order) -> bool:
        return order.total > Decimal(str(self.settings.URGENT_ORDER_THRESHOLD))

    async def notify_order_created(self, order_id: uuid.UUID) -> None:
        """Admin inbox entry for every new order; emails for paid orders only."""
        try:
            async with self.session_factory() as db:
                order = await self._load_order(db, order_id)
                paid = order is not None and order.payment_status == PaymentStatus.PAID
                admin_emails = (
                    await get_admin_notification_emails(db, self.settings) if paid else []
                )
        except Exception:
            logger.exception("Could not load order %s for notification", order_id)
            return

        if order is None:
            logger.warning("Order %s vanished before notification", order_id)
            return

        urgent = self._is_urgent(order)
        await self._record(record_new_order, order, urgent)

        if not paid:
            logger.info("Skipping emails for unpaid order %s", order.order_number)
            return
        await self._send_order_emails(order, admin_emails, urgent)

    async def _send_order_emails(
        self, order: Order, admin_emails: list[str], urgent: bool
    ) -> None:
        try:
            items = [_item_payload(item) for item in order.items]
            customer = order.customer
            billing = order.billing_address.as_dict() if order.billing_address else None
            shipping = (
                order.shipping_address.as_dict() if order.shipping_address else None
            )

            sent = await send_order_confirmation_email(
                to_email=customer.email,
                customer_name=customer.full_name,
                order_number=order.order_number,
                items=items,
                subtotal=float(order.subtotal),
                shipping=float(order.shipping_amount),
                tax=float(order.tax_amount),
                total=float(order.total),
                currency=order.currency,
                shipping_address=shipping,
                billing_address=billing,
            )
            if not sent:
                logger.warning(
                    "Confirmation email for %s was not sent", order.order_number
                )

            sent = await send_admin_new_order_notification(
                admin_emails=admin_emails,
                order_number=order.order_number,
                order_id=str(order.id),
                customer_name=customer.full_name,
                customer_email=customer.email,
                customer_phone=customer.phone,
                items=items,
                total=float(order.total),
                currency=order.currency,
                payment_method=order.payment_method,
                payment_status=order.payment_status.value,
                shipping_address=shipping or billing,
                urgent=urgent,
            )
            if not sent:
                logger.warning(
                    "Admin notification for %s was not sent", order.order_number
                )
        except Exception:
            logger.exception("Order emails failed for %s", order.order_number)

    async def notify_order_cancelled(
        self, order_id: uuid.UUID, order_number: str, reason: str
    ) -> None:
        await self._record(record_order_cancelled, order_id, order_number, reason)

    async def notify_stock_alerts(self, alerts: list[StockAlert]) -> None:
        """Inbox entry and admin email per product that went low or ran out."""
        if not alerts:
            return
        await self._record(record_stock_alerts, alerts)

        try:
            async with self.session_factory() as db:
                admin_emails = await get_admin_notification_emails(db, self.settings)
        except Exception:
            logger.exception("Could not resolve admin emails for stock alerts")
            admin_emails = [self.settings.ADMIN_EMAIL]

        for alert in alerts:
            try:
                await send_admin_low_stock_notification(
                    admin_emails=admin_emails,
                    product_name=alert.product_name,
                    current_stock=alert.current_stock,
                    threshold=alert.threshold,
                )
            except Exception:
                logger.exception(
                    "Stock alert failed for product %s", alert.product_id
                )


def get_order_notifier() -> OrderNotifier:
    """FastAPI dependency."""
    return OrderNotifier(get_session_factory(), get_settings())
