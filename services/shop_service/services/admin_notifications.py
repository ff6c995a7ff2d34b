"""Admin inbox: record shop events and let the back-office triage them.

Service functions flush but never commit; the router (or the notifier's own
session) owns the transaction.
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.shop_service.exceptions import (
    InvalidBulkActionError,
    NotificationNotDeletableError,
    NotificationNotFoundError,
)
from services.shop_service.models import (
    AdminNotification,
    NotificationPriority,
    NotificationType,
    Order,
    PaymentStatus,
    RelatedEntityType,
    StockStatus,
)
from services.shop_service.services.inventory import StockAlert
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

DEFAULT_RETENTION_DAYS = 90


class BulkAction(str, enum.Enum):
    MARK_ALL_READ = "mark_all_read"
    MARK_SELECTED_READ = "mark_selected_read"
    DISMISS_SELECTED = "dismiss_selected"
    DELETE_DISMISSED = "delete_dismissed"
    DELETE_OLD = "delete_old"
    DELETE_BY_TYPE = "delete_by_type"
    CLEAR_EXPIRED = "clear_expired"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class NotificationFilters:
    read: Optional[bool] = None
    dismissed: Optional[bool] = None
    type: Optional[NotificationType] = None
    priority: Optional[NotificationPriority] = None
    related_type: Optional[RelatedEntityType] = None
    search: Optional[str] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None

    def apply(self, query):
        if self.read is not None:
            query = query.where(AdminNotification.read == self.read)
        if self.dismissed is not None:
            query = query.where(AdminNotification.dismissed == self.dismissed)
        if self.type:
            query = query.where(AdminNotification.type == self.type)
        if self.priority:
            query = query.where(AdminNotification.priority == self.priority)
        if self.related_type:
            query = query.where(AdminNotification.related_type == self.related_type)
        if self.search:
            pattern = f"%{self.search}%"
            query = query.where(
                or_(
                    AdminNotification.title.ilike(pattern),
                    AdminNotification.message.ilike(pattern),
                )
            )
        if self.since:
            query = query.where(AdminNotification.created_at >= as_utc(self.since))
        if self.until:
            query = query.where(AdminNotification.created_at <= as_utc(self.until))
        return query


@dataclass
class NotificationPage:
    notifications: list[AdminNotification]
    total: int
    unread_count: int
    has_more: bool


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


async def record_notification(
    db: AsyncSession,
    type: NotificationType,
    title: str,
    message: str,
    *,
    priority: NotificationPriority = NotificationPriority.NORMAL,
    related_id: Optional[str] = None,
    related_type: Optional[RelatedEntityType] = None,
    action_url: Optional[str] = None,
    meta: Optional[dict[str, Any]] = None,
    expires_at: Optional[datetime] = None,
) -> AdminNotification:
    notification = AdminNotification(
        type=type,
        title=title,
        message=message,
        priority=priority,
        related_id=related_id,
        related_type=related_type,
        action_url=action_url,
        meta=meta or {},
        expires_at=as_utc(expires_at),
    )
    db.add(notification)
    await db.flush()
    logger.info(
        "Recorded %s admin notification %s (%s)",
        type.value,
        notification.id,
        priority.value,
    )
    return notification


async def record_new_order(
    db: AsyncSession, order: Order, urgent: bool = False
) -> AdminNotification:
    """Inbox entry for a freshly created order.

    ``order`` must have its customer loaded; it is only read, never attached.
    """
    customer_name = order.customer.full_name if order.customer else "Guest"
    total = Decimal(order.total).quantize(Decimal("0.01"))
    message = f"{customer_name} placed an order for {order.currency} {total}"
    if order.payment_status != PaymentStatus.PAID:
        message += " (awaiting payment)"
    return await record_notification(
        db,
        NotificationType.ORDER_NEW,
        f"New order {order.order_number}",
        message,
        priority=NotificationPriority.URGENT if urgent else NotificationPriority.NORMAL,
        related_id=str(order.id),
        related_type=RelatedEntityType.ORDER,
        action_url=f"/admin/orders/{order.id}",
        meta={
            "order_number": order.order_number,
            "order_total": float(order.total),
            "customer_name": customer_name,
            "payment_method": order.payment_method,
            "payment_status": order.payment_status.value,
        },
    )


async def record_order_cancelled(
    db: AsyncSession, order_id: uuid.UUID, order_number: str, reason: str
) -> AdminNotification:
    return await record_notification(
        db,
        NotificationType.ORDER_CANCELLED,
        f"Order {order_number} cancelled",
        f"Order {order_number} was cancelled: {reason}",
        related_id=str(order_id),
        related_type=RelatedEntityType.ORDER,
        action_url=f"/admin/orders/{order_id}",
        meta={"order_number": order_number, "cancellation_reason": reason},
    )


async def record_stock_alerts(
    db: AsyncSession, alerts: list[StockAlert]
) -> list[AdminNotification]:
    recorded = []
    for alert in alerts:
        if alert.kind == StockStatus.OUT_OF_STOCK:
            type_ = NotificationType.PRODUCT_OUT_OF_STOCK
            priority = NotificationPriority.HIGH
            title = f"Out of stock: {alert.product_name}"
            message = f"{alert.product_name} has sold out"
        else:
            type_ = NotificationType.PRODUCT_LOW_STOCK
            priority = NotificationPriority.NORMAL
            title = f"Low stock: {alert.product_name}"
            message = (
                f"{alert.product_name} is down to {alert.current_stock} "
                f"(threshold {alert.threshold})"
            )
        recorded.append(
            await record_notification(
                db,
                type_,
                title,
                message,
                priority=priority,
                related_id=str(alert.product_id),
                related_type=RelatedEntityType.PRODUCT,
                action_url=f"/admin/products/{alert.product_id}",
                meta={
                    "product_name": alert.product_name,
                    "current_stock": alert.current_stock,
                    "previous_stock": alert.previous_stock,
                    "threshold": alert.threshold,
                },
            )
        )
    return recorded


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def count_unread(db: AsyncSession) -> int:
    count = await db.scalar(
        select(func.count())
        .select_from(AdminNotification)
        .where(
            AdminNotification.read.is_(False),
            AdminNotification.dismissed.is_(False),
        )
    )
    return count or 0


async def list_notifications(
    db: AsyncSession,
    filters: Optional[NotificationFilters] = None,
    limit: int = 20,
    offset: int = 0,
) -> NotificationPage:
    """Newest first. ``total`` counts every match, ignoring pagination."""
    filters = filters or NotificationFilters()
    query = filters.apply(select(AdminNotification))
    query = (
        query.order_by(AdminNotification.created_at.desc()).offset(offset).limit(limit)
    )
    result = await db.execute(query)
    total = await db.scalar(
        filters.apply(select(func.count()).select_from(AdminNotification))
    )
    total = total or 0
    return NotificationPage(
        notifications=list(result.scalars().all()),
        total=total,
        unread_count=await count_unread(db),
        has_more=offset + limit < total,
    )


async def get_notification(
    db: AsyncSession, notification_id: uuid.UUID
) -> AdminNotification:
    notification = await db.get(AdminNotification, notification_id)
    if not notification:
        raise NotificationNotFoundError()
    return notification


# ---------------------------------------------------------------------------
# Triage
# ---------------------------------------------------------------------------


async def update_notification(
    db: AsyncSession,
    notification_id: uuid.UUID,
    read: Optional[bool] = None,
    dismissed: Optional[bool] = None,
) -> AdminNotification:
    notification = await get_notification(db, notification_id)
    if read is not None:
        notification.read = read
    if dismissed is not None:
        notification.dismissed = dismissed
    await db.flush()
    return notification


async def delete_notification(db: AsyncSession, notification_id: uuid.UUID) -> None:
    """Only dismissed notifications may be deleted."""
    notification = await get_notification(db, notification_id)
    if not notification.dismissed:
        raise NotificationNotDeletableError()
    await db.delete(notification)
    await db.flush()


def _require_ids(notification_ids: Optional[list[uuid.UUID]]) -> list[uuid.UUID]:
    if not notification_ids:
        raise InvalidBulkActionError(
            "notificationIds array is required for this action"
        )
    return notification_ids


async def apply_bulk_action(
    db: AsyncSession,
    action: str,
    notification_ids: Optional[list[uuid.UUID]] = None,
    notification_type: Optional[NotificationType] = None,
    days_old: Optional[int] = None,
) -> tuple[int, str]:
    """Run one inbox-wide operation. Returns (affected rows, summary message)."""
    try:
        action = BulkAction(action)
    except ValueError:
        raise InvalidBulkActionError(f"Unknown action: {action}") from None
    table = AdminNotification

    if action == BulkAction.MARK_ALL_READ:
        stmt = update(table).where(table.read.is_(False)).values(read=True)
        template = "Marked {n} notifications as read"
    elif action == BulkAction.MARK_SELECTED_READ:
        ids = _require_ids(notification_ids)
        stmt = update(table).where(table.id.in_(ids)).values(read=True)
        template = "Marked {n} selected notifications as read"
    elif action == BulkAction.DISMISS_SELECTED:
        ids = _require_ids(notification_ids)
        stmt = update(table).where(table.id.in_(ids)).values(dismissed=True)
        template = "Dismissed {n} selected notifications"
    elif action == BulkAction.DELETE_DISMISSED:
        stmt = delete(table).where(table.dismissed.is_(True))
        template = "Deleted {n} dismissed notifications"
    elif action == BulkAction.DELETE_OLD:
        days = days_old or DEFAULT_RETENTION_DAYS
        cutoff = utc_now() - timedelta(days=days)
        stmt = delete(table).where(table.created_at < cutoff)
        template = f"Deleted {{n}} notifications older than {days} days"
    elif action == BulkAction.DELETE_BY_TYPE:
        if not notification_type:
            raise InvalidBulkActionError("type filter is required for this action")
        stmt = delete(table).where(table.type == notification_type)
        template = (
            f"Deleted {{n}} notifications of type '{notification_type.value}'"
        )
    else:
        stmt = delete(table).where(
            table.expires_at.is_not(None), table.expires_at < utc_now()
        )
        template = "Cleared {n} expired notifications"

    result = await db.execute(stmt.execution_options(synchronize_session=False))
    affected = result.rowcount or 0
    logger.info("Bulk %s affected %d admin notification(s)", action.value, affected)
    return affected, template.format(n=affected)
