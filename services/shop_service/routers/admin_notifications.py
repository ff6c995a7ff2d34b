"""Admin inbox router: list, read, dismiss and clean up back-office notifications."""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.shop_service.models import (
    NotificationPriority,
    NotificationType,
    RelatedEntityType,
)
from services.shop_service.schemas import (
    AdminNotificationCreate,
    AdminNotificationList,
    AdminNotificationListResponse,
    AdminNotificationOut,
    AdminNotificationResponse,
    AdminNotificationUpdate,
    BulkNotificationRequest,
    BulkNotificationResponse,
    BulkResult,
    MessageResponse,
    UnreadCount,
    UnreadCountResponse,
)
from services.shop_service.services.admin_notifications import (
    NotificationFilters,
    apply_bulk_action,
    count_unread,
    delete_notification,
    get_notification,
    list_notifications,
    record_notification,
    update_notification,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/notifications", tags=["admin-notifications"])
logger = get_logger(__name__)


@router.get("", response_model=AdminNotificationListResponse)
async def list_admin_notifications(
    read: Optional[bool] = Query(None),
    dismissed: Optional[bool] = Query(None),
    type: Optional[NotificationType] = Query(None),
    priority: Optional[NotificationPriority] = Query(None),
    related_type: Optional[RelatedEntityType] = Query(None, alias="relatedType"),
    search: Optional[str] = Query(None, max_length=100),
    since: Optional[datetime] = Query(None),
    until: Optional[datetime] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Inbox, newest first, with the unread badge count."""
    filters = NotificationFilters(
        read=read,
        dismissed=dismissed,
        type=type,
        priority=priority,
        related_type=related_type,
        search=search,
        since=since,
        until=until,
    )
    page = await list_notifications(db, filters, limit=limit, offset=offset)
    return AdminNotificationListResponse(
        data=AdminNotificationList(
            notifications=[
                AdminNotificationOut.model_validate(n) for n in page.notifications
            ],
            total=page.total,
            unread_count=page.unread_count,
            has_more=page.has_more,
        )
    )


@router.post("", response_model=AdminNotificationResponse)
@admin_limit
async def create_admin_notification(
    request: Request,
    payload: AdminNotificationCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Post a manual entry (system alerts, reminders) to the inbox."""
    try:
        notification = await record_notification(
            db,
            payload.type,
            payload.title,
            payload.message,
            priority=payload.priority,
            related_id=payload.related_id,
            related_type=payload.related_type,
            action_url=payload.action_url,
            meta=payload.metadata,
            expires_at=payload.expires_at,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return AdminNotificationResponse(
        message="Notification created",
        data=AdminNotificationOut.model_validate(notification),
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return UnreadCountResponse(data=UnreadCount(unread_count=await count_unread(db)))


@router.post("/bulk", response_model=BulkNotificationResponse)
@admin_limit
async def bulk_update_notifications(
    request: Request,
    payload: BulkNotificationRequest,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    filters = payload.filters
    try:
        affected, message = await apply_bulk_action(
            db,
            payload.action,
            notification_ids=payload.notification_ids,
            notification_type=filters.type if filters else None,
            days_old=filters.days_old if filters else None,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return BulkNotificationResponse(
        data=BulkResult(affected_count=affected, message=message)
    )


@router.get("/{notification_id}", response_model=AdminNotificationResponse)
async def get_admin_notification(
    notification_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    notification = await get_notification(db, notification_id)
    return AdminNotificationResponse(
        data=AdminNotificationOut.model_validate(notification)
    )


@router.put("/{notification_id}", response_model=AdminNotificationResponse)
async def update_admin_notification(
    notification_id: uuid.UUID,
    payload: AdminNotificationUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Mark one notification read and/or dismissed."""
    try:
        notification = await update_notification(
            db, notification_id, read=payload.read, dismissed=payload.dismissed
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if payload.read:
        message = "Notification marked as read"
    elif payload.dismissed:
        message = "Notification dismissed"
    else:
        message = "Notification updated"
    return AdminNotificationResponse(
        message=message, data=AdminNotificationOut.model_validate(notification)
    )


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_admin_notification(
    notification_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    try:
        await delete_notification(db, notification_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Admin %s deleted notification %s", current_user.user_id, notification_id)
    return MessageResponse(message="Notification deleted successfully")
