"""Admin in-app notifications (the back-office bell/inbox)."""

import uuid
from datetime import datetime
from typing import Any, Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.shop_service.models.enums import (
    NotificationPriority,
    NotificationType,
    RelatedEntityType,
    enum_values,
)
from sqlalchemy import JSON, Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, String, Text, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column


class AdminNotification(Base):
    """One event in the shared admin inbox.

    Read and dismissed flags live on the row, so every admin sees the same state.
    """

    __tablename__ = "admin_notifications"
    __table_args__ = (
        Index("ix_admin_notifications_unread", "read", "dismissed"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type: Mapped[NotificationType] = mapped_column(
        SAEnum(
            NotificationType,
            values_callable=enum_values,
            name="admin_notification_type_enum",
        ),
        index=True,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    related_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    related_type: Mapped[Optional[RelatedEntityType]] = mapped_column(
        SAEnum(
            RelatedEntityType,
            values_callable=enum_values,
            name="admin_notification_related_type_enum",
        ),
        nullable=True,
    )
    priority: Mapped[NotificationPriority] = mapped_column(
        SAEnum(
            NotificationPriority,
            values_callable=enum_values,
            name="admin_notification_priority_enum",
        ),
        default=NotificationPriority.NORMAL,
        server_default="normal",
        nullable=False,
    )

    read: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    dismissed: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    action_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    # "metadata" is reserved on declarative classes
    meta: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, default=dict, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self):
        return f"<AdminNotification {self.type.value} {self.title!r}>"
