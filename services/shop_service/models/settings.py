"""Key/value site settings editable from the admin back-office."""

from datetime import datetime
from typing import Any

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

ADMIN_NOTIFICATION_EMAILS = "admin_notification_emails"


class SiteSetting(Base):
    __tablename__ = "site_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<SiteSetting {self.key}>"
