"""Shop inventory models: the append-only stock movement ledger."""

import uuid
from datetime import datetime

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.shop_service.models.enums import StockMovementType, enum_values
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class StockMovement(Base):
    """Audit trail for stock changes. Rows are never updated or deleted."""

    __tablename__ = "inventory_movements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id"), index=True, nullable=False
    )

    type: Mapped[StockMovementType] = mapped_column(
        SAEnum(
            StockMovementType,
            values_callable=enum_values,
            name="inventory_movement_type_enum",
        ),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)  # Always positive

    reason: Mapped[str] = mapped_column(Text, nullable=False)
    reference: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    product = relationship("Product", back_populates="movements")

    def __repr__(self):
        return f"<StockMovement {self.type} qty={self.quantity}>"
