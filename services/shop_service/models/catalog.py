"""Shop catalog models: products and their stock levels."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.shop_service.models.enums import (
    ProductStatus,
    StockStatus,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, DateTime, true
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Product(Base):
    """Products. Stock is only changed through the inventory service."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    arabic_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sku: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    status: Mapped[ProductStatus] = mapped_column(
        SAEnum(
            ProductStatus,
            values_callable=enum_values,
            name="product_status_enum",
        ),
        default=ProductStatus.DRAFT,
        server_default="draft",
    )

    # Stock
    stock: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    manage_stock: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    low_stock_threshold: Mapped[int] = mapped_column(
        Integer, default=5, server_default="5", nullable=False
    )
    stock_status: Mapped[StockStatus] = mapped_column(
        SAEnum(
            StockStatus,
            values_callable=enum_values,
            name="product_stock_status_enum",
        ),
        default=StockStatus.IN_STOCK,
        server_default="in-stock",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (CheckConstraint("stock >= 0", name="non_negative_stock"),)

    movements = relationship("StockMovement", back_populates="product")

    def __repr__(self):
        return f"<Product {self.sku} stock={self.stock}>"
