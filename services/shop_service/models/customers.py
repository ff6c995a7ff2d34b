"""Customer and address models."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.shop_service.models.enums import AddressType, enum_values
from sqlalchemy import Boolean, DateTime, false, true
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Customer(Base):
    """Customers, including guest checkouts. Looked up by email."""

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    first_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Supabase auth id when the customer checked out while signed in
    user_id: Mapped[Optional[str]] = mapped_column(
        String(255), index=True, nullable=True
    )
    is_guest: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    marketing_consent: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    addresses = relationship("Address", back_populates="customer")
    orders = relationship("Order", back_populates="customer")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email

    def __repr__(self):
        return f"<Customer {self.email} guest={self.is_guest}>"


class Address(Base):
    """Billing and shipping addresses."""

    __tablename__ = "addresses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[AddressType] = mapped_column(
        SAEnum(
            AddressType,
            values_callable=enum_values,
            name="address_type_enum",
        ),
        nullable=False,
    )

    first_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    address_line_1: Mapped[str] = mapped_column(String(255), nullable=False)
    address_line_2: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    county: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    postcode: Mapped[str] = mapped_column(String(20), nullable=False)
    country: Mapped[str] = mapped_column(String(2), default="GB", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    customer = relationship("Customer", back_populates="addresses")

    def as_dict(self) -> dict:
        return {
            "name": f"{self.first_name} {self.last_name}".strip(),
            "address_line_1": self.address_line_1,
            "address_line_2": self.address_line_2,
            "city": self.city,
            "county": self.county,
            "postcode": self.postcode,
            "country": self.country,
        }

    def __repr__(self):
        return f"<Address {self.type} {self.postcode}>"
