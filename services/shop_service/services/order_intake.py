"""Order intake: customer → addresses → stock check → order → stock → number.

Stages run strictly in sequence, each one needing the id produced by the
previous one. Transaction layout:

1. Customer and address rows are committed on their own. They survive a
   later failure, and an address write failure is not fatal.
2. Order header, order items, stock decrements and ``out`` movements share a
   single transaction. Any failure in that span rolls all of it back, so an
   order that exists always has all of its items and all of its stock taken.
3. The permanent order number is a second, best-effort commit.
"""

import random
import string
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from libs.common.config import Settings, get_settings
from libs.common.datetime_utils import epoch_millis
from libs.common.logging import get_logger
from services.shop_service.exceptions import (
    CustomerWriteError,
    InvalidOrderError,
    OrderItemsWriteError,
    OrderNotCancellableError,
    OrderNotFoundError,
    OrderWriteError,
    OutOfStockError,
)
from services.shop_service.models import (
    Address,
    AddressType,
    Customer,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
)
from services.shop_service.schemas import (
    BillingIn,
    CustomerIn,
    OrderCreateRequest,
    OrderItemIn,
    ShippingIn,
)
from services.shop_service.services.inventory import (
    StockAlert,
    StockLine,
    add_stock,
    check_stock_availability,
    deduct_stock,
)
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

GUEST_PERFORMER = "guest"
SYSTEM_PERFORMER = "system"
DEFAULT_CANCEL_REASON = "payment cancelled"
_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class OrderIntakeConfig:
    """Store-wide defaults, read once from settings."""

    default_currency: str = "GBP"
    default_country: str = "GB"
    order_number_prefix: str = "ASH"

    @classmethod
    def from_settings(cls, settings: Settings) -> "OrderIntakeConfig":
        return cls(
            default_currency=settings.STORE_DEFAULT_CURRENCY,
            default_country=settings.STORE_DEFAULT_COUNTRY,
            order_number_prefix=settings.ORDER_NUMBER_PREFIX,
        )


def get_intake_config() -> OrderIntakeConfig:
    """FastAPI dependency."""
    return OrderIntakeConfig.from_settings(get_settings())


@dataclass
class ResolvedAddresses:
    billing_address_id: Optional[uuid.UUID] = None
    shipping_address_id: Optional[uuid.UUID] = None


@dataclass
class OrderIntakeResult:
    order_id: uuid.UUID
    order_number: str
    customer_id: uuid.UUID
    total: Decimal
    status: OrderStatus
    payment_status: PaymentStatus
    is_guest_order: bool
    stock_alerts: list[StockAlert] = field(default_factory=list)

    @property
    def message(self) -> str:
        suffix = " (guest checkout)" if self.is_guest_order else ""
        if self.payment_status == PaymentStatus.PAID:
            return f"Order created successfully{suffix}."
        return (
            f"Order created successfully{suffix}. "
            "Please complete payment to confirm your order."
        )


# ---------------------------------------------------------------------------
# Order numbers
# ---------------------------------------------------------------------------


def temporary_order_number(prefix: str = "ASH") -> str:
    """Placeholder used before the order id exists: last 6 digits of epoch ms."""
    return f"{prefix}-{str(epoch_millis())[-6:]}"


def permanent_order_number(order_id: uuid.UUID, prefix: str = "ASH") -> str:
    """Last 6 hex characters of the order id, uppercased."""
    return f"{prefix}-{order_id.hex[-6:].upper()}"


def fallback_sku() -> str:
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"ITEM-{epoch_millis()}-{suffix}"


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


async def _customer_id_by_email(db: AsyncSession, email: str) -> Optional[uuid.UUID]:
    return await db.scalar(select(Customer.id).where(Customer.email == email))


async def resolve_customer(
    db: AsyncSession,
    customer: CustomerIn,
    user_id: Optional[str] = None,
    marketing_consent: bool = False,
) -> uuid.UUID:
    """Find the customer by exact email, or create one (guest unless user_id is set).

    A concurrent first order for the same email loses the insert on the unique
    constraint and picks up the row the other request created.
    """
    try:
        existing_id = await _customer_id_by_email(db, customer.email)
        if existing_id:
            return existing_id

        new_customer = Customer(
            email=customer.email,
            first_name=customer.first_name or "",
            last_name=customer.last_name or "",
            phone=customer.phone or None,
            user_id=user_id,
            is_guest=not user_id,
            marketing_consent=marketing_consent,
        )
        db.add(new_customer)
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        existing_id = await _customer_id_by_email(db, customer.email)
        if existing_id:
            logger.info("Customer %s was created concurrently, reusing it", existing_id)
            return existing_id
        logger.error("Error creating customer %s: %s", customer.email, e)
        raise CustomerWriteError() from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Error creating customer %s: %s", customer.email, e)
        raise CustomerWriteError() from e

    logger.info(
        "Created %s customer %s",
        "guest" if new_customer.is_guest else "registered",
        new_customer.id,
    )
    return new_customer.id


async def _create_address(
    db: AsyncSession,
    customer_id: uuid.UUID,
    customer: CustomerIn,
    block: BillingIn,
    address_type: AddressType,
    config: OrderIntakeConfig,
) -> Optional[uuid.UUID]:
    """Insert an address row. Failure is logged and yields None."""
    address = Address(
        customer_id=customer_id,
        type=address_type,
        first_name=customer.first_name or "",
        last_name=customer.last_name or "",
        address_line_1=block.address,
        address_line_2=block.address2 or None,
        city=block.city,
        county=block.county or None,
        postcode=block.postcode,
        country=block.country or config.default_country,
    )
    try:
        db.add(address)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning(
            "Could not save %s address for customer %s, continuing without it: %s",
            address_type.value,
            customer_id,
            e,
        )
        return None
    return address.id


async def _owned_address_id(
    db: AsyncSession, customer_id: uuid.UUID, address_id: Optional[uuid.UUID]
) -> Optional[uuid.UUID]:
    """Return ``address_id`` only if it is a saved address of this customer."""
    if not address_id:
        return None
    owned = await db.scalar(
        select(Address.id).where(
            Address.id == address_id, Address.customer_id == customer_id
        )
    )
    if not owned:
        logger.warning(
            "Ignoring address %s not owned by customer %s", address_id, customer_id
        )
    return owned


async def resolve_addresses(
    db: AsyncSession,
    customer_id: uuid.UUID,
    customer: CustomerIn,
    billing: Optional[BillingIn],
    shipping: Optional[ShippingIn],
    config: OrderIntakeConfig,
) -> ResolvedAddresses:
    """Reuse saved addresses or create new ones. Never fails the order."""
    resolved = ResolvedAddresses()

    if billing:
        resolved.billing_address_id = await _owned_address_id(
            db, customer_id, billing.existing_address_id
        )
        if not resolved.billing_address_id and billing.address:
            resolved.billing_address_id = await _create_address(
                db, customer_id, customer, billing, AddressType.BILLING, config
            )

    resolved.shipping_address_id = resolved.billing_address_id
    if shipping and not shipping.same_as_billing:
        saved_id = await _owned_address_id(
            db, customer_id, shipping.existing_address_id
        )
        if saved_id:
            resolved.shipping_address_id = saved_id
        elif shipping.address:
            shipping_id = await _create_address(
                db, customer_id, customer, shipping, AddressType.SHIPPING, config
            )
            # Keep billing when the shipping write fails
            if shipping_id:
                resolved.shipping_address_id = shipping_id

    return resolved


async def validate_stock(db: AsyncSession, items: list[OrderItemIn]) -> None:
    """Hard gate before any order row is written."""
    validation = await check_stock_availability(db, _stock_lines(items))
    if not validation.is_valid:
        logger.info(
            "Rejected order: %d line(s) short of stock", len(validation.errors)
        )
        raise OutOfStockError(validation.errors)


async def write_order(
    db: AsyncSession,
    request: OrderCreateRequest,
    customer_id: uuid.UUID,
    addresses: ResolvedAddresses,
    config: OrderIntakeConfig,
) -> Order:
    """Add the order header (placeholder number) and its items, flushed but not committed."""
    payment_status = PaymentStatus(request.payment_status or PaymentStatus.PENDING)
    order = Order(
        customer_id=customer_id,
        order_number=temporary_order_number(config.order_number_prefix),
        status=(
            OrderStatus.PROCESSING
            if payment_status == PaymentStatus.PAID
            else OrderStatus.PENDING
        ),
        total=request.total,
        subtotal=request.subtotal if request.subtotal is not None else request.total,
        tax_amount=request.vat_amount or Decimal("0"),
        shipping_amount=request.shipping_amount or Decimal("0"),
        currency=(request.currency or config.default_currency).upper(),
        payment_status=payment_status,
        payment_method=request.payment_method or None,
        stripe_payment_intent_id=request.payment_intent_id or None,
        billing_address_id=addresses.billing_address_id,
        shipping_address_id=addresses.shipping_address_id,
        notes=request.notes or None,
    )
    try:
        db.add(order)
        await db.flush()
    except SQLAlchemyError as e:
        logger.error("Error creating order for customer %s: %s", customer_id, e)
        raise OrderWriteError() from e

    try:
        await add_order_items(db, order.id, request.items)
    except SQLAlchemyError as e:
        logger.error("Error creating order items for order %s: %s", order.id, e)
        raise OrderItemsWriteError() from e

    return order


async def add_order_items(
    db: AsyncSession, order_id: uuid.UUID, items: list[OrderItemIn]
) -> list[OrderItem]:
    order_items = [
        OrderItem(
            order_id=order_id,
            product_id=item.product_id,
            quantity=item.quantity,
            price=item.price,
            total=item.total if item.total is not None else item.price * item.quantity,
            product_name=item.name,
            product_sku=item.sku or fallback_sku(),
        )
        for item in items
    ]
    db.add_all(order_items)
    await db.flush()
    return order_items


async def finalize_order_number(
    db: AsyncSession,
    order: Order,
    config: OrderIntakeConfig,
) -> str:
    """Swap the placeholder for the id-derived number.

    Best effort: on failure the placeholder stays and is returned.
    """
    order_id = order.id
    temporary = order.order_number
    permanent = permanent_order_number(order_id, config.order_number_prefix)
    try:
        order.order_number = permanent
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            "Error updating order number for %s, keeping %s: %s",
            order_id,
            temporary,
            e,
        )
        return temporary
    return permanent


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


def _stock_lines(items: list[OrderItemIn]) -> list[StockLine]:
    return [StockLine(item.product_id, item.quantity) for item in items]


async def create_order(
    db: AsyncSession,
    request: OrderCreateRequest,
    config: OrderIntakeConfig,
    user_id: Optional[str] = None,
) -> OrderIntakeResult:
    """Run the whole intake workflow for one checkout submission."""
    if not request.customer or not request.items:
        raise InvalidOrderError()

    user_id = user_id or request.user_id
    is_guest = not user_id
    logger.info(
        "Processing %s order for %s (payment=%s/%s, total=%s)",
        "guest" if is_guest else "authenticated",
        request.customer.email,
        request.payment_method,
        request.payment_status,
        request.total,
    )

    customer_id = await resolve_customer(
        db,
        request.customer,
        user_id=user_id,
        marketing_consent=bool(request.marketing and request.marketing.consent),
    )
    addresses = await resolve_addresses(
        db, customer_id, request.customer, request.billing, request.shipping, config
    )

    await validate_stock(db, request.items)

    try:
        order = await write_order(db, request, customer_id, addresses, config)
        stock_alerts = await deduct_stock(
            db,
            _stock_lines(request.items),
            reason=f"Customer order: {order.id}",
            reference=str(order.id),
            performed_by=user_id or GUEST_PERFORMER,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    result = OrderIntakeResult(
        order_id=order.id,
        order_number=order.order_number,
        customer_id=customer_id,
        total=order.total,
        status=order.status,
        payment_status=order.payment_status,
        is_guest_order=is_guest,
        stock_alerts=stock_alerts,
    )
    result.order_number = await finalize_order_number(db, order, config)

    logger.info("Created order %s (%s)", result.order_number, result.order_id)
    return result


# ---------------------------------------------------------------------------
# Lookups and cancellation
# ---------------------------------------------------------------------------


async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    order = await db.get(Order, order_id)
    if not order:
        raise OrderNotFoundError()
    return order


async def get_order_confirmation(db: AsyncSession, order_number: str) -> Order:
    """Most recent order carrying ``order_number``, with items, customer and addresses."""
    result = await db.execute(
        select(Order)
        .where(Order.order_number == order_number)
        .options(
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.customer),
            selectinload(Order.billing_address),
            selectinload(Order.shipping_address),
        )
        .order_by(Order.created_at.desc())
        .limit(1)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise OrderNotFoundError()
    return order


async def cancel_pending_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    reason: str = DEFAULT_CANCEL_REASON,
    performed_by: str = SYSTEM_PERFORMER,
) -> Order:
    """Cancel an unpaid order and put its stock back, in one transaction."""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items))
        .with_for_update()
    )
    order = result.scalar_one_or_none()
    if not order:
        raise OrderNotFoundError()
    if order.status != OrderStatus.PENDING:
        raise OrderNotCancellableError(
            f"Order is {order.status.value}, cannot cancel"
        )

    try:
        order.status = OrderStatus.CANCELLED
        order.payment_status = PaymentStatus.FAILED
        order.notes = f"Order cancelled: {reason}"
        await add_stock(
            db,
            [StockLine(item.product_id, item.quantity) for item in order.items],
            reason=f"Order cancelled: {order.id}",
            reference=str(order.id),
            performed_by=performed_by,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Cancelled order %s and restored stock", order.id)
    return order
