"""Stock checks and stock movements.

Every change to ``Product.stock`` goes through this module and leaves a
``StockMovement`` row behind. Functions flush but never commit: the caller
owns the transaction so stock changes land (or roll back) together with the
order rows they belong to.
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from libs.common.logging import get_logger
from services.shop_service.exceptions import (
    InsufficientStockError,
    InventoryError,
    ProductNotFoundError,
    StockCheckError,
)
from services.shop_service.models import (
    Product,
    ProductStatus,
    StockMovement,
    StockMovementType,
    StockStatus,
)
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

logger = get_logger(__name__)

UNKNOWN_PRODUCT = "Unknown Product"


@dataclass(frozen=True)
class StockLine:
    product_id: uuid.UUID
    quantity: int


@dataclass
class StockCheckResult:
    product_id: uuid.UUID
    product_name: str
    requested_quantity: int
    current_stock: int
    available: bool

    def as_detail(self) -> dict:
        return {
            "productId": str(self.product_id),
            "productName": self.product_name,
            "requestedQuantity": self.requested_quantity,
            "currentStock": self.current_stock,
        }


@dataclass
class StockValidationResult:
    is_valid: bool
    errors: list[StockCheckResult] = field(default_factory=list)
    available_items: list[StockCheckResult] = field(default_factory=list)


@dataclass(frozen=True)
class StockAlert:
    """A product crossed into low or zero stock."""

    product_id: uuid.UUID
    product_name: str
    previous_stock: int
    current_stock: int
    threshold: int

    @property
    def kind(self) -> StockStatus:
        if self.current_stock <= 0:
            return StockStatus.OUT_OF_STOCK
        return StockStatus.LOW_STOCK


def determine_stock_status(stock: int, low_stock_threshold: int) -> StockStatus:
    if stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if stock <= low_stock_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def detect_stock_alert(
    product: Product, previous_stock: int, current_stock: int
) -> Optional[StockAlert]:
    """Return an alert when stock drops from in-stock to low, or from positive to zero."""
    threshold = product.low_stock_threshold
    was_in_stock = previous_stock > threshold
    is_now_low = 0 < current_stock <= threshold

    if (was_in_stock and is_now_low) or (current_stock <= 0 < previous_stock):
        return StockAlert(
            product_id=product.id,
            product_name=product.name,
            previous_stock=previous_stock,
            current_stock=current_stock,
            threshold=threshold,
        )
    return None


async def _load_products(
    db: AsyncSession, product_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, Product]:
    result = await db.execute(select(Product).where(Product.id.in_(set(product_ids))))
    return {product.id: product for product in result.scalars().all()}


async def _lock_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    result = await db.execute(
        select(Product).where(Product.id == product_id).with_for_update()
    )
    product = result.scalar_one_or_none()
    if not product:
        raise ProductNotFoundError()
    return product


def _record_movement(
    db: AsyncSession,
    product_id: uuid.UUID,
    movement_type: StockMovementType,
    quantity: int,
    reason: str,
    reference: str,
    performed_by: str,
) -> StockMovement:
    movement = StockMovement(
        product_id=product_id,
        type=movement_type,
        quantity=quantity,
        reason=reason,
        reference=reference,
        performed_by=performed_by,
    )
    db.add(movement)
    return movement


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


async def check_stock_availability(
    db: AsyncSession, items: list[StockLine]
) -> StockValidationResult:
    """Check every line against current stock and aggregate all shortfalls.

    Products with stock management disabled are always available. Unknown
    products are reported as unavailable with zero stock.
    """
    try:
        products = await _load_products(db, (item.product_id for item in items))
    except SQLAlchemyError as e:
        raise StockCheckError() from e

    results = []
    for item in items:
        product = products.get(item.product_id)
        if product is None:
            results.append(
                StockCheckResult(
                    product_id=item.product_id,
                    product_name=UNKNOWN_PRODUCT,
                    requested_quantity=item.quantity,
                    current_stock=0,
                    available=False,
                )
            )
            continue

        results.append(
            StockCheckResult(
                product_id=product.id,
                product_name=product.name,
                requested_quantity=item.quantity,
                current_stock=product.stock,
                available=not product.manage_stock or product.stock >= item.quantity,
            )
        )

    errors = [r for r in results if not r.available]
    return StockValidationResult(
        is_valid=not errors,
        errors=errors,
        available_items=[r for r in results if r.available],
    )


# ---------------------------------------------------------------------------
# Movements
# ---------------------------------------------------------------------------


async def _decrement_if_sufficient(
    db: AsyncSession, product: Product, quantity: int
) -> Optional[int]:
    """Atomically take ``quantity`` off the product's stock.

    Returns the new stock level, or None when the row had less than
    ``quantity`` at the time of the update.
    """
    result = await db.execute(
        update(Product)
        .where(Product.id == product.id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .returning(Product.stock)
        .execution_options(synchronize_session=False)
    )
    new_stock = result.scalar_one_or_none()
    if new_stock is None:
        return None

    set_committed_value(product, "stock", new_stock)
    product.stock_status = determine_stock_status(
        new_stock, product.low_stock_threshold
    )
    return new_stock


async def deduct_stock(
    db: AsyncSession,
    items: list[StockLine],
    reason: str,
    reference: str,
    performed_by: str,
) -> list[StockAlert]:
    """Take stock for every line and write an ``out`` movement per line.

    Each decrement is conditional on sufficient stock, so two concurrent
    orders can never both take the last unit. Lines that lose that race are
    collected and raised together as InsufficientStockError; any database
    failure raises InventoryError. Either way the caller must roll back.
    """
    shortfalls: list[StockCheckResult] = []
    alerts: list[StockAlert] = []

    try:
        products = await _load_products(db, (item.product_id for item in items))

        for item in items:
            product = products.get(item.product_id)
            if product is None:
                shortfalls.append(
                    StockCheckResult(
                        product_id=item.product_id,
                        product_name=UNKNOWN_PRODUCT,
                        requested_quantity=item.quantity,
                        current_stock=0,
                        available=False,
                    )
                )
                continue

            if product.manage_stock:
                new_stock = await _decrement_if_sufficient(db, product, item.quantity)
                if new_stock is None:
                    current = await db.scalar(
                        select(Product.stock).where(Product.id == product.id)
                    )
                    shortfalls.append(
                        StockCheckResult(
                            product_id=product.id,
                            product_name=product.name,
                            requested_quantity=item.quantity,
                            current_stock=current or 0,
                            available=False,
                        )
                    )
                    continue

                alert = detect_stock_alert(
                    product, new_stock + item.quantity, new_stock
                )
                if alert:
                    alerts.append(alert)

            _record_movement(
                db,
                product.id,
                StockMovementType.OUT,
                item.quantity,
                reason,
                reference,
                performed_by,
            )

        if shortfalls:
            raise InsufficientStockError(shortfalls)

        await db.flush()

    except SQLAlchemyError as e:
        logger.error("Stock deduction failed for %s: %s", reference, e)
        raise InventoryError() from e

    logger.info(
        "Deducted stock for %d line(s) (reference=%s, by=%s)",
        len(items),
        reference,
        performed_by,
    )
    return alerts


async def add_stock(
    db: AsyncSession,
    items: list[StockLine],
    reason: str,
    reference: str,
    performed_by: str,
) -> None:
    """Put stock back (cancellations, returns) with an ``in`` movement per line."""
    try:
        for item in items:
            product = await _lock_product(db, item.product_id)
            if product.manage_stock:
                product.stock = product.stock + item.quantity
                product.stock_status = determine_stock_status(
                    product.stock, product.low_stock_threshold
                )
            _record_movement(
                db,
                product.id,
                StockMovementType.IN,
                item.quantity,
                reason,
                reference,
                performed_by,
            )
        await db.flush()
    except SQLAlchemyError as e:
        logger.error("Stock restore failed for %s: %s", reference, e)
        raise InventoryError() from e


async def adjust_stock(
    db: AsyncSession,
    product_id: uuid.UUID,
    new_quantity: int,
    reason: str,
    performed_by: str,
    reference: Optional[str] = None,
) -> tuple[Product, Optional[StockAlert]]:
    """Set a product's stock to ``new_quantity`` (admin correction or recount).

    The movement records the absolute difference; the reason carries the sign,
    e.g. ``"Recount (+3)"``. No movement is written when nothing changes.
    """
    product = await _lock_product(db, product_id)
    difference = new_quantity - product.stock
    if difference == 0:
        return product, None

    previous = product.stock
    product.stock = new_quantity
    product.stock_status = determine_stock_status(
        new_quantity, product.low_stock_threshold
    )
    sign = "+" if difference > 0 else "-"
    _record_movement(
        db,
        product.id,
        StockMovementType.ADJUSTMENT,
        abs(difference),
        f"{reason} ({sign}{abs(difference)})",
        reference or f"adjustment-{uuid.uuid4().hex[:12]}",
        performed_by,
    )
    await db.flush()

    logger.info(
        "Adjusted stock for %s: %d -> %d by %s",
        product.sku,
        previous,
        new_quantity,
        performed_by,
    )
    return product, detect_stock_alert(product, previous, new_quantity)


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


async def list_stock_movements(
    db: AsyncSession,
    product_id: Optional[uuid.UUID] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[StockMovement], int]:
    """Newest movements first, with their product loaded. Returns (page, total)."""
    query = select(StockMovement).options(selectinload(StockMovement.product))
    count_query = select(func.count()).select_from(StockMovement)
    if product_id:
        query = query.where(StockMovement.product_id == product_id)
        count_query = count_query.where(StockMovement.product_id == product_id)

    query = query.order_by(StockMovement.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(query)
    total = await db.scalar(count_query)
    return list(result.scalars().all()), total or 0


async def get_low_stock_products(db: AsyncSession) -> list[Product]:
    result = await db.execute(
        select(Product)
        .where(
            Product.manage_stock.is_(True),
            Product.status == ProductStatus.PUBLISHED,
            Product.stock_status.in_([StockStatus.LOW_STOCK, StockStatus.OUT_OF_STOCK]),
        )
        .order_by(Product.stock.asc())
    )
    return list(result.scalars().all())


async def get_stock_summary(db: AsyncSession) -> dict:
    result = await db.execute(
        select(Product).where(
            Product.manage_stock.is_(True),
            Product.status == ProductStatus.PUBLISHED,
        )
    )
    products = result.scalars().all()

    counts = {status: 0 for status in StockStatus}
    total_value = Decimal("0")
    for product in products:
        counts[product.stock_status] += 1
        total_value += product.price * product.stock

    return {
        "total_products": len(products),
        "in_stock": counts[StockStatus.IN_STOCK],
        "low_stock": counts[StockStatus.LOW_STOCK],
        "out_of_stock": counts[StockStatus.OUT_OF_STOCK],
        "total_stock_value": float(total_value),
    }
