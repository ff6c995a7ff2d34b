"""Unit tests for the inventory service.

Tests call inventory functions directly with the db_session fixture.
No HTTP layer involved.
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from services.shop_service.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
)
from services.shop_service.models import (
    ProductStatus,
    StockMovement,
    StockMovementType,
    StockStatus,
)
from services.shop_service.services.inventory import (
    UNKNOWN_PRODUCT,
    StockLine,
    add_stock,
    adjust_stock,
    check_stock_availability,
    deduct_stock,
    detect_stock_alert,
    determine_stock_status,
    get_low_stock_products,
    get_stock_summary,
    list_stock_movements,
)
from sqlalchemy import select
from tests.factories import ProductFactory

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _movements_for(db, reference):
    result = await db.execute(
        select(StockMovement).where(StockMovement.reference == reference)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Stock status and alerts
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "stock,expected",
    [
        (0, StockStatus.OUT_OF_STOCK),
        (1, StockStatus.LOW_STOCK),
        (5, StockStatus.LOW_STOCK),
        (6, StockStatus.IN_STOCK),
    ],
)
def test_determine_stock_status(stock, expected):
    assert determine_stock_status(stock, 5) == expected


@pytest.mark.unit
def test_alert_when_crossing_into_low_stock():
    product = ProductFactory.create(stock=4, low_stock_threshold=5)
    alert = detect_stock_alert(product, previous_stock=7, current_stock=4)

    assert alert is not None
    assert alert.kind == StockStatus.LOW_STOCK
    assert alert.threshold == 5


@pytest.mark.unit
def test_alert_when_running_out():
    product = ProductFactory.create(stock=0)
    alert = detect_stock_alert(product, previous_stock=2, current_stock=0)

    assert alert is not None
    assert alert.kind == StockStatus.OUT_OF_STOCK


@pytest.mark.unit
def test_no_alert_when_already_low():
    product = ProductFactory.create(stock=2)
    assert detect_stock_alert(product, previous_stock=4, current_stock=2) is None


@pytest.mark.unit
def test_no_alert_while_comfortably_in_stock():
    product = ProductFactory.create(stock=10)
    assert detect_stock_alert(product, previous_stock=12, current_stock=10) is None


# ---------------------------------------------------------------------------
# check_stock_availability
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_reports_every_shortfall(db_session, persist):
    """All failing lines are reported, not just the first."""
    plenty = ProductFactory.create(stock=10)
    scarce = ProductFactory.create(name="Bismillah Plaque", stock=1)
    empty = ProductFactory.create(name="Shahada Panel", stock=0)
    await persist(plenty, scarce, empty)

    result = await check_stock_availability(
        db_session,
        [
            StockLine(plenty.id, 2),
            StockLine(scarce.id, 3),
            StockLine(empty.id, 1),
        ],
    )

    assert result.is_valid is False
    assert {e.product_id for e in result.errors} == {scarce.id, empty.id}
    assert [a.product_id for a in result.available_items] == [plenty.id]
    shortfall = next(e for e in result.errors if e.product_id == scarce.id)
    assert shortfall.as_detail() == {
        "productId": str(scarce.id),
        "productName": "Bismillah Plaque",
        "requestedQuantity": 3,
        "currentStock": 1,
    }


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_unknown_product(db_session):
    missing_id = uuid.uuid4()

    result = await check_stock_availability(db_session, [StockLine(missing_id, 1)])

    assert result.is_valid is False
    assert result.errors[0].product_name == UNKNOWN_PRODUCT
    assert result.errors[0].current_stock == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_unmanaged_product_always_available(db_session, persist):
    made_to_order = ProductFactory.create(stock=0, manage_stock=False)
    await persist(made_to_order)

    result = await check_stock_availability(
        db_session, [StockLine(made_to_order.id, 50)]
    )

    assert result.is_valid is True


# ---------------------------------------------------------------------------
# deduct_stock
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deduct_decrements_and_records_out_movements(db_session, persist):
    first = ProductFactory.create(stock=10)
    second = ProductFactory.create(stock=8)
    await persist(first, second)

    alerts = await deduct_stock(
        db_session,
        [StockLine(first.id, 3), StockLine(second.id, 1)],
        reason="Customer order: abc",
        reference="abc",
        performed_by="guest",
    )
    await db_session.commit()

    await db_session.refresh(first)
    await db_session.refresh(second)
    assert first.stock == 7
    assert second.stock == 7
    assert alerts == []

    movements = await _movements_for(db_session, "abc")
    assert len(movements) == 2
    assert all(m.type == StockMovementType.OUT for m in movements)
    assert sorted(m.quantity for m in movements) == [1, 3]
    assert all(m.performed_by == "guest" for m in movements)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deduct_never_goes_negative(db_session, persist):
    product = ProductFactory.create(stock=2)
    await persist(product)

    with pytest.raises(InsufficientStockError) as exc_info:
        await deduct_stock(
            db_session,
            [StockLine(product.id, 3)],
            reason="Customer order: x",
            reference="x",
            performed_by="guest",
        )
    await db_session.rollback()

    assert exc_info.value.status_code == 400
    assert exc_info.value.details[0]["currentStock"] == 2
    await db_session.refresh(product)
    assert product.stock == 2
    assert await _movements_for(db_session, "x") == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deduct_same_product_twice_respects_combined_quantity(
    db_session, persist
):
    """Two lines for one product cannot take more than is on the shelf."""
    product = ProductFactory.create(stock=3)
    await persist(product)

    with pytest.raises(InsufficientStockError) as exc_info:
        await deduct_stock(
            db_session,
            [StockLine(product.id, 2), StockLine(product.id, 2)],
            reason="Customer order: dup",
            reference="dup",
            performed_by="guest",
        )
    await db_session.rollback()

    assert exc_info.value.details[0]["currentStock"] == 1
    await db_session.refresh(product)
    assert product.stock == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deduct_unmanaged_product_keeps_stock_but_logs_movement(
    db_session, persist
):
    product = ProductFactory.create(stock=0, manage_stock=False)
    await persist(product)

    await deduct_stock(
        db_session,
        [StockLine(product.id, 4)],
        reason="Customer order: mto",
        reference="mto",
        performed_by="guest",
    )
    await db_session.commit()

    await db_session.refresh(product)
    assert product.stock == 0
    movements = await _movements_for(db_session, "mto")
    assert len(movements) == 1
    assert movements[0].quantity == 4


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deduct_updates_stock_status_and_returns_alerts(db_session, persist):
    low = ProductFactory.create(name="Low Soon", stock=7, low_stock_threshold=5)
    gone = ProductFactory.create(name="Last One", stock=1, low_stock_threshold=5)
    await persist(low, gone)

    alerts = await deduct_stock(
        db_session,
        [StockLine(low.id, 3), StockLine(gone.id, 1)],
        reason="Customer order: alerts",
        reference="alerts",
        performed_by="guest",
    )
    await db_session.commit()

    await db_session.refresh(low)
    await db_session.refresh(gone)
    assert low.stock_status == StockStatus.LOW_STOCK
    assert gone.stock_status == StockStatus.OUT_OF_STOCK
    kinds = {alert.product_name: alert.kind for alert in alerts}
    assert kinds == {
        "Low Soon": StockStatus.LOW_STOCK,
        "Last One": StockStatus.OUT_OF_STOCK,
    }


# ---------------------------------------------------------------------------
# add_stock / adjust_stock
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_add_stock_restores_and_records_in_movement(db_session, persist):
    product = ProductFactory.create(stock=0)
    await persist(product)

    await add_stock(
        db_session,
        [StockLine(product.id, 2)],
        reason="Order cancelled: o-1",
        reference="o-1",
        performed_by="system",
    )
    await db_session.commit()

    await db_session.refresh(product)
    assert product.stock == 2
    assert product.stock_status == StockStatus.LOW_STOCK
    movements = await _movements_for(db_session, "o-1")
    assert [(m.type, m.quantity) for m in movements] == [(StockMovementType.IN, 2)]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_adjust_stock_records_signed_reason(db_session, persist):
    product = ProductFactory.create(stock=10)
    await persist(product)

    updated, alert = await adjust_stock(
        db_session,
        product.id,
        4,
        reason="Damaged in transit",
        performed_by="admin-1",
        reference="adj-1",
    )
    await db_session.commit()

    assert updated.stock == 4
    assert alert is not None
    movements = await _movements_for(db_session, "adj-1")
    assert len(movements) == 1
    assert movements[0].type == StockMovementType.ADJUSTMENT
    assert movements[0].quantity == 6
    assert movements[0].reason == "Damaged in transit (-6)"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_adjust_stock_without_change_writes_nothing(db_session, persist):
    product = ProductFactory.create(stock=10)
    await persist(product)

    _, alert = await adjust_stock(
        db_session,
        product.id,
        10,
        reason="Recount",
        performed_by="admin-1",
        reference="noop",
    )
    await db_session.commit()

    assert alert is None
    assert await _movements_for(db_session, "noop") == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_adjust_unknown_product(db_session):
    with pytest.raises(ProductNotFoundError):
        await adjust_stock(
            db_session, uuid.uuid4(), 3, reason="Recount", performed_by="admin-1"
        )


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_movements_newest_first_with_pagination(db_session, persist):
    product = ProductFactory.create()
    other = ProductFactory.create()
    await persist(product, other)

    base = product.created_at
    movements = [
        StockMovement(
            product_id=product.id,
            type=StockMovementType.OUT,
            quantity=1,
            reason=f"Customer order: {i}",
            reference=str(i),
            performed_by="guest",
            created_at=base + timedelta(minutes=i),
        )
        for i in range(3)
    ]
    movements.append(
        StockMovement(
            product_id=other.id,
            type=StockMovementType.IN,
            quantity=1,
            reason="Restock",
            reference="other",
            performed_by="admin-1",
            created_at=base,
        )
    )
    await persist(*movements)

    page, total = await list_stock_movements(
        db_session, product_id=product.id, limit=2, offset=0
    )

    assert total == 3
    assert [m.reference for m in page] == ["2", "1"]
    assert page[0].product.sku == product.sku


@pytest.mark.asyncio
@pytest.mark.unit
async def test_low_stock_and_summary(db_session, persist):
    healthy = ProductFactory.create(stock=20, price=Decimal("10.00"))
    low = ProductFactory.create(stock=3, price=Decimal("5.00"))
    out = ProductFactory.create(stock=0, price=Decimal("7.00"))
    draft = ProductFactory.create(stock=1, status=ProductStatus.DRAFT)
    unmanaged = ProductFactory.create(stock=0, manage_stock=False)
    await persist(healthy, low, out, draft, unmanaged)

    low_stock = await get_low_stock_products(db_session)
    summary = await get_stock_summary(db_session)

    assert [p.id for p in low_stock] == [out.id, low.id]
    assert summary == {
        "total_products": 3,
        "in_stock": 1,
        "low_stock": 1,
        "out_of_stock": 1,
        "total_stock_value": 215.0,
    }
