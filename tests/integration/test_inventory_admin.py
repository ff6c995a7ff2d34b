"""Integration tests for the admin inventory endpoints."""

import uuid
from decimal import Decimal

import pytest
from services.shop_service.models import Product
from tests.factories import ProductFactory, order_payload

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_inventory_requires_token(client):
    response = await client.get("/api/inventory/low-stock")

    # HTTPBearer rejects a missing Authorization header before our dependency runs
    assert response.status_code in (401, 403)
    assert response.json()["success"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_inventory_rejects_non_admin(client, customer_headers):
    response = await client.get("/api/inventory/summary", headers=customer_headers)

    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Admin access required"}


# ---------------------------------------------------------------------------
# POST /api/inventory/adjust
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_adjust_stock(client, persist, db_session, admin_headers, notifier):
    product = ProductFactory.create(stock=3)
    await persist(product)

    response = await client.post(
        "/api/inventory/adjust",
        json={"productId": str(product.id), "newQuantity": 12, "reason": "Restock"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["stock"] == 12
    assert data["stockStatus"] == "in-stock"
    notifier.notify_stock_alerts.assert_not_awaited()

    movements = await client.get(
        "/api/inventory/movements",
        params={"productId": str(product.id)},
        headers=admin_headers,
    )
    ledger = movements.json()["data"]
    assert len(ledger) == 1
    assert ledger[0]["type"] == "adjustment"
    assert ledger[0]["quantity"] == 9
    assert ledger[0]["reason"] == "Restock (+9)"
    assert ledger[0]["performedBy"] == "admin-1"

    product = await db_session.get(Product, product.id, populate_existing=True)
    assert product.stock == 12


@pytest.mark.asyncio
@pytest.mark.integration
async def test_adjust_to_zero_schedules_alert(client, persist, admin_headers, notifier):
    product = ProductFactory.create(stock=4)
    await persist(product)

    response = await client.post(
        "/api/inventory/adjust",
        json={"productId": str(product.id), "newQuantity": 0, "reason": "Damaged"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["data"]["stockStatus"] == "out-of-stock"
    notifier.notify_stock_alerts.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_adjust_unknown_product(client, admin_headers):
    response = await client.post(
        "/api/inventory/adjust",
        json={"productId": str(uuid.uuid4()), "newQuantity": 1, "reason": "Recount"},
        headers=admin_headers,
    )

    assert response.status_code == 404
    assert response.json()["error"] == "Product not found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_adjust_rejects_negative_quantity(client, persist, admin_headers):
    product = ProductFactory.create()
    await persist(product)

    response = await client.post(
        "/api/inventory/adjust",
        json={"productId": str(product.id), "newQuantity": -1, "reason": "Oops"},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request data"


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_movements_include_order_deductions(client, persist, admin_headers):
    product = ProductFactory.create(stock=10)
    await persist(product)
    created = await client.post(
        "/api/orders/create", json=order_payload([(product, 2)])
    )
    order_id = created.json()["data"]["orderId"]

    response = await client.get(
        "/api/inventory/movements",
        params={"limit": 10, "offset": 0},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {"limit": 10, "offset": 0, "total": 1}
    movement = body["data"][0]
    assert movement["type"] == "out"
    assert movement["quantity"] == 2
    assert movement["reference"] == order_id
    assert movement["reason"] == f"Customer order: {order_id}"
    assert movement["productSku"] == product.sku


@pytest.mark.asyncio
@pytest.mark.integration
async def test_low_stock_and_summary(client, persist, admin_headers):
    await persist(
        ProductFactory.create(stock=30, price=Decimal("10.00")),
        ProductFactory.create(name="Nearly Gone", stock=2, price=Decimal("20.00")),
    )

    low = await client.get("/api/inventory/low-stock", headers=admin_headers)
    summary = await client.get("/api/inventory/summary", headers=admin_headers)

    assert low.status_code == 200
    assert [p["name"] for p in low.json()["data"]] == ["Nearly Gone"]
    assert summary.json()["data"] == {
        "totalProducts": 2,
        "inStock": 1,
        "lowStock": 1,
        "outOfStock": 0,
        "totalStockValue": 340.0,
    }
