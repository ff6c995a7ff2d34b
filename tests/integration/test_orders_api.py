"""Integration tests for the checkout and order endpoints."""

import re
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from libs.common.config import get_settings
from services.shop_service.app.main import app
from services.shop_service.exceptions import OrderWriteError
from services.shop_service.models import Order, Product
from services.shop_service.services.notifications import (
    OrderNotifier,
    get_order_notifier,
)
from sqlalchemy import func, select
from tests.factories import ProductFactory, bearer, order_payload

NOTIFICATIONS = "services.shop_service.services.notifications"

# ---------------------------------------------------------------------------
# POST /api/orders/create
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_guest_order(client, persist, notifier):
    product = ProductFactory.create(stock=10)
    await persist(product)

    response = await client.post(
        "/api/orders/create", json=order_payload([(product, 2)])
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert re.fullmatch(r"ASH-[0-9A-F]{6}", data["orderNumber"])
    assert data["orderNumber"] == "ASH-" + uuid.UUID(data["orderId"]).hex[-6:].upper()
    assert data["status"] == "processing"
    assert data["paymentStatus"] == "paid"
    assert data["isGuestOrder"] is True
    assert data["total"] == pytest.approx(99.98)
    assert "customerId" in data
    assert "X-Request-ID" in response.headers

    notifier.notify_order_created.assert_awaited_once_with(
        uuid.UUID(data["orderId"])
    )
    notifier.notify_stock_alerts.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_with_valid_token_is_authenticated(
    client, persist, customer_headers
):
    product = ProductFactory.create()
    await persist(product)

    response = await client.post(
        "/api/orders/create",
        json=order_payload([(product, 1)]),
        headers=customer_headers,
    )

    assert response.status_code == 200
    assert response.json()["data"]["isGuestOrder"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_with_invalid_token_falls_back_to_guest(client, persist):
    product = ProductFactory.create()
    await persist(product)

    response = await client.post(
        "/api/orders/create",
        json=order_payload([(product, 1)]),
        headers=bearer("not-a-jwt"),
    )

    assert response.status_code == 200
    assert response.json()["data"]["isGuestOrder"] is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_requires_customer_and_items(client):
    response = await client.post(
        "/api/orders/create", json={"items": [], "total": "10.00"}
    )

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Invalid order data. Customer information and items are required.",
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_malformed_body(client):
    response = await client.post(
        "/api/orders/create",
        json={"customer": {"email": "not-an-email"}, "items": [], "total": "1"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Invalid request data"
    assert body["details"][0]["field"].startswith("customer")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_out_of_stock(client, persist, db_session, notifier):
    ok = ProductFactory.create(stock=5)
    short = ProductFactory.create(name="Shahada Panel", stock=1)
    await persist(ok, short)

    response = await client.post(
        "/api/orders/create", json=order_payload([(ok, 1), (short, 3)])
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Some items are out of stock"
    assert body["details"] == [
        {
            "productId": str(short.id),
            "productName": "Shahada Panel",
            "requestedQuantity": 3,
            "currentStock": 1,
        }
    ]
    assert await db_session.scalar(select(func.count()).select_from(Order)) == 0
    ok = await db_session.get(Product, ok.id, populate_existing=True)
    assert ok.stock == 5
    notifier.notify_order_created.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_schedules_stock_alerts(client, persist, notifier):
    product = ProductFactory.create(stock=6, low_stock_threshold=5)
    await persist(product)

    response = await client.post(
        "/api/orders/create", json=order_payload([(product, 2)])
    )

    assert response.status_code == 200
    notifier.notify_stock_alerts.assert_awaited_once()
    (alerts,) = notifier.notify_stock_alerts.await_args.args
    assert [a.product_id for a in alerts] == [product.id]
    assert alerts[0].current_stock == 4


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order_database_failure_returns_500(client, persist):
    product = ProductFactory.create()
    await persist(product)

    with patch(
        "services.shop_service.services.order_intake.write_order",
        new_callable=AsyncMock,
        side_effect=OrderWriteError(),
    ):
        response = await client.post(
            "/api/orders/create", json=order_payload([(product, 1)])
        )

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to create order"}


# ---------------------------------------------------------------------------
# Status, confirmation, cancellation
# ---------------------------------------------------------------------------


async def _create(client, product, **overrides) -> dict:
    response = await client.post(
        "/api/orders/create", json=order_payload([(product, 1)], **overrides)
    )
    assert response.status_code == 200
    return response.json()["data"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_status(client, persist):
    product = ProductFactory.create()
    await persist(product)
    created = await _create(client, product, paymentStatus="pending")

    response = await client.get(f"/api/orders/{created['orderId']}/status")

    assert response.status_code == 200
    assert response.json()["data"] == {
        "orderId": created["orderId"],
        "orderNumber": created["orderNumber"],
        "orderStatus": "pending",
        "paymentStatus": "pending",
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_status_unknown(client):
    response = await client.get(f"/api/orders/{uuid.uuid4()}/status")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Order not found"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_confirmation(client, persist):
    product = ProductFactory.create()
    await persist(product)
    created = await _create(client, product)

    response = await client.get(
        f"/api/orders/confirmation/{created['orderNumber']}"
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["orderId"] == created["orderId"]
    assert data["customerName"] == "Amina Khan"
    assert data["items"][0]["arabicName"] == product.arabic_name
    assert data["items"][0]["imageUrl"] == product.image_url
    assert data["billingAddress"]["postcode"] == "E1 6RF"
    assert data["shippingAddress"]["id"] == data["billingAddress"]["id"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_pending_order(client, persist, db_session, notifier):
    product = ProductFactory.create(stock=3)
    await persist(product)
    created = await _create(client, product, paymentStatus="pending")

    response = await client.post(f"/api/orders/{created['orderId']}/cancel")

    assert response.status_code == 200
    body = response.json()
    assert body["data"]["status"] == "cancelled"
    assert body["data"]["paymentStatus"] == "failed"
    product = await db_session.get(Product, product.id, populate_existing=True)
    assert product.stock == 3
    notifier.notify_order_cancelled.assert_awaited_once_with(
        uuid.UUID(created["orderId"]), created["orderNumber"], "payment cancelled"
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_paid_order_rejected(client, persist):
    product = ProductFactory.create()
    await persist(product)
    created = await _create(client, product)

    response = await client.post(f"/api/orders/{created['orderId']}/cancel")

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_paid_checkout_sends_one_confirmation_email(
    client, persist, session_factory
):
    """Full path through the real notifier with the SMTP senders mocked."""
    product = ProductFactory.create(name="Vase", price=Decimal("25.00"))
    await persist(product)
    app.dependency_overrides[get_order_notifier] = lambda: OrderNotifier(
        session_factory, get_settings()
    )
    payload = {
        "customer": {"email": "a@example.com"},
        "items": [
            {
                "productId": str(product.id),
                "quantity": 2,
                "price": 25.00,
                "name": "Vase",
            }
        ],
        "total": 50.00,
        "paymentStatus": "paid",
    }

    with patch(
        f"{NOTIFICATIONS}.send_order_confirmation_email",
        new_callable=AsyncMock,
        return_value=True,
    ) as confirm, patch(
        f"{NOTIFICATIONS}.send_admin_new_order_notification",
        new_callable=AsyncMock,
        return_value=True,
    ):
        response = await client.post("/api/orders/create", json=payload)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 50.00
    assert data["status"] == "processing"
    assert re.fullmatch(r"ASH-[0-9A-F]{6}", data["orderNumber"])
    confirm.assert_awaited_once()
    assert confirm.await_args.kwargs["to_email"] == "a@example.com"
