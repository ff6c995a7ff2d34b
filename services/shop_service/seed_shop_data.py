"""Seed script for shop test data.

Creates a handful of published products (one low on stock, one with stock
management off) and the admin notification setting, so you can test the
checkout flow end-to-end.

Usage:
    cd ashhadu-shop
    python -m services.shop_service.seed_shop_data
"""

import asyncio
from decimal import Decimal

from sqlalchemy import func, select

from libs.db.config import AsyncSessionLocal
from services.shop_service.models import (
    ADMIN_NOTIFICATION_EMAILS,
    Product,
    ProductStatus,
    SiteSetting,
    StockStatus,
)
from services.shop_service.services.inventory import determine_stock_status

PRODUCTS = [
    {
        "name": "Ayatul Kursi Wall Art",
        "arabic_name": "آية الكرسي",
        "sku": "ASH-AK-001",
        "price": Decimal("49.99"),
        "stock": 25,
    },
    {
        "name": "Bismillah Calligraphy Plaque",
        "arabic_name": "بسم الله",
        "sku": "ASH-BM-002",
        "price": Decimal("34.50"),
        "stock": 6,
    },
    {
        "name": "Shahada Geometric Panel",
        "arabic_name": "الشهادة",
        "sku": "ASH-SH-003",
        "price": Decimal("129.00"),
        "stock": 2,
    },
    {
        "name": "Custom Name Calligraphy (made to order)",
        "arabic_name": None,
        "sku": "ASH-CN-004",
        "price": Decimal("85.00"),
        "stock": 0,
        "manage_stock": False,
    },
]


async def seed_shop_data():
    async with AsyncSessionLocal() as db:
        print("Seeding shop data...")

        count = await db.scalar(select(func.count()).select_from(Product))
        if count:
            print(f"Shop data already exists ({count} products). Skipping seed.")
            return

        for data in PRODUCTS:
            product = Product(status=ProductStatus.PUBLISHED, **data)
            product.stock_status = (
                determine_stock_status(product.stock, 5)
                if product.manage_stock is not False
                else StockStatus.IN_STOCK
            )
            db.add(product)

        db.add(
            SiteSetting(
                key=ADMIN_NOTIFICATION_EMAILS, value=["admin@ashhadu.co.uk"]
            )
        )
        await db.commit()
        print(f"Created {len(PRODUCTS)} products.")


if __name__ == "__main__":
    asyncio.run(seed_shop_data())
