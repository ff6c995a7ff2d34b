"""Admin inventory router: stock adjustments, movement ledger and stock reports."""

import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.shop_service.schemas import (
    LowStockListResponse,
    Pagination,
    ProductStockOut,
    StockAdjustmentRequest,
    StockAdjustmentResponse,
    StockMovementListResponse,
    StockMovementOut,
    StockSummary,
    StockSummaryResponse,
)
from services.shop_service.services.inventory import (
    adjust_stock,
    get_low_stock_products,
    get_stock_summary,
    list_stock_movements,
)
from services.shop_service.services.notifications import (
    OrderNotifier,
    get_order_notifier,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/inventory", tags=["admin-inventory"])
logger = get_logger(__name__)


@router.post("/adjust", response_model=StockAdjustmentResponse)
@admin_limit
async def adjust_inventory(
    request: Request,
    payload: StockAdjustmentRequest,
    background_tasks: BackgroundTasks,
    current_user: AuthUser = Depends(require_admin),
    notifier: OrderNotifier = Depends(get_order_notifier),
    db: AsyncSession = Depends(get_async_db),
):
    """Set a product's stock level (recount, damage, manual correction)."""
    try:
        product, alert = await adjust_stock(
            db,
            payload.product_id,
            payload.new_quantity,
            reason=payload.reason,
            performed_by=current_user.user_id,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if alert:
        background_tasks.add_task(notifier.notify_stock_alerts, [alert])

    return StockAdjustmentResponse(data=ProductStockOut.model_validate(product))


@router.get("/movements", response_model=StockMovementListResponse)
async def list_movements(
    product_id: Optional[uuid.UUID] = Query(None, alias="productId"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Stock movement ledger, newest first."""
    movements, total = await list_stock_movements(
        db, product_id=product_id, limit=limit, offset=offset
    )
    data = [
        StockMovementOut(
            id=movement.id,
            product_id=movement.product_id,
            product_name=movement.product.name if movement.product else None,
            product_sku=movement.product.sku if movement.product else None,
            type=movement.type,
            quantity=movement.quantity,
            reason=movement.reason,
            reference=movement.reference,
            performed_by=movement.performed_by,
            created_at=movement.created_at,
        )
        for movement in movements
    ]
    return StockMovementListResponse(
        data=data, pagination=Pagination(limit=limit, offset=offset, total=total)
    )


@router.get("/low-stock", response_model=LowStockListResponse)
async def list_low_stock(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    products = await get_low_stock_products(db)
    return LowStockListResponse(
        data=[ProductStockOut.model_validate(product) for product in products]
    )


@router.get("/summary", response_model=StockSummaryResponse)
async def stock_summary(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    summary = await get_stock_summary(db)
    return StockSummaryResponse(data=StockSummary(**summary))
