"""Sales endpoints: record, list, annotate and reverse sales."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.deps import get_sales_service, require_admin, require_staff_or_admin
from app.db.base import get_db
from app.models.sale import Sale
from app.schemas.auth import CurrentUser
from app.schemas.product import ProductResponse
from app.schemas.sale import (
    SaleCreate,
    SaleCreatedResponse,
    SaleListResponse,
    SaleResponse,
    SaleReversedResponse,
    SaleUpdate,
)
from app.services.sales import SalesService

router = APIRouter(prefix="/sales", tags=["sales"])


@router.get("", response_model=SaleListResponse)
async def list_sales(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    product_id: UUID | None = None,
    user_id: UUID | None = None,
    current_user: CurrentUser = Depends(require_staff_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """List sales, newest first, with optional date/product/seller filters."""
    query = select(Sale)

    if start_date:
        query = query.where(Sale.sold_at >= start_date)
    if end_date:
        query = query.where(Sale.sold_at <= end_date)
    if product_id:
        query = query.where(Sale.product_id == product_id)
    if user_id:
        query = query.where(Sale.user_id == user_id)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()

    query = (
        query.options(selectinload(Sale.product), selectinload(Sale.user))
        .order_by(Sale.sold_at.desc())
        .offset((page - 1) * size)
        .limit(size)
    )
    sales = (await db.execute(query)).scalars().all()

    return SaleListResponse(
        items=[SaleResponse.model_validate(s) for s in sales],
        total=total,
        page=page,
        size=size,
    )


@router.post("", response_model=SaleCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_sale(
    body: SaleCreate,
    current_user: CurrentUser = Depends(require_staff_or_admin),
    sales: SalesService = Depends(get_sales_service),
):
    """Record a sale and decrement stock in one transaction."""
    result = await sales.record_sale(
        product_id=body.product_id,
        quantity=body.quantity_sold,
        user_id=current_user.id,
        notes=body.notes,
    )
    return SaleCreatedResponse(
        sale=SaleResponse.model_validate(result.sale),
        product=ProductResponse.model_validate(result.product),
    )


@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(
    sale_id: UUID,
    current_user: CurrentUser = Depends(require_staff_or_admin),
    sales: SalesService = Depends(get_sales_service),
):
    return SaleResponse.model_validate(await sales.get_sale(sale_id))


@router.patch("/{sale_id}", response_model=SaleResponse)
async def update_sale(
    sale_id: UUID,
    body: SaleUpdate,
    current_user: CurrentUser = Depends(require_admin),
    sales: SalesService = Depends(get_sales_service),
):
    """Only the notes of a recorded sale can change."""
    sale = await sales.update_notes(sale_id, body.notes)
    return SaleResponse.model_validate(sale)


@router.delete("/{sale_id}", response_model=SaleReversedResponse)
async def reverse_sale(
    sale_id: UUID,
    current_user: CurrentUser = Depends(require_admin),
    sales: SalesService = Depends(get_sales_service),
):
    """Reverse a sale: stock is restored and the record removed."""
    restored = await sales.reverse_sale(sale_id)
    return SaleReversedResponse(restored_quantity=restored)
