"""Sales reporting endpoints."""

from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import require_staff_or_admin
from app.core.time_utils import ensure_utc, utcnow
from app.db.base import get_db
from app.models.product import Product
from app.models.sale import Sale
from app.models.user import User
from app.schemas.auth import CurrentUser
from app.schemas.sale import (
    DailyTrend,
    SalesOverviewReport,
    SalesTotals,
    SalesTrendsReport,
    StaffPerformance,
    TopProduct,
)

router = APIRouter(prefix="/reports", tags=["reports"])

TOP_PRODUCTS_LIMIT = 10
DEFAULT_TREND_DAYS = 30


def _period_filters(start_date: datetime | None, end_date: datetime | None) -> list:
    if start_date and end_date and end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must be >= start_date",
        )
    filters = []
    if start_date:
        filters.append(Sale.sold_at >= start_date)
    if end_date:
        filters.append(Sale.sold_at <= end_date)
    return filters


@router.get("/overview", response_model=SalesOverviewReport)
async def get_sales_overview(
    start_date: datetime | None = Query(None, description="Period start (inclusive)"),
    end_date: datetime | None = Query(None, description="Period end (inclusive)"),
    current_user: CurrentUser = Depends(require_staff_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """Revenue totals, top-selling products and per-staff performance."""
    filters = _period_filters(start_date, end_date)

    totals = (
        await db.execute(
            select(
                func.coalesce(func.sum(Sale.total_amount), 0).label("revenue"),
                func.coalesce(func.sum(Sale.quantity_sold), 0).label("units"),
                func.count(Sale.id).label("count"),
            ).where(*filters)
        )
    ).one()

    revenue_sum = func.sum(Sale.total_amount)
    product_rows = (
        await db.execute(
            select(
                Sale.product_id,
                Product.name.label("product_name"),
                Product.category,
                revenue_sum.label("total_revenue"),
                func.sum(Sale.quantity_sold).label("units_sold"),
                func.count(Sale.id).label("sales_count"),
            )
            .join(Product, Sale.product_id == Product.id)
            .where(*filters)
            .group_by(Sale.product_id, Product.name, Product.category)
            .order_by(desc(revenue_sum))
            .limit(TOP_PRODUCTS_LIMIT)
        )
    ).all()

    staff_rows = (
        await db.execute(
            select(
                Sale.user_id,
                User.name.label("user_name"),
                revenue_sum.label("total_revenue"),
                func.sum(Sale.quantity_sold).label("units_sold"),
                func.count(Sale.id).label("sales_count"),
            )
            .join(User, Sale.user_id == User.id)
            .where(*filters)
            .group_by(Sale.user_id, User.name)
            .order_by(desc(revenue_sum))
        )
    ).all()

    return SalesOverviewReport(
        overview=SalesTotals(
            total_revenue=Decimal(str(totals.revenue)).quantize(Decimal("0.01")),
            total_units_sold=int(totals.units),
            total_sales=totals.count,
        ),
        top_products=[
            TopProduct(
                product_id=row.product_id,
                product_name=row.product_name,
                category=row.category,
                total_revenue=Decimal(str(row.total_revenue)).quantize(Decimal("0.01")),
                units_sold=row.units_sold,
                sales_count=row.sales_count,
            )
            for row in product_rows
        ],
        staff_performance=[
            StaffPerformance(
                user_id=row.user_id,
                user_name=row.user_name,
                total_revenue=Decimal(str(row.total_revenue)).quantize(Decimal("0.01")),
                units_sold=row.units_sold,
                sales_count=row.sales_count,
            )
            for row in staff_rows
        ],
    )


@router.get("/trends", response_model=SalesTrendsReport)
async def get_sales_trends(
    start_date: datetime | None = Query(None, description="Defaults to 30 days ago"),
    end_date: datetime | None = None,
    current_user: CurrentUser = Depends(require_staff_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """Daily revenue, units and sale count for charting."""
    start_date = start_date or utcnow() - timedelta(days=DEFAULT_TREND_DAYS)
    filters = _period_filters(start_date, end_date)

    rows = (
        await db.execute(
            select(Sale.sold_at, Sale.total_amount, Sale.quantity_sold)
            .where(*filters)
            .order_by(Sale.sold_at.asc())
        )
    ).all()

    # Bucketed in Python so the grouping is the same UTC day on every backend
    buckets: dict[date, dict] = defaultdict(
        lambda: {"revenue": Decimal("0.00"), "units": 0, "count": 0}
    )
    for row in rows:
        bucket = buckets[ensure_utc(row.sold_at).date()]
        bucket["revenue"] += row.total_amount
        bucket["units"] += row.quantity_sold
        bucket["count"] += 1

    return SalesTrendsReport(
        trends=[DailyTrend(date=day, **values) for day, values in sorted(buckets.items())]
    )
