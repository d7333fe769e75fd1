"""Sale schemas for API request/response."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.product import ProductResponse


class SaleCreate(BaseModel):
    product_id: UUID
    quantity_sold: int = Field(..., gt=0)
    notes: str | None = Field(None, max_length=1000)


class SaleUpdate(BaseModel):
    notes: str | None = Field(None, max_length=1000)


class SaleProductInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    category: str
    sku: str | None = None


class SaleUserInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    email: str


class SaleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    user_id: UUID
    quantity_sold: int
    unit_price: Decimal = Field(..., decimal_places=2)
    total_amount: Decimal = Field(..., decimal_places=2)
    notes: str | None
    sold_at: datetime
    product: SaleProductInfo
    user: SaleUserInfo


class SaleCreatedResponse(BaseModel):
    message: str = "Sale recorded successfully"
    sale: SaleResponse
    product: ProductResponse


class SaleReversedResponse(BaseModel):
    message: str = "Sale reversed successfully"
    restored_quantity: int


class SaleListResponse(BaseModel):
    items: list[SaleResponse]
    total: int
    page: int
    size: int


# ── Reports ────────────────────────────────────────
class SalesTotals(BaseModel):
    total_revenue: Decimal = Field(..., decimal_places=2)
    total_units_sold: int
    total_sales: int


class TopProduct(BaseModel):
    product_id: UUID
    product_name: str
    category: str
    total_revenue: Decimal = Field(..., decimal_places=2)
    units_sold: int
    sales_count: int


class StaffPerformance(BaseModel):
    user_id: UUID
    user_name: str
    total_revenue: Decimal = Field(..., decimal_places=2)
    units_sold: int
    sales_count: int


class SalesOverviewReport(BaseModel):
    overview: SalesTotals
    top_products: list[TopProduct]
    staff_performance: list[StaffPerformance]


class DailyTrend(BaseModel):
    date: date
    revenue: Decimal = Field(..., decimal_places=2)
    units: int
    count: int


class SalesTrendsReport(BaseModel):
    trends: list[DailyTrend]
