"""Product schemas for request/response."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    sku: str | None = Field(None, max_length=100)
    price: Decimal = Field(..., ge=0, decimal_places=2)
    quantity: int = Field(..., ge=0, description="Current stock quantity")
    threshold: int = Field(10, ge=0, description="Low-stock alert at or below this")


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    category: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    sku: str | None = Field(None, max_length=100)
    price: Decimal | None = Field(None, ge=0, decimal_places=2)
    quantity: int | None = Field(None, ge=0)
    threshold: int | None = Field(None, ge=0)
    image_url: str | None = Field(None, max_length=500)

    @field_validator("name", "category", "price", "quantity", "threshold")
    @classmethod
    def not_null(cls, v):
        # These columns are NOT NULL; omit the field to leave it unchanged
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class ProductResponse(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    image_url: str | None = None
    is_active: bool
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    items: list[ProductResponse]
    total: int
    page: int
    size: int


class ProductDeleteResponse(BaseModel):
    action: str  # "deleted" | "deactivated"
    message: str


class CategoryListResponse(BaseModel):
    categories: list[str]


class LowStockResponse(BaseModel):
    items: list[ProductResponse]
    count: int


class QuantityUpdateItem(BaseModel):
    id: UUID
    quantity: int = Field(..., ge=0)


class BulkQuantityUpdate(BaseModel):
    updates: list[QuantityUpdateItem] = Field(..., min_length=1)


class QuantityUpdateResult(BaseModel):
    id: UUID
    success: bool
    product: ProductResponse | None = None
    error: str | None = None


class BulkQuantityResponse(BaseModel):
    message: str
    results: list[QuantityUpdateResult]
    successful: int
    failed: int
