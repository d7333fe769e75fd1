"""Product CRUD endpoints with role enforcement."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_broadcaster, require_admin, require_staff_or_admin
from app.core.time_utils import utcnow
from app.db.base import atomic, get_db
from app.models.product import Product
from app.models.sale import Sale
from app.schemas.auth import CurrentUser
from app.schemas.product import (
    BulkQuantityResponse,
    BulkQuantityUpdate,
    CategoryListResponse,
    LowStockResponse,
    ProductCreate,
    ProductDeleteResponse,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    QuantityUpdateResult,
)
from app.services.notifications import (
    PRODUCT_CREATED,
    PRODUCT_UPDATED,
    Broadcaster,
    publish_safely,
)

router = APIRouter(prefix="/products", tags=["products"])


def _escape_like(s: str) -> str:
    """Escape SQL LIKE wildcards in user input."""
    return s.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def _get_active_product(db: AsyncSession, product_id: UUID) -> Product:
    product = await db.scalar(
        select(Product).where(Product.id == product_id, Product.is_active == True)  # noqa: E712
    )
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    return product


async def _ensure_unique_sku(db: AsyncSession, sku: str | None, exclude_id: UUID | None = None) -> None:
    if not sku:
        return
    query = select(Product.id).where(Product.sku == sku)
    if exclude_id is not None:
        query = query.where(Product.id != exclude_id)
    if await db.scalar(query):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"SKU '{sku}' already exists",
        )


@router.get("", response_model=ProductListResponse)
async def list_products(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    search: str | None = None,
    category: str | None = None,
    low_stock: bool = False,
    current_user: CurrentUser = Depends(require_staff_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """List active products with pagination and optional filters."""
    query = select(Product).where(Product.is_active == True)  # noqa: E712

    if search:
        like = f"%{_escape_like(search)}%"
        query = query.where(
            Product.name.ilike(like, escape="\\")
            | Product.description.ilike(like, escape="\\")
            | Product.sku.ilike(like, escape="\\")
        )
    if category:
        query = query.where(Product.category == category)
    if low_stock:
        query = query.where(Product.quantity <= Product.threshold)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()

    query = query.order_by(Product.created_at.desc()).offset((page - 1) * size).limit(size)
    items = (await db.execute(query)).scalars().all()

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in items],
        total=total,
        page=page,
        size=size,
    )


@router.get("/categories", response_model=CategoryListResponse)
async def list_categories(
    current_user: CurrentUser = Depends(require_staff_or_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Product.category).where(Product.is_active == True).distinct()  # noqa: E712
    )
    return CategoryListResponse(categories=sorted(result.scalars().all()))


@router.get("/low-stock", response_model=LowStockResponse)
async def list_low_stock(
    current_user: CurrentUser = Depends(require_staff_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """Active products at or below their reorder threshold, emptiest first."""
    result = await db.execute(
        select(Product)
        .where(Product.is_active == True, Product.quantity <= Product.threshold)  # noqa: E712
        .order_by(Product.quantity.asc())
    )
    items = result.scalars().all()
    return LowStockResponse(
        items=[ProductResponse.model_validate(p) for p in items],
        count=len(items),
    )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: UUID,
    current_user: CurrentUser = Depends(require_staff_or_admin),
    db: AsyncSession = Depends(get_db),
):
    return ProductResponse.model_validate(await _get_active_product(db, product_id))


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    await _ensure_unique_sku(db, body.sku)

    product = Product(**body.model_dump())
    db.add(product)
    await db.commit()
    await db.refresh(product)

    response = ProductResponse.model_validate(product)
    await publish_safely(broadcaster, PRODUCT_CREATED, response.model_dump(mode="json"))
    return response


@router.patch("/bulk/quantities", response_model=BulkQuantityResponse)
async def bulk_update_quantities(
    body: BulkQuantityUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Set stock levels for several products after a stock count.

    Each item is applied independently; unknown or inactive products are
    reported as failures without affecting the rest.
    """
    updated_ids: set[UUID] = set()
    async with atomic(db):
        for item in body.updates:
            result = await db.execute(
                update(Product)
                .where(Product.id == item.id, Product.is_active == True)  # noqa: E712
                .values(quantity=item.quantity, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                updated_ids.add(item.id)

    products = {}
    if updated_ids:
        rows = await db.execute(
            select(Product)
            .where(Product.id.in_(updated_ids))
            .execution_options(populate_existing=True)
        )
        products = {p.id: ProductResponse.model_validate(p) for p in rows.scalars().all()}

    results = []
    for item in body.updates:
        if item.id in products:
            results.append(QuantityUpdateResult(id=item.id, success=True, product=products[item.id]))
        else:
            results.append(QuantityUpdateResult(id=item.id, success=False, error="Product not found"))

    for product in products.values():
        await publish_safely(broadcaster, PRODUCT_UPDATED, product.model_dump(mode="json"))

    successful = sum(1 for r in results if r.success)
    return BulkQuantityResponse(
        message=f"Updated {successful} of {len(results)} products",
        results=results,
        successful=successful,
        failed=len(results) - successful,
    )


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: UUID,
    body: ProductUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    product = await _get_active_product(db, product_id)
    update_data = body.model_dump(exclude_unset=True)

    if "sku" in update_data and update_data["sku"] != product.sku:
        await _ensure_unique_sku(db, update_data["sku"], exclude_id=product.id)

    for field, value in update_data.items():
        setattr(product, field, value)

    await db.commit()
    await db.refresh(product)

    response = ProductResponse.model_validate(product)
    await publish_safely(broadcaster, PRODUCT_UPDATED, response.model_dump(mode="json"))
    return response


@router.delete("/{product_id}", response_model=ProductDeleteResponse)
async def delete_product(
    product_id: UUID,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a product; products with sales history are only deactivated."""
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )

    sales_count = await db.scalar(
        select(func.count(Sale.id)).where(Sale.product_id == product_id)
    )
    if sales_count:
        product.is_active = False
        await db.commit()
        return ProductDeleteResponse(
            action="deactivated", message="Product deactivated (has sales records)"
        )

    await db.delete(product)
    await db.commit()
    return ProductDeleteResponse(action="deleted", message="Product deleted successfully")
