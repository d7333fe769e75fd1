"""Sale transaction engine: stock decrement and sale record as one unit of work."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import InsufficientStockError, NotFoundError, ValidationError
from app.core.time_utils import utcnow
from app.db.base import atomic
from app.models.product import Product
from app.models.sale import Sale
from app.schemas.product import ProductResponse
from app.schemas.sale import SaleResponse
from app.services.notifications import (
    LOW_STOCK_ALERT,
    PRODUCT_UPDATED,
    SALE_CREATED,
    Broadcaster,
    publish_safely,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass
class SaleResult:
    sale: Sale
    product: Product


def compute_total(unit_price: Decimal, quantity: int) -> Decimal:
    return (unit_price * quantity).quantize(CENTS)


def low_stock_message(product: Product) -> str:
    return f"Low stock alert: {product.name} has only {product.quantity} units left"


class SalesService:
    def __init__(self, db: AsyncSession, broadcaster: Broadcaster):
        self.db = db
        self.broadcaster = broadcaster

    async def record_sale(
        self,
        product_id: UUID,
        quantity: int,
        user_id: UUID,
        notes: str | None = None,
    ) -> SaleResult:
        """Sell ``quantity`` units of an active product.

        The decrement is a single guarded UPDATE (``quantity >= :q``), so the
        row lock it takes serialises concurrent sales of the same product and
        stock can never go negative. If nothing was updated the product is
        re-read to report why.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Quantity must be a positive integer")

        async with atomic(self.db):
            result = await self.db.execute(
                update(Product)
                .where(
                    Product.id == product_id,
                    Product.is_active == True,  # noqa: E712
                    Product.quantity >= quantity,
                )
                .values(quantity=Product.quantity - quantity, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            product = await self._load_product(product_id)

            if result.rowcount == 0:
                if product is None or not product.is_active:
                    raise NotFoundError("Product does not exist or is inactive")
                raise InsufficientStockError(product.quantity)

            unit_price = product.price
            sale = Sale(
                product_id=product.id,
                quantity_sold=quantity,
                unit_price=unit_price,
                total_amount=compute_total(unit_price, quantity),
                user_id=user_id,
                notes=notes,
            )
            self.db.add(sale)
            await self.db.flush()

        sale = await self.get_sale(sale.id)
        logger.info(
            "Sale %s recorded: product=%s qty=%d total=%s remaining=%d",
            sale.id, product.id, quantity, sale.total_amount, product.quantity,
        )

        await self._publish(SALE_CREATED, SaleResponse.model_validate(sale).model_dump(mode="json"))
        product_payload = ProductResponse.model_validate(product).model_dump(mode="json")
        await self._publish(PRODUCT_UPDATED, product_payload)
        if product.quantity <= product.threshold:
            await self._publish(
                LOW_STOCK_ALERT,
                {"product": product_payload, "message": low_stock_message(product)},
            )

        return SaleResult(sale=sale, product=product)

    async def reverse_sale(self, sale_id: UUID) -> int:
        """Delete a sale and put its units back on the shelf.

        No upper bound is applied to the restored quantity.
        """
        async with atomic(self.db):
            sale = await self.db.scalar(
                select(Sale).where(Sale.id == sale_id).with_for_update()
            )
            if sale is None:
                raise NotFoundError("Sale with this ID does not exist")
            product_id, restored = sale.product_id, sale.quantity_sold

            # A concurrent reversal may have removed the row after our read
            deleted = await self.db.execute(delete(Sale).where(Sale.id == sale_id))
            if deleted.rowcount == 0:
                raise NotFoundError("Sale with this ID does not exist")

            await self.db.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(quantity=Product.quantity + restored, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            product = await self._load_product(product_id)

        logger.info("Sale %s reversed: product=%s restored=%d", sale_id, product_id, restored)
        if product is not None:
            await self._publish(
                PRODUCT_UPDATED, ProductResponse.model_validate(product).model_dump(mode="json")
            )
        return restored

    async def get_sale(self, sale_id: UUID) -> Sale:
        sale = await self.db.scalar(
            select(Sale)
            .where(Sale.id == sale_id)
            .options(selectinload(Sale.product), selectinload(Sale.user))
            .execution_options(populate_existing=True)
        )
        if sale is None:
            raise NotFoundError("Sale with this ID does not exist")
        return sale

    async def update_notes(self, sale_id: UUID, notes: str | None) -> Sale:
        async with atomic(self.db):
            sale = await self.get_sale(sale_id)
            sale.notes = notes
        return sale

    async def _load_product(self, product_id: UUID) -> Product | None:
        return await self.db.scalar(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )

    async def _publish(self, event: str, payload: dict[str, Any]) -> None:
        # Notifications never affect the outcome of a committed sale
        await publish_safely(self.broadcaster, event, payload)
