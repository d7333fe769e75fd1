"""Concurrent sales of one product never oversell."""

import asyncio

import pytest
from sqlalchemy import func, select

from app.core.errors import InsufficientStockError
from app.models.product import Product
from app.models.sale import Sale
from app.services.sales import SalesService


@pytest.mark.asyncio
async def test_concurrent_single_unit_sales(session_factory, broadcaster, staff, make_product):
    stock, buyers = 5, 12
    product = await make_product(quantity=stock, threshold=0)

    async def buy_one():
        # One session per request, as in the API
        async with session_factory() as session:
            return await SalesService(session, broadcaster).record_sale(product.id, 1, staff.id)

    results = await asyncio.gather(*(buy_one() for _ in range(buyers)), return_exceptions=True)

    succeeded = [r for r in results if not isinstance(r, BaseException)]
    failed = [r for r in results if isinstance(r, BaseException)]
    assert len(succeeded) == stock
    assert len(failed) == buyers - stock
    assert all(isinstance(exc, InsufficientStockError) for exc in failed)

    async with session_factory() as session:
        assert await session.scalar(select(Product.quantity).where(Product.id == product.id)) == 0
        assert await session.scalar(select(func.count(Sale.id))) == stock


@pytest.mark.asyncio
async def test_concurrent_multi_unit_sales_never_negative(
    session_factory, broadcaster, staff, make_product
):
    product = await make_product(quantity=10, threshold=0)

    async def buy(quantity):
        async with session_factory() as session:
            return await SalesService(session, broadcaster).record_sale(product.id, quantity, staff.id)

    results = await asyncio.gather(*(buy(3) for _ in range(6)), return_exceptions=True)
    sold = sum(r.sale.quantity_sold for r in results if not isinstance(r, BaseException))

    async with session_factory() as session:
        remaining = await session.scalar(select(Product.quantity).where(Product.id == product.id))
    assert sold == 9
    assert remaining == 1
