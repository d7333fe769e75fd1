"""Seed the default admin/staff accounts and sample products.

Run with ``python -m app.db.seed``. Existing users (by email) and products
(by SKU) are left untouched, so the script can be re-run safely.

Default accounts:
    admin@amantena.com / admin123  (ADMIN)
    staff@amantena.com / staff123  (STAFF)
"""

import asyncio
import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import setup_logging
from app.core.security import hash_password
from app.db.base import SessionLocal, atomic
from app.models.product import Product
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

DEFAULT_USERS = [
    {"name": "Farm Administrator", "email": "admin@amantena.com", "password": "admin123", "role": UserRole.ADMIN},
    {"name": "Farm Staff", "email": "staff@amantena.com", "password": "staff123", "role": UserRole.STAFF},
]

SAMPLE_PRODUCTS = [
    {
        "name": "Premium Corn Feed",
        "category": "Main",
        "description": "High-quality corn feed for livestock",
        "price": Decimal("25.99"),
        "quantity": 150,
        "sku": "PCF-001",
        "threshold": 20,
    },
    {
        "name": "Protein Concentrate",
        "category": "Concentrate",
        "description": "High-protein supplement for animals",
        "price": Decimal("45.50"),
        "quantity": 75,
        "sku": "PC-002",
        "threshold": 15,
    },
    {
        "name": "Vitamin Supplement",
        "category": "Supplement",
        "description": "Essential vitamins and minerals",
        "price": Decimal("18.75"),
        "quantity": 200,
        "sku": "VS-003",
        "threshold": 30,
    },
    {
        "name": "Organic Hay",
        "category": "Main",
        "description": "Fresh organic hay bales",
        "price": Decimal("12.00"),
        "quantity": 8,
        "sku": "OH-004",
        "threshold": 10,
    },
    {
        "name": "Mineral Block",
        "category": "Supplement",
        "description": "Salt and mineral lick blocks",
        "price": Decimal("8.99"),
        "quantity": 45,
        "sku": "MB-005",
        "threshold": 10,
    },
]


async def seed(db: AsyncSession) -> dict[str, int]:
    """Insert whatever default rows are missing; returns counts created."""
    created = {"users": 0, "products": 0}

    async with atomic(db):
        for data in DEFAULT_USERS:
            if await db.scalar(select(User.id).where(User.email == data["email"])):
                continue
            db.add(
                User(
                    name=data["name"],
                    email=data["email"],
                    hashed_password=hash_password(data["password"]),
                    role=data["role"],
                )
            )
            created["users"] += 1

        for data in SAMPLE_PRODUCTS:
            if await db.scalar(select(Product.id).where(Product.sku == data["sku"])):
                continue
            db.add(Product(**data))
            created["products"] += 1

    return created


async def main() -> None:
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    async with SessionLocal() as db:
        created = await seed(db)
    logger.info("Seed complete: %d users, %d products created", created["users"], created["products"])


if __name__ == "__main__":
    asyncio.run(main())
