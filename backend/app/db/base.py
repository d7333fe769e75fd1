"""Declarative base, async engine/session factory and the request session dependency."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings


class Base(DeclarativeBase):
    pass


engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)

# expire_on_commit=False: committed objects are still serialised after commit
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as session:
        yield session


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back on any error.

    Every write of an operation must happen inside one ``atomic`` block;
    nothing is visible to other sessions until the block exits cleanly.
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise
