"""Shared fixtures: a throwaway SQLite database and test doubles."""

import os

# Must be set before anything imports app.core.config
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("EMAIL_BACKEND", "console")

from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.deps import get_broadcaster, get_email_sender
from app.core.security import hash_password
from app.db.base import Base, get_db
from app.main import app
from app.models.product import Product
from app.models.user import User, UserRole


class FakeBroadcaster:
    """Collects published events; set ``fail`` to make every publish raise."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def publish(self, event: str, payload: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("socket layer down")
        self.events.append((event, payload))

    def names(self) -> list[str]:
        return [event for event, _ in self.events]


class FakeEmailSender:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict[str, str]] = []

    async def send_invite_email(self, email: str, token: str, inviter_name: str) -> None:
        if self.fail:
            raise ConnectionError("smtp unreachable")
        self.sent.append({"email": email, "token": token, "inviter_name": inviter_name})


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File database so that separate sessions see each other's commits
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def broadcaster():
    return FakeBroadcaster()


@pytest.fixture
def email_sender():
    return FakeEmailSender()


async def _create_user(session_factory, name: str, email: str, role: UserRole) -> User:
    async with session_factory() as session:
        user = User(
            name=name,
            email=email,
            hashed_password=hash_password("password123"),
            role=role,
        )
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def admin(session_factory):
    return await _create_user(session_factory, "Farm Administrator", "admin@example.com", UserRole.ADMIN)


@pytest_asyncio.fixture
async def staff(session_factory):
    return await _create_user(session_factory, "Farm Staff", "staff@example.com", UserRole.STAFF)


@pytest.fixture
def make_product(session_factory):
    """Factory fixture: ``await make_product(quantity=5, price="10.00")``."""

    async def _make(
        name: str = "Premium Corn Feed",
        quantity: int = 10,
        price: str = "10.00",
        threshold: int = 2,
        is_active: bool = True,
        sku: str | None = None,
    ) -> Product:
        async with session_factory() as session:
            product = Product(
                name=name,
                category="Main",
                price=Decimal(price),
                quantity=quantity,
                threshold=threshold,
                is_active=is_active,
                sku=sku,
            )
            session.add(product)
            await session.commit()
            return product

    return _make


@pytest_asyncio.fixture
async def client(session_factory, email_sender, broadcaster):
    """HTTP client against the app, wired to the test database and doubles."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
