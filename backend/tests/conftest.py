"""
Pytest configuration and shared test fixtures.

Every test gets a fresh in-memory SQLite database with the full schema, plus
factories for users and products. API tests run the FastAPI application over
httpx's ASGI transport with the database dependency pointed at the same
in-memory database.
"""

import os

# Settings are cached on first use, so the test environment must be in place
# before anything from marketplace is imported.
os.environ["APP_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["APP_ENVIRONMENT"] = "test"
os.environ["APP_SECRET_KEY"] = "test-secret-key-for-the-order-suite-0123456789"
os.environ["APP_RATE_LIMIT_ENABLED"] = "false"
os.environ["APP_LOG_LEVEL"] = "WARNING"

import uuid
from decimal import Decimal
from typing import AsyncGenerator, Awaitable, Callable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from marketplace.core.security import create_access_token
from marketplace.database import models  # noqa: F401  registers tables
from marketplace.database.base import Base
from marketplace.database.connection import create_engine, get_db
from marketplace.database.models.product import Product
from marketplace.database.models.user import User, UserRole, UserStatus
from marketplace.schemas.auth import Actor
from marketplace.services.notifications.service import (
    InMemoryNotificationStore,
    NotificationService,
)
from marketplace.services.orders.service import OrderService


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Create an in-memory database engine with all tables.

    Yields:
        AsyncEngine: Engine bound to a single shared in-memory connection
    """
    engine = create_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a database session for repository and service tests.

    Yields:
        AsyncSession: Session on the per-test database
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """
    Factory creating committed users.

    Example:
        supplier = await make_user(UserRole.SUPPLIER)
    """

    async def _make_user(
        role: UserRole = UserRole.CUSTOMER,
        status: UserStatus = UserStatus.ACTIVE,
        full_name: str | None = None,
    ) -> User:
        suffix = uuid.uuid4().hex[:8]
        user = User(
            full_name=full_name or f"{role.value.title()} {suffix}",
            email=f"{role.value}-{suffix}@example.com",
            role=role,
            status=status,
        )
        session.add(user)
        await session.commit()
        return user

    return _make_user


@pytest.fixture
def make_product(session: AsyncSession) -> Callable[..., Awaitable[Product]]:
    """Factory creating committed products."""

    async def _make_product(
        name: str = "Woven Basket",
        price: Decimal = Decimal("100.00"),
    ) -> Product:
        product = Product(
            name=name,
            description="Handmade",
            category="Baskets",
            artisan_name="Amina",
            price=price,
            quantity=10,
            image="https://cdn.example.com/basket.jpg",
        )
        session.add(product)
        await session.commit()
        return product

    return _make_product


def actor_for(user: User) -> Actor:
    """Actor for a stored user."""
    return Actor(id=user.id, role=user.role)


def auth_headers(user: User) -> dict[str, str]:
    """Bearer header carrying a valid token for ``user``."""
    token = create_access_token(user.id, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def notification_store() -> InMemoryNotificationStore:
    return InMemoryNotificationStore()


@pytest.fixture
def order_service(
    session: AsyncSession, notification_store: InMemoryNotificationStore
) -> OrderService:
    """
    Create OrderService on the per-test database.

    Returns:
        OrderService: Service with an in-memory notification store
    """
    return OrderService(
        session, notification_service=NotificationService(notification_store)
    )


@pytest.fixture
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an asynchronous test client for the FastAPI application.

    The request database dependency commits on success and rolls back on
    error, like the production dependency, against the per-test database.

    Yields:
        AsyncClient: Client talking to the app in-process
    """
    from marketplace.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
