"""Pytest configuration and shared fixtures."""

from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from order_store.data.models.base import Base
from order_store.data.strategies import PersistenceStrategy
from order_store.data.uow import UnitOfWork
from order_store.domain.entities import Order


# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session_factory(test_engine):
    """Create test session factory (same options as get_session_factory)."""
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    yield session_factory


@pytest.fixture(params=list(PersistenceStrategy), ids=lambda s: s.value)
def strategy(request) -> PersistenceStrategy:
    """Every persistence strategy in turn."""
    return request.param


@pytest.fixture(
    params=[PersistenceStrategy.ROW_ORM, PersistenceStrategy.ROW_SQL],
    ids=lambda s: s.value,
)
def row_strategy(request) -> PersistenceStrategy:
    """Row-projected strategies only."""
    return request.param


@pytest.fixture
def uow_factory(test_session_factory, strategy):
    """Build a fresh UnitOfWork bound to the current strategy."""

    def _factory() -> UnitOfWork:
        return UnitOfWork(test_session_factory, strategy)

    return _factory


@pytest.fixture
def persist(uow_factory):
    """Save an order in its own unit of work and return the stored view."""

    async def _persist(order: Order) -> Order:
        async with uow_factory() as uow:
            saved = await uow.orders.save(order)
            await uow.commit()
        return saved

    return _persist


@pytest.fixture
def load(uow_factory):
    """Read an order back in a fresh unit of work."""

    async def _load(order_id) -> Optional[Order]:
        async with uow_factory() as uow:
            return await uow.orders.find_by_id(order_id)

    return _load


@pytest.fixture
def make_order():
    """Build a DRAFT order holding ``(product_id, quantity, unit_price)`` items."""

    def _make_order(*items, customer_id: str = "customer-1") -> Order:
        order = Order.create(customer_id)
        for product_id, quantity, unit_price in items:
            order.add_line_item(product_id, f"Product {product_id}", quantity, Decimal(unit_price))
        return order

    return _make_order
