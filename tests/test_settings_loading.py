"""
Test settings loading and strategy wiring.

Verifies that configuration comes from the environment, that every
strategy key resolves to a repository, and that the database helpers build
a usable engine.
"""
from __future__ import annotations

import logging
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import inspect

from order_store.data.repositories import (
    AggregateOrmOrderRepository,
    AggregateSqlOrderRepository,
    RowOrmOrderRepository,
    RowSqlOrderRepository,
)
from order_store.data.strategies import PersistenceStrategy, repository_class
from order_store.data.uow import UnitOfWork
from order_store.domain.entities import Order
from order_store.domain.repositories import OrderRepository, OrderRowRepository
from order_store.infrastructure.database import create_engine, get_session_factory, init_database
from order_store.infrastructure.logging import get_logger
from order_store.settings import PersistenceSettings, get_persistence_settings


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    for key in ("ORDER_STORE_STRATEGY", "ORDER_STORE_DEFAULT_PAGE_SIZE", "ORDER_STORE_MAX_CONFLICT_RETRIES"):
        monkeypatch.delenv(key, raising=False)
    get_persistence_settings.cache_clear()
    yield
    get_persistence_settings.cache_clear()


def test_persistence_defaults():
    settings = PersistenceSettings(_env_file=None)

    assert settings.strategy == PersistenceStrategy.AGGREGATE_ORM
    assert settings.default_page_size == 20
    assert settings.max_conflict_retries == 3


def test_persistence_settings_from_environment(monkeypatch):
    monkeypatch.setenv("ORDER_STORE_STRATEGY", "row_sql")
    monkeypatch.setenv("ORDER_STORE_DEFAULT_PAGE_SIZE", "50")

    settings = get_persistence_settings()

    assert settings.strategy is PersistenceStrategy.ROW_SQL
    assert settings.default_page_size == 50
    assert get_persistence_settings() is settings


@pytest.mark.parametrize("key,value", [
    ("ORDER_STORE_STRATEGY", "mongo"),
    ("ORDER_STORE_DEFAULT_PAGE_SIZE", "0"),
    ("ORDER_STORE_MAX_CONFLICT_RETRIES", "-1"),
])
def test_invalid_settings_rejected(monkeypatch, key, value):
    monkeypatch.setenv(key, value)

    with pytest.raises(ValidationError):
        PersistenceSettings(_env_file=None)


@pytest.mark.parametrize("key,expected", [
    ("aggregate_orm", AggregateOrmOrderRepository),
    ("aggregate_sql", AggregateSqlOrderRepository),
    ("row_orm", RowOrmOrderRepository),
    ("row_sql", RowSqlOrderRepository),
])
def test_every_strategy_key_resolves(key, expected):
    repository_cls = repository_class(key)

    assert repository_cls is expected
    assert issubclass(repository_cls, OrderRepository)


def test_row_commands_only_on_row_strategies():
    assert issubclass(RowSqlOrderRepository, OrderRowRepository)
    assert issubclass(RowOrmOrderRepository, OrderRowRepository)
    assert not issubclass(AggregateOrmOrderRepository, OrderRowRepository)
    assert not issubclass(AggregateSqlOrderRepository, OrderRowRepository)


def test_unknown_strategy_key():
    with pytest.raises(ValueError):
        repository_class("mongo")


def test_unit_of_work_uses_configured_strategy(monkeypatch):
    monkeypatch.setenv("ORDER_STORE_STRATEGY", "row_orm")

    uow = UnitOfWork(session_factory=None)

    assert uow.strategy is PersistenceStrategy.ROW_ORM


def test_unit_of_work_requires_context():
    uow = UnitOfWork(session_factory=None, strategy="aggregate_sql")

    with pytest.raises(RuntimeError):
        uow.orders


@pytest.mark.asyncio
async def test_init_database_creates_tables():
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    try:
        await init_database(engine)

        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

        assert {"orders", "order_line_items"} <= set(tables)

        order = Order.create("customer-1")
        order.add_line_item("P1", "Widget", 2, Decimal("3.00"))

        async with UnitOfWork(get_session_factory(engine), "aggregate_orm") as uow:
            await uow.orders.save(order)
            await uow.commit()

            loaded = await uow.orders.find_by_id(order.id)
            assert loaded.total_amount == Decimal("6.00")
            # Order row plus its line item
            assert len(uow.session.identity_map) == 2

            uow.invalidate()
            assert len(uow.session.identity_map) == 0

            # Reads keep working against the emptied persistence context
            assert (await uow.orders.find_by_id(order.id)).line_items == loaded.line_items
    finally:
        await engine.dispose()


def test_get_logger_shares_one_package_handler():
    first = get_logger("order_store.data.repositories.row_sql")
    second = get_logger("order_store.application.services.order_service")
    package_logger = logging.getLogger("order_store")
    handlers = list(package_logger.handlers)

    get_logger("order_store.data.uow")

    assert package_logger.handlers == handlers
    assert len(handlers) >= 1
    assert first.handlers == [] and second.handlers == []
    assert first.propagate and second.propagate
    assert first.getEffectiveLevel() <= logging.INFO
