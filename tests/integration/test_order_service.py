"""Integration tests for OrderApplicationService."""
from decimal import Decimal
from uuid import uuid4

import pytest

from order_store.application.dtos import CreateOrderRequest, LineItemRequest
from order_store.application.services import OrderApplicationService
from order_store.data.strategies import repository_class
from order_store.domain.enums import OrderStatus
from order_store.domain.exceptions import (
    ConcurrencyConflictError,
    IllegalStateError,
    NotFoundError,
)
from order_store.settings import get_persistence_settings


@pytest.fixture
def service(test_session_factory, strategy) -> OrderApplicationService:
    return OrderApplicationService(session_factory=test_session_factory, strategy=strategy)


@pytest.fixture
def limited_retries(monkeypatch):
    """Allow exactly one retry after a conflict."""
    monkeypatch.setenv("ORDER_STORE_MAX_CONFLICT_RETRIES", "1")
    get_persistence_settings.cache_clear()
    yield
    get_persistence_settings.cache_clear()


def _request(*items, customer_id="customer-1") -> CreateOrderRequest:
    return CreateOrderRequest(
        customer_id=customer_id,
        items=[
            LineItemRequest(
                product_id=product_id,
                product_name=f"Product {product_id}",
                quantity=quantity,
                unit_price=Decimal(price),
            )
            for product_id, quantity, price in items
        ],
    )


class TestOrderApplicationService:
    """Test order use cases end to end."""

    @pytest.mark.asyncio
    async def test_create_and_get_order(self, service):
        created = await service.create_order(_request(("P1", 3, "100.00"), ("P2", 2, "50.00")))

        fetched = await service.get_order(created.id)

        assert fetched == created
        assert fetched.status == OrderStatus.DRAFT
        assert fetched.total_amount == Decimal("400.00")
        assert [item.product_id for item in fetched.line_items] == ["P1", "P2"]
        assert fetched.line_items[0].subtotal == Decimal("300.00")

    @pytest.mark.asyncio
    async def test_get_unknown_order(self, service):
        assert await service.get_order(uuid4()) is None

    @pytest.mark.asyncio
    async def test_list_orders(self, service):
        for index in range(3):
            await service.create_order(_request((f"P{index}", 1, "1.00")))

        first_page = await service.list_orders(page=0, size=2)
        second_page = await service.list_orders(page=1, size=2)
        default_page = await service.list_orders()

        assert len(first_page) == 2
        assert len(second_page) == 1
        assert [o.id for o in first_page + second_page] == [o.id for o in default_page]

    @pytest.mark.asyncio
    async def test_update_order(self, service):
        created = await service.create_order(_request(("P1", 1, "10.00")))

        def submit(order):
            order.add_line_item("P2", "Product P2", 2, Decimal("5.00"))
            order.submit()

        updated = await service.update_order(created.id, submit)

        assert updated.status == OrderStatus.SUBMITTED
        assert updated.total_amount == Decimal("20.00")
        assert updated.version == created.version + 1

    @pytest.mark.asyncio
    async def test_update_unknown_order(self, service):
        with pytest.raises(NotFoundError):
            await service.update_order(uuid4(), lambda order: order.submit())

    @pytest.mark.asyncio
    async def test_domain_errors_are_not_retried(self, service):
        created = await service.create_order(_request())
        calls = []

        def submit(order):
            calls.append(order.version)
            order.submit()

        with pytest.raises(IllegalStateError):
            await service.update_order(created.id, submit)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_conflict_is_retried(self, service, strategy, monkeypatch):
        created = await service.create_order(_request(("P1", 1, "10.00")))

        repository_cls = repository_class(strategy)
        original_save = repository_cls.save
        failures = [ConcurrencyConflictError(created.id, created.version, created.version + 1)]

        async def flaky_save(self, order):
            if failures:
                raise failures.pop()
            return await original_save(self, order)

        monkeypatch.setattr(repository_cls, "save", flaky_save)
        attempts = []

        def add_item(order):
            attempts.append(order.version)
            order.add_line_item("P2", "Product P2", 1, Decimal("1.00"))

        updated = await service.update_order(created.id, add_item)

        assert len(attempts) == 2
        # Reloaded before the second attempt, so the item is added once
        assert [item.product_id for item in updated.line_items] == ["P1", "P2"]
        assert updated.total_amount == Decimal("11.00")

    @pytest.mark.asyncio
    async def test_conflict_retries_are_bounded(
        self, limited_retries, test_session_factory, strategy, monkeypatch
    ):
        service = OrderApplicationService(session_factory=test_session_factory, strategy=strategy)
        created = await service.create_order(_request(("P1", 1, "10.00")))

        async def always_conflicts(self, order):
            raise ConcurrencyConflictError(order.id, order.version)

        monkeypatch.setattr(repository_class(strategy), "save", always_conflicts)
        attempts = []

        with pytest.raises(ConcurrencyConflictError):
            await service.update_order(created.id, lambda order: attempts.append(order.version))

        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_bulk_update_status_and_summary(self, service):
        for price in ("10.00", "20.00"):
            await service.create_order(_request(("P1", 1, price)))

        changed = await service.bulk_update_status(OrderStatus.DRAFT, OrderStatus.CANCELLED)
        summary = await service.get_summary()

        assert changed == 2
        assert summary.total_orders == 2
        assert summary.total_amount == Decimal("30.00")
        assert summary.average_amount == Decimal("15.00")
        assert summary.count_by_status == {OrderStatus.CANCELLED: 2}

    @pytest.mark.asyncio
    async def test_bulk_update_status_accepts_status_names(self, service):
        created = await service.create_order(_request(("P1", 1, "10.00")))

        changed = await service.bulk_update_status("DRAFT", "CANCELLED")

        assert changed == 1
        assert (await service.get_order(created.id)).status == OrderStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_bulk_update_status_rejects_unknown_name(self, service):
        created = await service.create_order(_request(("P1", 1, "10.00")))

        with pytest.raises(ValueError):
            await service.bulk_update_status("DRAFT", "ARCHIVED")

        assert (await service.get_order(created.id)).status == OrderStatus.DRAFT
