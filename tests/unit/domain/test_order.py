"""
Tests for the Order aggregate.

Pure in-memory behaviour: no repository, no database.
"""
from decimal import Decimal
from uuid import uuid4

import pytest

from order_store.domain.entities import Order, OrderLineItem
from order_store.domain.enums import OrderStatus
from order_store.domain.exceptions import (
    IllegalStateError,
    InvalidArgumentError,
    NotFoundError,
)


def _sum_of_subtotals(order: Order) -> Decimal:
    return sum((item.subtotal for item in order.line_items), Decimal("0.00"))


class TestOrderLineItem:
    """Test line item construction."""

    def test_create_computes_subtotal(self):
        item = OrderLineItem.create("P1", "Widget", 3, Decimal("100.00"))

        assert item.subtotal == Decimal("300.00")
        assert item.unit_price == Decimal("100.00")
        assert item.id is not None

    def test_create_quantizes_price_to_cents(self):
        item = OrderLineItem.create("P1", "Widget", 2, "19.995")

        assert item.unit_price == Decimal("20.00")
        assert item.subtotal == Decimal("40.00")

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected(self, quantity):
        with pytest.raises(InvalidArgumentError):
            OrderLineItem.create("P1", "Widget", quantity, Decimal("1.00"))

    @pytest.mark.parametrize("price", [Decimal("0"), Decimal("-5.00")])
    def test_non_positive_price_rejected(self, price):
        with pytest.raises(InvalidArgumentError):
            OrderLineItem.create("P1", "Widget", 1, price)

    def test_invalid_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            OrderLineItem.create("P1", "Widget", 0, Decimal("1.00"))

    def test_with_quantity_keeps_identity(self):
        item = OrderLineItem.create("P1", "Widget", 1, Decimal("2.50"))

        replacement = item.with_quantity(4)

        assert replacement.id == item.id
        assert replacement.quantity == 4
        assert replacement.subtotal == Decimal("10.00")
        assert item.quantity == 1


class TestOrderCreation:
    """Test Order factory."""

    def test_new_order_is_empty_draft(self):
        order = Order.create("customer-1")

        assert order.status == OrderStatus.DRAFT
        assert order.total_amount == Decimal("0.00")
        assert order.line_items == ()
        assert order.version == 0
        assert order.created_at == order.updated_at

    def test_line_items_are_read_only(self):
        order = Order.create("customer-1")
        order.add_line_item("P1", "Widget", 1, Decimal("1.00"))

        assert isinstance(order.line_items, tuple)
        with pytest.raises(AttributeError):
            order.line_items.append(None)


class TestOrderTotals:
    """Test that total_amount always equals the sum of subtotals."""

    def test_worked_example(self):
        order = Order.create("customer-1")
        p1 = order.add_line_item("P1", "Product 1", 3, Decimal("100.00"))
        order.add_line_item("P2", "Product 2", 2, Decimal("50.00"))
        assert order.total_amount == Decimal("400.00")

        order.update_line_item_quantity(p1.id, 5)
        assert order.total_amount == Decimal("600.00")

        order.remove_line_item(p1.id)
        assert order.total_amount == Decimal("100.00")
        assert len(order.line_items) == 1
        assert order.line_items[0].product_id == "P2"

    def test_total_invariant_after_mixed_mutations(self):
        order = Order.create("customer-1")
        a = order.add_line_item("A", "A", 1, "0.10")
        b = order.add_line_item("B", "B", 7, "3.33")
        order.add_line_item("C", "C", 2, "12.50")
        order.update_line_item_quantity(a.id, 9)
        order.remove_line_item(b.id)
        order.add_line_item("D", "D", 3, "0.01")

        assert order.total_amount == _sum_of_subtotals(order)
        assert order.total_amount == Decimal("25.93")

    def test_removing_last_item_resets_total(self):
        order = Order.create("customer-1")
        item = order.add_line_item("P1", "Widget", 2, Decimal("5.00"))

        order.remove_line_item(item.id)

        assert order.total_amount == Decimal("0.00")
        assert order.line_items == ()

    def test_mutation_touches_updated_at(self):
        order = Order.create("customer-1")
        before = order.updated_at

        order.add_line_item("P1", "Widget", 1, Decimal("1.00"))

        assert order.updated_at >= before


class TestOrderLineItemChanges:
    """Test update and removal preconditions."""

    def test_update_unknown_item_raises_not_found(self):
        order = Order.create("customer-1")
        order.add_line_item("P1", "Widget", 1, Decimal("1.00"))

        with pytest.raises(NotFoundError):
            order.update_line_item_quantity(uuid4(), 2)

    def test_update_to_zero_raises_before_lookup(self):
        order = Order.create("customer-1")

        with pytest.raises(InvalidArgumentError):
            order.update_line_item_quantity(uuid4(), 0)

    def test_failed_update_leaves_order_unchanged(self):
        order = Order.create("customer-1")
        item = order.add_line_item("P1", "Widget", 2, Decimal("3.00"))

        with pytest.raises(InvalidArgumentError):
            order.update_line_item_quantity(item.id, -3)

        assert order.line_items == (item,)
        assert order.total_amount == Decimal("6.00")

    def test_remove_unknown_item_raises_not_found(self):
        order = Order.create("customer-1")

        with pytest.raises(NotFoundError):
            order.remove_line_item(uuid4())

    def test_not_found_is_lookup_error(self):
        order = Order.create("customer-1")

        with pytest.raises(LookupError):
            order.remove_line_item(uuid4())


class TestOrderStateMachine:
    """Test submit/confirm transitions."""

    def test_submit_empty_order_rejected(self):
        order = Order.create("customer-1")

        with pytest.raises(IllegalStateError):
            order.submit()
        assert order.status == OrderStatus.DRAFT

    def test_submit_then_confirm(self):
        order = Order.create("customer-1")
        order.add_line_item("P1", "Widget", 1, Decimal("1.00"))

        order.submit()
        assert order.status == OrderStatus.SUBMITTED

        order.confirm()
        assert order.status == OrderStatus.CONFIRMED

    def test_confirm_draft_rejected(self):
        order = Order.create("customer-1")
        order.add_line_item("P1", "Widget", 1, Decimal("1.00"))

        with pytest.raises(IllegalStateError):
            order.confirm()

    def test_submit_twice_rejected(self):
        order = Order.create("customer-1")
        order.add_line_item("P1", "Widget", 1, Decimal("1.00"))
        order.submit()

        with pytest.raises(IllegalStateError):
            order.submit()

    def test_terminal_statuses(self):
        assert OrderStatus.COMPLETED.is_terminal
        assert OrderStatus.CANCELLED.is_terminal
        assert not OrderStatus.DRAFT.is_terminal
        assert not OrderStatus.SHIPPED.is_terminal


class TestKnownLineItems:
    """Test tracking of line item identities held by an order."""

    def test_added_items_are_known(self):
        order = Order.create("customer-1")
        item = order.add_line_item("P1", "Widget", 1, Decimal("1.00"))

        order.remove_line_item(item.id)

        assert order.known_line_item_ids == {item.id}

    def test_reconstituted_items_are_known(self):
        item = OrderLineItem.create("P1", "Widget", 1, Decimal("1.00"))
        original = Order.create("customer-1")

        order = Order.reconstitute(
            id=original.id,
            customer_id="customer-1",
            status="DRAFT",
            total_amount=item.subtotal,
            line_items=[item],
            created_at=original.created_at,
            updated_at=original.updated_at,
            version=3,
        )

        assert order.known_line_item_ids == {item.id}
