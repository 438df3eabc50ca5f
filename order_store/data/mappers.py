"""Static mappers for domain entities ↔ database rows.

``to_domain`` accepts either an ORM model instance or a Core ``Row``;
both expose the columns as attributes.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from order_store.domain.entities.order import Order, OrderLineItem
from order_store.domain.enums import OrderStatus
from order_store.domain.value_objects import OrderHeader, OrderProjection, to_currency

from .models.order_model import OrderLineItemModel, OrderModel


def _amount(value: Any) -> Decimal:
    # SQLite hands NUMERIC back through float; re-quantize to cents
    return to_currency(Decimal(str(value)))


class OrderLineItemMapper:
    """Static mapper for OrderLineItem ↔ order_line_items rows."""

    @staticmethod
    def to_domain(row: Any) -> OrderLineItem:
        """Convert an ORM model or Core row to a domain value object."""
        return OrderLineItem(
            id=row.id,
            product_id=row.product_id,
            product_name=row.product_name,
            quantity=int(row.quantity),
            unit_price=_amount(row.unit_price),
            subtotal=_amount(row.subtotal),
        )

    @staticmethod
    def to_values(entity: OrderLineItem, order_id, position: int) -> Dict[str, Any]:
        """Column values for a Core INSERT."""
        return {
            "id": entity.id,
            "order_id": order_id,
            "position": position,
            "product_id": entity.product_id,
            "product_name": entity.product_name,
            "quantity": entity.quantity,
            "unit_price": entity.unit_price,
            "subtotal": entity.subtotal,
        }

    @staticmethod
    def to_persistence(entity: OrderLineItem, order_id, position: int) -> OrderLineItemModel:
        """Convert domain value object to ORM model."""
        return OrderLineItemModel(**OrderLineItemMapper.to_values(entity, order_id, position))

    @staticmethod
    def update_persistence(entity: OrderLineItem, model: OrderLineItemModel, position: int) -> None:
        """Copy columns onto an existing ORM model.

        Assigning an equal value leaves no net change, so untouched rows
        produce no UPDATE at flush.
        """
        model.position = position
        model.product_id = entity.product_id
        model.product_name = entity.product_name
        model.quantity = entity.quantity
        model.unit_price = entity.unit_price
        model.subtotal = entity.subtotal


class OrderMapper:
    """Static mapper for Order ↔ orders rows with nested line items."""

    @staticmethod
    def to_domain(row: Any, line_items: Optional[Iterable[Any]] = None) -> Order:
        """Convert a stored order (and its line item rows) to the aggregate.

        Args:
            row: OrderModel instance or Core row from the orders table
            line_items: Line item rows; defaults to ``row.line_items``

        Returns:
            Order domain aggregate
        """
        if line_items is None:
            line_items = row.line_items

        return Order.reconstitute(
            id=row.id,
            customer_id=row.customer_id,
            status=OrderStatus(row.status),
            total_amount=_amount(row.total_amount),
            line_items=[OrderLineItemMapper.to_domain(item) for item in line_items],
            created_at=row.created_at,
            updated_at=row.updated_at,
            version=row.version,
        )

    @staticmethod
    def to_header(row: Any) -> OrderHeader:
        return OrderHeader(
            id=row.id,
            customer_id=row.customer_id,
            status=OrderStatus(row.status),
            total_amount=_amount(row.total_amount),
            created_at=row.created_at,
            updated_at=row.updated_at,
            version=row.version,
        )

    @staticmethod
    def to_projection(row: Any) -> OrderProjection:
        return OrderProjection(
            id=row.id,
            customer_id=row.customer_id,
            item_count=int(row.item_count),
            total_amount=_amount(row.total_amount),
        )

    @staticmethod
    def to_values(entity: Order, version: Optional[int] = None) -> Dict[str, Any]:
        """Column values for a Core INSERT/UPDATE of the orders table."""
        return {
            "id": entity.id,
            "customer_id": entity.customer_id,
            "status": entity.status.value,
            "total_amount": entity.total_amount,
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
            "version": entity.version if version is None else version,
        }

    @staticmethod
    def to_persistence(entity: Order) -> OrderModel:
        """Convert domain aggregate to ORM model (with nested items)."""
        model = OrderModel(**OrderMapper.to_values(entity))
        model.line_items = [
            OrderLineItemMapper.to_persistence(item, entity.id, position)
            for position, item in enumerate(entity.line_items)
        ]
        return model

    @staticmethod
    def update_persistence(entity: Order, model: OrderModel, version: int) -> OrderModel:
        """Update a loaded ORM model from the aggregate.

        The line item collection is replaced wholesale: rows whose identity
        is still present are updated in place, new identities are inserted
        and missing ones are deleted as orphans.

        Args:
            entity: Order domain aggregate
            model: OrderModel loaded with its line items
            version: Version to store

        Returns:
            Updated OrderModel instance
        """
        model.customer_id = entity.customer_id
        model.status = entity.status.value
        model.total_amount = entity.total_amount
        model.updated_at = entity.updated_at
        model.version = version

        existing = {item.id: item for item in model.line_items}
        replacement: List[OrderLineItemModel] = []
        for position, item in enumerate(entity.line_items):
            item_model = existing.get(item.id)
            if item_model is None:
                item_model = OrderLineItemMapper.to_persistence(item, entity.id, position)
            else:
                OrderLineItemMapper.update_persistence(item, item_model, position)
            replacement.append(item_model)
        model.line_items = replacement

        return model
