"""Domain layer - pure domain models and interfaces."""

from .entities import Order, OrderLineItem
from .enums import OrderStatus
from .exceptions import (
    ConcurrencyConflictError,
    IllegalStateError,
    InvalidArgumentError,
    NotFoundError,
    OrderStoreError,
)
from .repositories import OrderRepository, OrderRowRepository
from .value_objects import OrderAggregateSummary, OrderHeader, OrderProjection

__all__ = [
    "ConcurrencyConflictError",
    "IllegalStateError",
    "InvalidArgumentError",
    "NotFoundError",
    "Order",
    "OrderAggregateSummary",
    "OrderHeader",
    "OrderLineItem",
    "OrderProjection",
    "OrderRepository",
    "OrderRowRepository",
    "OrderStatus",
    "OrderStoreError",
]
