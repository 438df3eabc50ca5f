"""Application DTOs."""

from .order_dto import (
    CreateOrderRequest,
    LineItemRequest,
    OrderDTO,
    OrderLineItemDTO,
    OrderSummaryDTO,
)

__all__ = [
    "CreateOrderRequest",
    "LineItemRequest",
    "OrderDTO",
    "OrderLineItemDTO",
    "OrderSummaryDTO",
]
