"""Domain entities."""

from .order import Order, OrderLineItem, check_quantity, utcnow

__all__ = ["Order", "OrderLineItem", "check_quantity", "utcnow"]
