"""Database models."""

from .base import Base
from .order_model import OrderLineItemModel, OrderModel

__all__ = ["Base", "OrderModel", "OrderLineItemModel"]
