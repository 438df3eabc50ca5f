"""Repository interfaces."""

from .order_repository import LineItemInput, OrderRepository, OrderRowRepository

__all__ = ["LineItemInput", "OrderRepository", "OrderRowRepository"]
