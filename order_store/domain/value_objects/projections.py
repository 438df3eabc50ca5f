"""Lightweight read projections returned by row-projected strategies."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from ..enums import OrderStatus


@dataclass(frozen=True)
class OrderHeader:
    """Order root row without its line items."""
    id: UUID
    customer_id: str
    status: OrderStatus
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
    version: int


@dataclass(frozen=True)
class OrderProjection:
    """Per-order listing row: identity, customer, item count and total."""
    id: UUID
    customer_id: str
    item_count: int
    total_amount: Decimal
