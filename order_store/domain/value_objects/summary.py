"""Aggregate report read model."""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Dict, Iterable, Mapping, Union

from ..enums import OrderStatus
from .money import CENTS, ZERO, to_currency

if TYPE_CHECKING:
    from ..entities.order import Order


@dataclass(frozen=True)
class OrderAggregateSummary:
    """
    Count / sum / average / group-by-status over every stored order.

    Derived on demand, never persisted. Both constructors apply the same
    rounding rule, so an in-memory reduction and a store-side reduction
    over the same data compare equal.
    """
    total_orders: int
    total_amount: Decimal
    average_amount: Decimal
    count_by_status: Dict[OrderStatus, int] = field(default_factory=dict)

    @classmethod
    def from_totals(
        cls,
        total_orders: int,
        total_amount: Union[Decimal, int, str, None],
        count_by_status: Mapping[Union[OrderStatus, str], int],
    ) -> "OrderAggregateSummary":
        """
        Build a summary from already-reduced totals.

        Args:
            total_orders: Number of orders
            total_amount: Sum of order totals (None is treated as zero)
            count_by_status: Order count keyed by status or status name

        Returns:
            OrderAggregateSummary with the average rounded HALF_UP to cents
        """
        total = to_currency(total_amount) if total_amount is not None else ZERO
        if total_orders > 0:
            average = (total / Decimal(total_orders)).quantize(CENTS, rounding=ROUND_HALF_UP)
        else:
            average = ZERO

        counts = {
            OrderStatus(status): int(count)
            for status, count in count_by_status.items()
            if count
        }
        return cls(
            total_orders=int(total_orders),
            total_amount=total,
            average_amount=average,
            count_by_status=counts,
        )

    @classmethod
    def from_orders(cls, orders: Iterable["Order"]) -> "OrderAggregateSummary":
        """Reduce fully materialized aggregates in memory."""
        total_orders = 0
        total_amount = ZERO
        counts: Dict[OrderStatus, int] = {}
        for order in orders:
            total_orders += 1
            total_amount += order.total_amount
            counts[order.status] = counts.get(order.status, 0) + 1
        return cls.from_totals(total_orders, total_amount, counts)
