"""Domain value objects."""

from .money import CENTS, ZERO, to_currency
from .projections import OrderHeader, OrderProjection
from .summary import OrderAggregateSummary

__all__ = [
    "CENTS",
    "ZERO",
    "to_currency",
    "OrderAggregateSummary",
    "OrderHeader",
    "OrderProjection",
]
