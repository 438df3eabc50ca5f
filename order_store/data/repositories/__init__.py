"""Order repository implementations."""

from .aggregate_orm import AggregateOrmOrderRepository
from .aggregate_sql import AggregateSqlOrderRepository
from .row_orm import RowOrmOrderRepository
from .row_sql import RowSqlOrderRepository

__all__ = [
    "AggregateOrmOrderRepository",
    "AggregateSqlOrderRepository",
    "RowOrmOrderRepository",
    "RowSqlOrderRepository",
]
