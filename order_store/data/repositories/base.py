"""Helpers shared by the SQLAlchemy-backed order repositories."""

from collections import defaultdict
from typing import Any, Dict, List, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from order_store.domain.entities.order import Order
from order_store.domain.exceptions import InvalidArgumentError
from order_store.domain.value_objects import OrderAggregateSummary

from ..mappers import OrderMapper
from ..models.order_model import OrderLineItemModel, OrderModel

orders_table = OrderModel.__table__
line_items_table = OrderLineItemModel.__table__


def validate_page(page: int, size: int) -> None:
    """
    Raises:
        InvalidArgumentError: If page < 0 or size <= 0
    """
    if page < 0:
        raise InvalidArgumentError(f"Page index must be >= 0, got: {page}")
    if size <= 0:
        raise InvalidArgumentError(f"Page size must be > 0, got: {size}")


class SqlAlchemyRepositoryBase:
    """Session holder plus the Core queries every strategy reuses."""

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy async session (transaction owned by the caller)
        """
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def _load_line_item_rows(self, order_ids: Sequence[UUID]) -> Dict[UUID, List[Any]]:
        """Fetch line item rows for many orders in one query, grouped by order."""
        grouped: Dict[UUID, List[Any]] = defaultdict(list)
        if not order_ids:
            return grouped

        result = await self._session.execute(
            select(line_items_table)
            .where(line_items_table.c.order_id.in_(order_ids))
            .order_by(line_items_table.c.order_id, line_items_table.c.position)
        )
        for row in result:
            grouped[row.order_id].append(row)
        return grouped

    async def _assemble(self, order_rows: Sequence[Any]) -> List[Order]:
        """Hand-assemble aggregates from header rows (one extra query total)."""
        items_by_order = await self._load_line_item_rows([row.id for row in order_rows])
        return [OrderMapper.to_domain(row, items_by_order.get(row.id, [])) for row in order_rows]

    async def _summarize_in_store(self) -> OrderAggregateSummary:
        """COUNT / SUM and GROUP BY status, reduced by the database."""
        totals = (
            await self._session.execute(
                select(
                    func.count(orders_table.c.id).label("total_orders"),
                    func.coalesce(func.sum(orders_table.c.total_amount), 0).label("total_amount"),
                )
            )
        ).one()

        by_status = await self._session.execute(
            select(orders_table.c.status, func.count(orders_table.c.id).label("cnt"))
            .group_by(orders_table.c.status)
        )

        return OrderAggregateSummary.from_totals(
            total_orders=totals.total_orders,
            total_amount=totals.total_amount,
            count_by_status={row.status: row.cnt for row in by_status},
        )
