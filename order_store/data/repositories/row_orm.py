"""
Row-projected Order repository on the SQLAlchemy ORM.

Rows are ORM instances, but the ``OrderModel.line_items`` relationship is
never loaded: line items are queried and written as independent rows. The
header is only ever changed through ORM-enabled UPDATE statements, which
skip the mapper's version check, so the policy stays "last write wins".
"""
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select, update

from order_store.domain.entities.order import Order, OrderLineItem, check_quantity, utcnow
from order_store.domain.exceptions import NotFoundError

from ..mappers import OrderLineItemMapper
from ..models.order_model import OrderLineItemModel, OrderModel
from .row_sql import RowSqlOrderRepository


logger = logging.getLogger(__name__)


class RowOrmOrderRepository(RowSqlOrderRepository):
    """
    ORM flavour of the row-projected policy.

    Reporting, bulk status changes and projections are the same
    single-statement queries as the Core flavour; row writes go through the
    session's unit of work instead.
    """

    async def update_line_item_quantity(
        self,
        order_id: UUID,
        line_item_id: UUID,
        new_quantity: int,
    ) -> None:
        check_quantity(new_quantity)

        item = await self._get_line_item(order_id, line_item_id)
        item.quantity = new_quantity
        item.subtotal = Decimal(str(item.unit_price)) * new_quantity
        await self._session.flush()

        await self._refresh_header(order_id, updated_at=utcnow())

    async def remove_line_item(self, order_id: UUID, line_item_id: UUID) -> None:
        item = await self._get_line_item(order_id, line_item_id)
        await self._session.delete(item)
        await self._session.flush()
        logger.info(f"Removed line item {line_item_id} from order {order_id}")

        await self._refresh_header(order_id, updated_at=utcnow())

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    async def _get_line_item(self, order_id: UUID, line_item_id: UUID) -> OrderLineItemModel:
        item = await self._session.scalar(
            select(OrderLineItemModel)
            .where(
                OrderLineItemModel.id == line_item_id,
                OrderLineItemModel.order_id == order_id,
            )
            .execution_options(populate_existing=True)
        )
        if item is None:
            raise NotFoundError(f"LineItem not found: {line_item_id}")
        return item

    async def _fetch_headers(
        self,
        *criteria,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Any]:
        stmt = (
            select(OrderModel)
            .order_by(OrderModel.created_at, OrderModel.id)
            .execution_options(populate_existing=True)
        )
        if criteria:
            stmt = stmt.where(*criteria)
        if limit is not None:
            stmt = stmt.limit(limit).offset(offset)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def _load_line_item_rows(self, order_ids: Sequence[UUID]) -> Dict[UUID, List[Any]]:
        grouped: Dict[UUID, List[Any]] = defaultdict(list)
        if not order_ids:
            return grouped

        result = await self._session.execute(
            select(OrderLineItemModel)
            .where(OrderLineItemModel.order_id.in_(order_ids))
            .order_by(OrderLineItemModel.order_id, OrderLineItemModel.position)
            .execution_options(populate_existing=True)
        )
        for item in result.scalars():
            grouped[item.order_id].append(item)
        return grouped

    async def _insert_header(self, values: Dict[str, Any]) -> None:
        self._session.add(OrderModel(**values))
        await self._session.flush()

    async def _insert_line_items(
        self,
        order_id: UUID,
        items: Sequence[OrderLineItem],
        start: int = 0,
    ) -> None:
        self._session.add_all(
            OrderLineItemMapper.to_persistence(item, order_id, start + offset)
            for offset, item in enumerate(items)
        )
        await self._session.flush()

    async def _reconcile_line_items(self, order: Order) -> None:
        stored = (await self._load_line_item_rows([order.id])).get(order.id, [])
        stored_by_id = {model.id: model for model in stored}
        wanted_ids = {item.id for item in order.line_items}

        # Rows the order never knew about belong to another writer
        for item_id, model in stored_by_id.items():
            if item_id in order.known_line_item_ids and item_id not in wanted_ids:
                await self._session.delete(model)

        next_position = max((model.position for model in stored), default=-1) + 1
        for item in order.line_items:
            model = stored_by_id.get(item.id)
            if model is None:
                self._session.add(OrderLineItemMapper.to_persistence(item, order.id, next_position))
                next_position += 1
            else:
                OrderLineItemMapper.update_persistence(item, model, model.position)

        await self._session.flush()

    async def _refresh_header(
        self,
        order_id: UUID,
        updated_at,
        bump_version: bool = True,
        **values: Any,
    ) -> None:
        subtotal_sum = (
            select(func.coalesce(func.sum(OrderLineItemModel.subtotal), 0))
            .where(OrderLineItemModel.order_id == order_id)
            .scalar_subquery()
        )
        values["total_amount"] = subtotal_sum
        values["updated_at"] = updated_at
        if bump_version:
            values["version"] = OrderModel.version + 1

        await self._session.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
