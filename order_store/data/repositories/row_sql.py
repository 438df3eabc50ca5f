"""
Row-projected Order repository on SQLAlchemy Core.

Works on rows directly: root-only changes are one narrow UPDATE, line item
changes touch only those rows, and ``total_amount`` is recomputed inside
the database with ``COALESCE(SUM(subtotal), 0)``. No version check is made;
the last committed write wins.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, func, insert, select, update

from order_store.domain.entities.order import Order, OrderLineItem, check_quantity, utcnow
from order_store.domain.enums import OrderStatus
from order_store.domain.exceptions import NotFoundError
from order_store.domain.repositories import LineItemInput, OrderRowRepository
from order_store.domain.value_objects import (
    ZERO,
    OrderAggregateSummary,
    OrderHeader,
    OrderProjection,
)

from ..mappers import OrderLineItemMapper, OrderMapper
from .base import SqlAlchemyRepositoryBase, line_items_table, orders_table, validate_page


logger = logging.getLogger(__name__)


class RowSqlOrderRepository(SqlAlchemyRepositoryBase, OrderRowRepository):
    """Hand-written SQL implementation of the row-projected policy."""

    supports_optimistic_locking = False

    # =========================================================================
    # AGGREGATE CONTRACT
    # =========================================================================

    async def save(self, order: Order) -> Order:
        """
        Persist the aggregate by reconciling rows.

        Unchanged line items are not written. The header is written with a
        single UPDATE that also recomputes the total in the database.
        """
        logger.info(f"Saving order: {order.id}")

        if await self._order_exists(order.id):
            await self._reconcile_line_items(order)
            await self._refresh_header(
                order.id,
                updated_at=order.updated_at,
                customer_id=order.customer_id,
                status=order.status.value,
            )
        else:
            values = OrderMapper.to_values(order)
            values["total_amount"] = ZERO
            await self._insert_header(values)
            await self._insert_line_items(order.id, order.line_items)
            await self._refresh_header(order.id, updated_at=order.updated_at, bump_version=False)
            logger.info(f"✅ Created order: {order.id}")

        saved = await self.find_by_id(order.id)
        if saved is None:
            raise NotFoundError(f"Order disappeared during save: {order.id}")
        return saved

    async def find_by_id(self, order_id: UUID) -> Optional[Order]:
        logger.debug(f"Getting order: {order_id}")
        headers = await self._fetch_headers(orders_table.c.id == order_id)
        if not headers:
            return None
        orders = await self._assemble(headers)
        return orders[0]

    async def find_all(self) -> List[Order]:
        return await self._assemble(await self._fetch_headers())

    async def find_all_paged(self, page: int, size: int) -> List[Order]:
        validate_page(page, size)
        return await self._assemble(await self._fetch_headers(limit=size, offset=page * size))

    async def compute_aggregate_summary(self) -> OrderAggregateSummary:
        return await self._summarize_in_store()

    async def bulk_update_status(self, from_status: OrderStatus, to_status: OrderStatus) -> int:
        """
        One ``UPDATE ... WHERE status = :from``.

        Bypasses the ``submit``/``confirm`` transition checks by design.
        """
        from_status, to_status = OrderStatus(from_status), OrderStatus(to_status)
        result = await self._session.execute(
            update(orders_table)
            .where(orders_table.c.status == from_status.value)
            .values(
                status=to_status.value,
                updated_at=utcnow(),
                version=orders_table.c.version + 1,
            )
        )
        logger.info(
            f"Bulk status update {from_status.value} -> {to_status.value}: {result.rowcount} order(s)"
        )
        return result.rowcount

    async def find_by_product_id(self, product_id: str) -> List[Order]:
        matching_ids = (
            select(line_items_table.c.order_id)
            .where(line_items_table.c.product_id == product_id)
            .distinct()
        )
        return await self._assemble(await self._fetch_headers(orders_table.c.id.in_(matching_ids)))

    async def delete_all(self) -> None:
        logger.info("Deleting all orders")
        await self._session.execute(delete(line_items_table))
        await self._session.execute(delete(orders_table))

    # =========================================================================
    # ROW-LEVEL COMMANDS
    # =========================================================================

    async def create_order(self, customer_id: str) -> UUID:
        order = Order.create(customer_id)
        await self._insert_header(OrderMapper.to_values(order))
        logger.info(f"✅ Created order: {order.id}")
        return order.id

    async def create_order_with_items(
        self,
        customer_id: str,
        items: Sequence[LineItemInput],
    ) -> UUID:
        line_items = [OrderLineItem.create(*item) for item in items]
        order_id = await self.create_order(customer_id)
        if line_items:
            await self._insert_line_items(order_id, line_items)
            await self._refresh_header(order_id, updated_at=utcnow(), bump_version=False)
        return order_id

    async def add_line_item(
        self,
        order_id: UUID,
        product_id: str,
        product_name: str,
        quantity: int,
        unit_price: Decimal,
    ) -> UUID:
        item = OrderLineItem.create(product_id, product_name, quantity, unit_price)
        await self._require_order(order_id)

        await self._insert_line_items(order_id, [item], start=await self._next_position(order_id))
        await self._refresh_header(order_id, updated_at=utcnow())
        return item.id

    async def update_line_item_quantity(
        self,
        order_id: UUID,
        line_item_id: UUID,
        new_quantity: int,
    ) -> None:
        check_quantity(new_quantity)

        unit_price = await self._session.scalar(
            select(line_items_table.c.unit_price).where(
                line_items_table.c.id == line_item_id,
                line_items_table.c.order_id == order_id,
            )
        )
        if unit_price is None:
            raise NotFoundError(f"LineItem not found: {line_item_id}")

        await self._session.execute(
            update(line_items_table)
            .where(line_items_table.c.id == line_item_id)
            .values(
                quantity=new_quantity,
                subtotal=Decimal(str(unit_price)) * new_quantity,
            )
        )
        await self._refresh_header(order_id, updated_at=utcnow())

    async def remove_line_item(self, order_id: UUID, line_item_id: UUID) -> None:
        result = await self._session.execute(
            delete(line_items_table).where(
                line_items_table.c.id == line_item_id,
                line_items_table.c.order_id == order_id,
            )
        )
        if result.rowcount == 0:
            raise NotFoundError(f"LineItem not found: {line_item_id}")
        await self._refresh_header(order_id, updated_at=utcnow())

    async def update_status(self, order_id: UUID, status: OrderStatus) -> None:
        result = await self._session.execute(
            update(orders_table)
            .where(orders_table.c.id == order_id)
            .values(
                status=OrderStatus(status).value,
                updated_at=utcnow(),
                version=orders_table.c.version + 1,
            )
        )
        if result.rowcount == 0:
            raise NotFoundError(f"Order not found: {order_id}")

    async def find_order_only(self, order_id: UUID) -> Optional[OrderHeader]:
        headers = await self._fetch_headers(orders_table.c.id == order_id)
        return OrderMapper.to_header(headers[0]) if headers else None

    async def find_order_projections(self) -> List[OrderProjection]:
        result = await self._session.execute(
            select(
                orders_table.c.id,
                orders_table.c.customer_id,
                func.count(line_items_table.c.id).label("item_count"),
                orders_table.c.total_amount,
            )
            .select_from(
                orders_table.outerjoin(
                    line_items_table, line_items_table.c.order_id == orders_table.c.id
                )
            )
            .group_by(
                orders_table.c.id,
                orders_table.c.customer_id,
                orders_table.c.total_amount,
                orders_table.c.created_at,
            )
            .order_by(orders_table.c.created_at, orders_table.c.id)
        )
        return [OrderMapper.to_projection(row) for row in result]

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    async def _fetch_headers(
        self,
        *criteria,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Any]:
        """Header rows matching ``criteria``, oldest first."""
        stmt = select(orders_table).order_by(orders_table.c.created_at, orders_table.c.id)
        if criteria:
            stmt = stmt.where(*criteria)
        if limit is not None:
            stmt = stmt.limit(limit).offset(offset)
        result = await self._session.execute(stmt)
        return list(result.all())

    async def _order_exists(self, order_id: UUID) -> bool:
        found = await self._session.scalar(
            select(orders_table.c.id).where(orders_table.c.id == order_id)
        )
        return found is not None

    async def _require_order(self, order_id: UUID) -> None:
        if not await self._order_exists(order_id):
            raise NotFoundError(f"Order not found: {order_id}")

    async def _next_position(self, order_id: UUID) -> int:
        current = await self._session.scalar(
            select(func.max(line_items_table.c.position)).where(
                line_items_table.c.order_id == order_id
            )
        )
        return 0 if current is None else current + 1

    async def _insert_header(self, values: Dict[str, Any]) -> None:
        await self._session.execute(insert(orders_table).values(**values))

    async def _insert_line_items(
        self,
        order_id: UUID,
        items: Sequence[OrderLineItem],
        start: int = 0,
    ) -> None:
        if not items:
            return
        await self._session.execute(
            insert(line_items_table),
            [
                OrderLineItemMapper.to_values(item, order_id, start + offset)
                for offset, item in enumerate(items)
            ],
        )

    async def _reconcile_line_items(self, order: Order) -> None:
        """
        Insert new rows, update changed rows, delete rows this copy dropped.

        Stored rows the order never knew about belong to another writer
        and are left alone. New rows are appended after every stored row.
        """
        stored = (await self._load_line_item_rows([order.id])).get(order.id, [])
        stored_by_id = {row.id: row for row in stored}
        wanted_ids = {item.id for item in order.line_items}

        removed = [
            item_id
            for item_id in stored_by_id
            if item_id in order.known_line_item_ids and item_id not in wanted_ids
        ]
        if removed:
            await self._session.execute(
                delete(line_items_table).where(line_items_table.c.id.in_(removed))
            )

        next_position = max((row.position for row in stored), default=-1) + 1
        for item in order.line_items:
            row = stored_by_id.get(item.id)
            if row is None:
                values = OrderLineItemMapper.to_values(item, order.id, next_position)
                next_position += 1
                await self._session.execute(insert(line_items_table).values(**values))
                continue

            values = OrderLineItemMapper.to_values(item, order.id, row.position)
            if self._row_changed(row, values):
                del values["id"], values["order_id"]
                await self._session.execute(
                    update(line_items_table)
                    .where(line_items_table.c.id == item.id)
                    .values(**values)
                )

    @staticmethod
    def _row_changed(row: Any, values: Dict[str, Any]) -> bool:
        stored = OrderLineItemMapper.to_domain(row)
        return (
            stored.product_id != values["product_id"]
            or stored.product_name != values["product_name"]
            or stored.quantity != values["quantity"]
            or stored.unit_price != values["unit_price"]
            or stored.subtotal != values["subtotal"]
        )

    async def _refresh_header(
        self,
        order_id: UUID,
        updated_at,
        bump_version: bool = True,
        **values: Any,
    ) -> None:
        """
        Single-row header UPDATE; the total is summed by the database.

        Extra keyword arguments are written as additional columns.
        """
        subtotal_sum = (
            select(func.coalesce(func.sum(line_items_table.c.subtotal), 0))
            .where(line_items_table.c.order_id == order_id)
            .scalar_subquery()
        )
        values["total_amount"] = subtotal_sum
        values["updated_at"] = updated_at
        if bump_version:
            values["version"] = orders_table.c.version + 1

        await self._session.execute(
            update(orders_table).where(orders_table.c.id == order_id).values(**values)
        )
