"""
Aggregate-mapped Order repository on SQLAlchemy Core.

Rows are assembled into aggregates by hand. Saves are a compare-and-swap
UPDATE of the root (``WHERE id = :id AND version = :expected``) followed by
delete-then-reinsert of the line items, inside the caller's transaction.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from order_store.domain.entities.order import Order, utcnow
from order_store.domain.enums import OrderStatus
from order_store.domain.exceptions import ConcurrencyConflictError
from order_store.domain.repositories import OrderRepository
from order_store.domain.value_objects import OrderAggregateSummary

from ..mappers import OrderLineItemMapper, OrderMapper
from .base import SqlAlchemyRepositoryBase, line_items_table, orders_table, validate_page


logger = logging.getLogger(__name__)


class AggregateSqlOrderRepository(SqlAlchemyRepositoryBase, OrderRepository):
    """Hand-written SQL implementation of the aggregate-mapped policy."""

    supports_optimistic_locking = True

    async def save(self, order: Order) -> Order:
        """
        Upsert the root with a version check, then replace every line item.

        Raises:
            ConcurrencyConflictError: If the stored version differs from
                ``order.version``
        """
        logger.info(f"Saving order: {order.id} (version {order.version})")

        values = OrderMapper.to_values(order, version=order.version + 1)
        del values["id"], values["created_at"]
        result = await self._session.execute(
            update(orders_table)
            .where(orders_table.c.id == order.id)
            .where(orders_table.c.version == order.version)
            .values(**values)
        )

        if result.rowcount == 0:
            stored_version = await self._session.scalar(
                select(orders_table.c.version).where(orders_table.c.id == order.id)
            )
            if stored_version is not None:
                logger.warning(
                    f"Stale save rejected for order {order.id}: "
                    f"expected {order.version}, stored {stored_version}"
                )
                raise ConcurrencyConflictError(order.id, order.version, stored_version)

            try:
                await self._session.execute(insert(orders_table).values(**OrderMapper.to_values(order)))
            except IntegrityError as e:
                logger.warning(f"Concurrent insert detected for order {order.id}")
                raise ConcurrencyConflictError(order.id, order.version) from e
            logger.info(f"✅ Created order: {order.id}")

        await self._replace_line_items(order)

        saved = await self.find_by_id(order.id)
        if saved is None:
            raise ConcurrencyConflictError(order.id, order.version)
        return saved

    async def _replace_line_items(self, order: Order) -> None:
        await self._session.execute(
            delete(line_items_table).where(line_items_table.c.order_id == order.id)
        )
        if not order.line_items:
            return

        await self._session.execute(
            insert(line_items_table),
            [
                OrderLineItemMapper.to_values(item, order.id, position)
                for position, item in enumerate(order.line_items)
            ],
        )

    async def find_by_id(self, order_id: UUID) -> Optional[Order]:
        logger.debug(f"Getting order: {order_id}")

        result = await self._session.execute(
            select(orders_table).where(orders_table.c.id == order_id)
        )
        row = result.one_or_none()
        if row is None:
            return None

        orders = await self._assemble([row])
        return orders[0]

    async def find_all(self) -> List[Order]:
        result = await self._session.execute(
            select(orders_table).order_by(orders_table.c.created_at, orders_table.c.id)
        )
        return await self._assemble(result.all())

    async def find_all_paged(self, page: int, size: int) -> List[Order]:
        validate_page(page, size)
        result = await self._session.execute(
            select(orders_table)
            .order_by(orders_table.c.created_at, orders_table.c.id)
            .limit(size)
            .offset(page * size)
        )
        return await self._assemble(result.all())

    async def compute_aggregate_summary(self) -> OrderAggregateSummary:
        # Load every aggregate, reduce in memory
        return OrderAggregateSummary.from_orders(await self.find_all())

    async def bulk_update_status(self, from_status: OrderStatus, to_status: OrderStatus) -> int:
        """
        Load, modify and save each matching aggregate one by one.

        Bypasses the ``submit``/``confirm`` transition checks by design.
        """
        from_status, to_status = OrderStatus(from_status), OrderStatus(to_status)
        orders = [order for order in await self.find_all() if order.status == from_status]

        now = utcnow()
        for order in orders:
            await self.save(
                Order.reconstitute(
                    id=order.id,
                    customer_id=order.customer_id,
                    status=to_status,
                    total_amount=order.total_amount,
                    line_items=order.line_items,
                    created_at=order.created_at,
                    updated_at=now,
                    version=order.version,
                )
            )

        logger.info(f"Bulk status update {from_status.value} -> {to_status.value}: {len(orders)} order(s)")
        return len(orders)

    async def find_by_product_id(self, product_id: str) -> List[Order]:
        # Whole-graph load, filtered in memory
        return [
            order
            for order in await self.find_all()
            if any(item.product_id == product_id for item in order.line_items)
        ]

    async def delete_all(self) -> None:
        logger.info("Deleting all orders")
        await self._session.execute(delete(line_items_table))
        await self._session.execute(delete(orders_table))
