"""
Aggregate-mapped Order repository on the SQLAlchemy ORM.

Every save writes the root and replaces the full line item set; every read
reconstructs the full graph through ``selectinload``. Concurrency control
is the ORM's ``version_id_col`` compare-and-swap.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from order_store.domain.entities.order import Order, utcnow
from order_store.domain.enums import OrderStatus
from order_store.domain.exceptions import ConcurrencyConflictError
from order_store.domain.repositories import OrderRepository
from order_store.domain.value_objects import OrderAggregateSummary

from ..mappers import OrderMapper
from ..models.order_model import OrderLineItemModel, OrderModel
from .base import SqlAlchemyRepositoryBase, validate_page


logger = logging.getLogger(__name__)


class AggregateOrmOrderRepository(SqlAlchemyRepositoryBase, OrderRepository):
    """
    SQLAlchemy ORM implementation of OrderRepository.

    The session's identity map is the persistence context. Reads use
    ``populate_existing`` so it never serves state older than the store.
    """

    supports_optimistic_locking = True

    def _aggregate_query(self):
        return (
            select(OrderModel)
            .options(selectinload(OrderModel.line_items))
            .execution_options(populate_existing=True)
        )

    async def save(self, order: Order) -> Order:
        """
        Insert or update the order aggregate.

        Args:
            order: Order aggregate to persist

        Returns:
            Stored view of the order

        Raises:
            ConcurrencyConflictError: If the stored version differs from
                ``order.version`` or changes before the write lands
        """
        logger.info(f"Saving order: {order.id} (version {order.version})")

        result = await self._session.execute(
            self._aggregate_query().where(OrderModel.id == order.id)
        )
        existing = result.scalar_one_or_none()

        if existing is None:
            model = OrderMapper.to_persistence(order)
            self._session.add(model)
            try:
                await self._session.flush()
            except IntegrityError as e:
                # Another writer inserted the same identity first
                logger.warning(f"Concurrent insert detected for order {order.id}")
                raise ConcurrencyConflictError(order.id, order.version) from e
            logger.info(f"✅ Created order: {order.id}")
            return OrderMapper.to_domain(model)

        if existing.version != order.version:
            logger.warning(
                f"Stale save rejected for order {order.id}: "
                f"expected {order.version}, stored {existing.version}"
            )
            raise ConcurrencyConflictError(order.id, order.version, existing.version)

        OrderMapper.update_persistence(order, existing, version=order.version + 1)
        try:
            await self._session.flush()
        except StaleDataError as e:
            logger.warning(f"Version changed underneath save of order {order.id}")
            raise ConcurrencyConflictError(order.id, order.version) from e

        logger.info(f"✅ Updated order: {order.id} (version {existing.version})")
        return OrderMapper.to_domain(existing)

    async def find_by_id(self, order_id: UUID) -> Optional[Order]:
        logger.debug(f"Getting order: {order_id}")

        result = await self._session.execute(
            self._aggregate_query().where(OrderModel.id == order_id)
        )
        model = result.scalar_one_or_none()
        if model is None:
            logger.debug(f"Order not found: {order_id}")
            return None
        return OrderMapper.to_domain(model)

    async def find_all(self) -> List[Order]:
        result = await self._session.execute(
            self._aggregate_query().order_by(OrderModel.created_at, OrderModel.id)
        )
        return [OrderMapper.to_domain(model) for model in result.scalars().all()]

    async def find_all_paged(self, page: int, size: int) -> List[Order]:
        validate_page(page, size)
        result = await self._session.execute(
            self._aggregate_query()
            .order_by(OrderModel.created_at, OrderModel.id)
            .limit(size)
            .offset(page * size)
        )
        return [OrderMapper.to_domain(model) for model in result.scalars().all()]

    async def compute_aggregate_summary(self) -> OrderAggregateSummary:
        # Load every aggregate, reduce in memory
        return OrderAggregateSummary.from_orders(await self.find_all())

    async def bulk_update_status(self, from_status: OrderStatus, to_status: OrderStatus) -> int:
        """
        Load each matching aggregate and save it through the versioned path.

        Bypasses the ``submit``/``confirm`` transition checks by design.
        """
        from_status, to_status = OrderStatus(from_status), OrderStatus(to_status)
        result = await self._session.execute(
            self._aggregate_query()
            .where(OrderModel.status == from_status.value)
            .order_by(OrderModel.created_at, OrderModel.id)
        )
        orders = [OrderMapper.to_domain(model) for model in result.scalars().all()]

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
        matching_ids = (
            select(OrderLineItemModel.order_id)
            .where(OrderLineItemModel.product_id == product_id)
            .distinct()
        )
        result = await self._session.execute(
            self._aggregate_query()
            .where(OrderModel.id.in_(matching_ids))
            .order_by(OrderModel.created_at, OrderModel.id)
        )
        return [OrderMapper.to_domain(model) for model in result.scalars().all()]

    async def delete_all(self) -> None:
        logger.info("Deleting all orders")
        await self._session.execute(delete(OrderLineItemModel))
        await self._session.execute(delete(OrderModel))
        self._session.expunge_all()
