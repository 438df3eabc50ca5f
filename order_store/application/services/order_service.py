"""Application service for Order operations."""

from typing import Callable, List, Optional, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker

from order_store.application.dtos.order_dto import (
    CreateOrderRequest,
    OrderDTO,
    OrderLineItemDTO,
    OrderSummaryDTO,
)
from order_store.data.strategies import PersistenceStrategy
from order_store.data.uow import create_uow
from order_store.domain.entities import Order
from order_store.domain.enums import OrderStatus
from order_store.domain.exceptions import ConcurrencyConflictError, NotFoundError
from order_store.domain.value_objects import OrderAggregateSummary
from order_store.infrastructure.logging import get_logger
from order_store.settings import get_persistence_settings


logger = get_logger(__name__)


class OrderApplicationService:
    """
    Application service for orchestrating order operations.

    Responsibilities:
    - Coordinate domain + infrastructure
    - Handle transactions via UoW (one unit of work per call)
    - Retry read-modify-write cycles on version conflicts
    - Transform between DTOs and domain entities
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        strategy: Optional[Union[PersistenceStrategy, str]] = None,
    ) -> None:
        """Initialize order application service.

        Args:
            session_factory: SQLAlchemy async session factory
            strategy: Persistence strategy override
        """
        self._session_factory = session_factory
        self._strategy = strategy
        self._settings = get_persistence_settings()

    async def create_order(self, request: CreateOrderRequest) -> OrderDTO:
        """Create a new DRAFT order with its initial line items.

        Args:
            request: CreateOrderRequest DTO

        Returns:
            OrderDTO with the stored order
        """
        async with create_uow(self._session_factory, self._strategy) as uow:
            order = Order.create(request.customer_id)
            for item in request.items:
                order.add_line_item(item.product_id, item.product_name, item.quantity, item.unit_price)

            saved = await uow.orders.save(order)
            await uow.commit()

            logger.info(f"✅ Order created: {saved.id} ({len(saved.line_items)} items)")
            return self._order_to_dto(saved)

    async def get_order(self, order_id: UUID) -> Optional[OrderDTO]:
        """Get order by ID.

        Returns:
            OrderDTO if found, None otherwise
        """
        async with create_uow(self._session_factory, self._strategy) as uow:
            order = await uow.orders.find_by_id(order_id)
            if not order:
                return None
            return self._order_to_dto(order)

    async def list_orders(self, page: int = 0, size: Optional[int] = None) -> List[OrderDTO]:
        """List orders one page at a time, oldest first.

        Args:
            page: Zero-based page index
            size: Page size; defaults to ``PersistenceSettings.default_page_size``
        """
        if size is None:
            size = self._settings.default_page_size

        async with create_uow(self._session_factory, self._strategy) as uow:
            orders = await uow.orders.find_all_paged(page, size)
            return [self._order_to_dto(order) for order in orders]

    async def update_order(self, order_id: UUID, mutate: Callable[[Order], None]) -> OrderDTO:
        """
        Load an order, apply ``mutate`` to it and save it.

        On ``ConcurrencyConflictError`` the order is reloaded and ``mutate``
        is applied again, up to ``max_conflict_retries`` extra attempts.
        Domain errors raised by ``mutate`` propagate without retry.

        Raises:
            NotFoundError: If the order does not exist
            ConcurrencyConflictError: If every attempt conflicted
        """
        retries = self._settings.max_conflict_retries
        attempt = 0

        while True:
            attempt += 1
            async with create_uow(self._session_factory, self._strategy) as uow:
                order = await uow.orders.find_by_id(order_id)
                if order is None:
                    raise NotFoundError(f"Order not found: {order_id}")

                mutate(order)

                try:
                    saved = await uow.orders.save(order)
                    await uow.commit()
                    return self._order_to_dto(saved)
                except ConcurrencyConflictError as e:
                    await uow.rollback()
                    if attempt > retries:
                        logger.error(f"❌ Giving up on order {order_id} after {attempt} attempts")
                        raise
                    logger.warning(f"Retrying order {order_id} (attempt {attempt}/{retries + 1}): {e}")

    async def bulk_update_status(
        self,
        from_status: Union[OrderStatus, str],
        to_status: Union[OrderStatus, str],
    ) -> int:
        """Move every order in ``from_status`` to ``to_status``.

        Returns:
            Number of orders changed
        """
        from_status, to_status = OrderStatus(from_status), OrderStatus(to_status)

        async with create_uow(self._session_factory, self._strategy) as uow:
            changed = await uow.orders.bulk_update_status(from_status, to_status)
            await uow.commit()

            logger.info(f"✅ Bulk status change {from_status.value} -> {to_status.value}: {changed} orders")
            return changed

    async def get_summary(self) -> OrderSummaryDTO:
        """Aggregate report over every stored order."""
        async with create_uow(self._session_factory, self._strategy) as uow:
            summary = await uow.orders.compute_aggregate_summary()
            return self._summary_to_dto(summary)

    def _order_to_dto(self, order: Order) -> OrderDTO:
        """Transform Order domain entity to OrderDTO."""
        items = [
            OrderLineItemDTO(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                subtotal=item.subtotal,
            )
            for item in order.line_items
        ]

        return OrderDTO(
            id=order.id,
            customer_id=order.customer_id,
            status=order.status,
            total_amount=order.total_amount,
            line_items=items,
            created_at=order.created_at,
            updated_at=order.updated_at,
            version=order.version,
        )

    def _summary_to_dto(self, summary: OrderAggregateSummary) -> OrderSummaryDTO:
        return OrderSummaryDTO(
            total_orders=summary.total_orders,
            total_amount=summary.total_amount,
            average_amount=summary.average_amount,
            count_by_status=dict(summary.count_by_status),
        )
