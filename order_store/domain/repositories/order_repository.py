"""Repository interfaces for Order aggregate."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import ClassVar, List, Optional, Sequence, Tuple
from uuid import UUID

from ..entities.order import Order
from ..enums import OrderStatus
from ..value_objects import OrderAggregateSummary, OrderHeader, OrderProjection

# (product_id, product_name, quantity, unit_price)
LineItemInput = Tuple[str, str, int, Decimal]


class OrderRepository(ABC):
    """
    Abstract repository for Order aggregate persistence.

    Every persistence strategy implements this contract. Whether a strategy
    detects concurrent writes is advertised by ``supports_optimistic_locking``;
    callers that rely on conflict detection must check it instead of
    inspecting the concrete type.
    """

    supports_optimistic_locking: ClassVar[bool] = False

    @abstractmethod
    async def save(self, order: Order) -> Order:
        """Persist the full aggregate (root + every line item) as a unit.

        Args:
            order: Order aggregate to persist

        Returns:
            The stored view of the order, carrying the stored version

        Raises:
            ConcurrencyConflictError: Version mismatch (locking strategies only)
        """
        pass

    @abstractmethod
    async def find_by_id(self, order_id: UUID) -> Optional[Order]:
        """Retrieve the full aggregate by identifier.

        Args:
            order_id: Order identifier

        Returns:
            Order with all line items if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_all(self) -> List[Order]:
        """List every order as a full aggregate, oldest first."""
        pass

    @abstractmethod
    async def find_all_paged(self, page: int, size: int) -> List[Order]:
        """List one page of full aggregates ordered by creation time.

        Args:
            page: Zero-based page index
            size: Page size (> 0)

        Raises:
            InvalidArgumentError: If page < 0 or size <= 0
        """
        pass

    @abstractmethod
    async def compute_aggregate_summary(self) -> OrderAggregateSummary:
        """Count / sum / average / count-by-status over all orders."""
        pass

    @abstractmethod
    async def bulk_update_status(self, from_status: OrderStatus, to_status: OrderStatus) -> int:
        """Move every order in ``from_status`` to ``to_status``.

        This is a direct bulk state reset. It deliberately bypasses the
        ``submit``/``confirm`` transition checks, so it can move orders
        between any two statuses (e.g. DRAFT -> CANCELLED). Callers that
        need stricter transition enforcement must not use it.

        Returns:
            Number of orders changed
        """
        pass

    @abstractmethod
    async def find_by_product_id(self, product_id: str) -> List[Order]:
        """Full aggregates of every order containing the given product."""
        pass

    @abstractmethod
    async def delete_all(self) -> None:
        """Remove every order and every line item."""
        pass


class OrderRowRepository(OrderRepository):
    """
    Row-level commands and projections offered by row-projected strategies.

    These operate on stored rows directly, without materializing the
    aggregate. ``total_amount`` is recomputed inside the store after every
    line-item change. No version check is performed.
    """

    @abstractmethod
    async def create_order(self, customer_id: str) -> UUID:
        """Insert an empty DRAFT order header and return its id."""
        pass

    @abstractmethod
    async def create_order_with_items(
        self,
        customer_id: str,
        items: Sequence[LineItemInput],
    ) -> UUID:
        """Insert a header plus all line items, then recompute the total once."""
        pass

    @abstractmethod
    async def add_line_item(
        self,
        order_id: UUID,
        product_id: str,
        product_name: str,
        quantity: int,
        unit_price: Decimal,
    ) -> UUID:
        """Insert one line item row and return its id."""
        pass

    @abstractmethod
    async def update_line_item_quantity(
        self,
        order_id: UUID,
        line_item_id: UUID,
        new_quantity: int,
    ) -> None:
        pass

    @abstractmethod
    async def remove_line_item(self, order_id: UUID, line_item_id: UUID) -> None:
        pass

    @abstractmethod
    async def update_status(self, order_id: UUID, status: OrderStatus) -> None:
        """Narrow single-row status update; line items are not touched."""
        pass

    @abstractmethod
    async def find_order_only(self, order_id: UUID) -> Optional[OrderHeader]:
        """Load the header row without line items."""
        pass

    @abstractmethod
    async def find_order_projections(self) -> List[OrderProjection]:
        """Id, customer, item count and total for every order, oldest first."""
        pass
