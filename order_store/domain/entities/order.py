"""
Order aggregate root.

CRITICAL: This file must contain ZERO imports from:
- sqlalchemy
- pydantic
"""
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import FrozenSet, Iterable, List, Optional, Set, Tuple, Union
from uuid import UUID, uuid4

from ..enums import OrderStatus
from ..exceptions import IllegalStateError, InvalidArgumentError, NotFoundError
from ..value_objects.money import ZERO, AmountLike, to_currency


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation every store round-trips."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def check_quantity(quantity: int) -> int:
    """
    Raises:
        InvalidArgumentError: If quantity is not a positive integer
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgumentError(f"Quantity must be an integer, got: {quantity!r}")
    if quantity <= 0:
        raise InvalidArgumentError("Quantity must be greater than 0")
    return quantity


@dataclass(frozen=True)
class OrderLineItem:
    """Immutable priced entry within an order."""
    id: UUID
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    def __post_init__(self):
        check_quantity(self.quantity)
        if self.unit_price is None or self.unit_price <= 0:
            raise InvalidArgumentError("Unit price must be positive")

    @classmethod
    def create(
        cls,
        product_id: str,
        product_name: str,
        quantity: int,
        unit_price: AmountLike,
    ) -> "OrderLineItem":
        """
        Create a line item with a fresh identity.

        Raises:
            InvalidArgumentError: If quantity <= 0 or unit_price <= 0
        """
        price = to_currency(unit_price)
        check_quantity(quantity)
        return cls(
            id=uuid4(),
            product_id=product_id,
            product_name=product_name,
            quantity=quantity,
            unit_price=price,
            subtotal=price * quantity,
        )

    def with_quantity(self, new_quantity: int) -> "OrderLineItem":
        """Replacement with the same identity and a recomputed subtotal."""
        return replace(self, quantity=new_quantity, subtotal=self.unit_price * new_quantity)


class Order:
    """
    Order aggregate root.

    Owns an ordered collection of line items and keeps ``total_amount``
    equal to the sum of their subtotals. Line items are only reachable as
    an immutable tuple; every change goes through the methods below.

    Mutations are in-memory only. Persist with ``OrderRepository.save``.
    """

    def __init__(
        self,
        id: UUID,
        customer_id: str,
        status: OrderStatus,
        total_amount: Decimal,
        line_items: Iterable[OrderLineItem],
        created_at: datetime,
        updated_at: datetime,
        version: int,
    ):
        self._id = id
        self._customer_id = customer_id
        self._status = status
        self._total_amount = total_amount
        self._line_items: List[OrderLineItem] = list(line_items)
        self._created_at = created_at
        self._updated_at = updated_at
        self._version = version
        # Every line item identity this instance has held; removals are
        # only meaningful for these
        self._known_line_item_ids: Set[UUID] = {item.id for item in self._line_items}

    # =========================================================================
    # FACTORIES
    # =========================================================================

    @classmethod
    def create(cls, customer_id: str) -> "Order":
        """
        Factory method to create a new, empty DRAFT order.

        Args:
            customer_id: Customer identifier

        Returns:
            New Order with version 0
        """
        now = utcnow()
        return cls(
            id=uuid4(),
            customer_id=customer_id,
            status=OrderStatus.DRAFT,
            total_amount=ZERO,
            line_items=[],
            created_at=now,
            updated_at=now,
            version=0,
        )

    @classmethod
    def reconstitute(
        cls,
        id: UUID,
        customer_id: str,
        status: Union[OrderStatus, str],
        total_amount: Decimal,
        line_items: Iterable[OrderLineItem],
        created_at: datetime,
        updated_at: datetime,
        version: int,
    ) -> "Order":
        """
        Rebuild an Order from stored state.

        Used only by the persistence layer. The state is trusted: no
        transition or total checks are applied.
        """
        return cls(
            id=id,
            customer_id=customer_id,
            status=OrderStatus(status),
            total_amount=Decimal(total_amount),
            line_items=line_items,
            created_at=created_at,
            updated_at=updated_at,
            version=int(version),
        )

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def customer_id(self) -> str:
        return self._customer_id

    @property
    def status(self) -> OrderStatus:
        return self._status

    @property
    def total_amount(self) -> Decimal:
        return self._total_amount

    @property
    def line_items(self) -> Tuple[OrderLineItem, ...]:
        return tuple(self._line_items)

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def version(self) -> int:
        return self._version

    @property
    def known_line_item_ids(self) -> FrozenSet[UUID]:
        """Line item ids loaded with this order or added to it since."""
        return frozenset(self._known_line_item_ids)

    def find_line_item(self, line_item_id: UUID) -> Optional[OrderLineItem]:
        for item in self._line_items:
            if item.id == line_item_id:
                return item
        return None

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add_line_item(
        self,
        product_id: str,
        product_name: str,
        quantity: int,
        unit_price: AmountLike,
    ) -> OrderLineItem:
        """Add item and recalculate order total."""
        item = OrderLineItem.create(product_id, product_name, quantity, unit_price)
        self._line_items.append(item)
        self._known_line_item_ids.add(item.id)
        self._recalculate_total()
        self._touch()
        return item

    def submit(self) -> None:
        """Business rule: only non-empty DRAFT orders can be submitted."""
        if self._status != OrderStatus.DRAFT:
            raise IllegalStateError(
                f"Can only submit DRAFT orders (order {self._id} is {self._status.value})"
            )
        if not self._line_items:
            raise IllegalStateError("Cannot submit order with no line items")
        self._status = OrderStatus.SUBMITTED
        self._touch()

    def confirm(self) -> None:
        """Business rule: only SUBMITTED orders can be confirmed."""
        if self._status != OrderStatus.SUBMITTED:
            raise IllegalStateError(
                f"Can only confirm SUBMITTED orders (order {self._id} is {self._status.value})"
            )
        self._status = OrderStatus.CONFIRMED
        self._touch()

    def update_line_item_quantity(self, line_item_id: UUID, new_quantity: int) -> None:
        """
        Replace a line item with one carrying a new quantity.

        Raises:
            InvalidArgumentError: If new_quantity <= 0
            NotFoundError: If no line item has that identity
        """
        check_quantity(new_quantity)

        for index, item in enumerate(self._line_items):
            if item.id == line_item_id:
                self._line_items[index] = item.with_quantity(new_quantity)
                break
        else:
            raise NotFoundError(f"LineItem not found: {line_item_id}")

        self._recalculate_total()
        self._touch()

    def remove_line_item(self, line_item_id: UUID) -> None:
        """
        Remove a line item.

        Raises:
            NotFoundError: If no line item has that identity
        """
        remaining = [item for item in self._line_items if item.id != line_item_id]
        if len(remaining) == len(self._line_items):
            raise NotFoundError(f"LineItem not found: {line_item_id}")
        self._line_items = remaining
        self._recalculate_total()
        self._touch()

    def _recalculate_total(self) -> None:
        """Internal: Sum all item subtotals."""
        self._total_amount = sum((item.subtotal for item in self._line_items), ZERO)

    def _touch(self) -> None:
        self._updated_at = utcnow()

    def __repr__(self) -> str:
        return (
            f"<Order(id={self._id}, status={self._status.value}, "
            f"total={self._total_amount}, items={len(self._line_items)}, "
            f"version={self._version})>"
        )
