"""
Domain errors.

Raised by the Order aggregate and by every repository strategy, and
surfaced to callers unmodified.
"""
from typing import Optional
from uuid import UUID


class OrderStoreError(Exception):
    """Base class for all domain errors."""
    pass


class InvalidArgumentError(OrderStoreError, ValueError):
    """A supplied value violates a local precondition."""
    pass


class NotFoundError(OrderStoreError, LookupError):
    """A referenced order or line item does not exist."""
    pass


class IllegalStateError(OrderStoreError):
    """Operation attempted in a status that forbids it."""
    pass


class ConcurrencyConflictError(OrderStoreError):
    """
    Optimistic-concurrency version mismatch on save.

    Callers are expected to reload the order and reapply their change.
    """

    def __init__(
        self,
        order_id: UUID,
        expected_version: int,
        actual_version: Optional[int] = None,
    ):
        self.order_id = order_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        if actual_version is None:
            message = (
                f"Concurrency conflict on order {order_id}: "
                f"expected version {expected_version}"
            )
        else:
            message = (
                f"Concurrency conflict on order {order_id}: "
                f"expected version {expected_version}, "
                f"but stored version is {actual_version}"
            )
        super().__init__(message)
