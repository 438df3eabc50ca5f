"""SQLAlchemy ORM models for Order aggregate.

Every persistence strategy shares these two tables. The Core-based
strategies use ``OrderModel.__table__`` / ``OrderLineItemModel.__table__``
directly.
"""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from .base import Base


class OrderModel(Base):
    """SQLAlchemy ORM model for orders table."""

    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(String(255), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="DRAFT", index=True)
    total_amount = Column(Numeric(19, 2), nullable=False, default=0)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)
    version = Column(Integer, nullable=False, default=0)

    # Ordered by insertion position, deleted with the order
    line_items = relationship(
        "OrderLineItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderLineItemModel.position",
    )

    # Optimistic locking: the ORM adds "AND version = <loaded>" to every
    # UPDATE/DELETE of this row and raises StaleDataError on zero rows.
    # The application assigns the next version itself.
    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": False,
    }

    __table_args__ = (
        Index("ix_orders_created_at_id", "created_at", "id"),
    )

    def __repr__(self):
        return f"<OrderModel(id={self.id}, status={self.status}, version={self.version})>"


class OrderLineItemModel(Base):
    """SQLAlchemy ORM model for order_line_items table."""

    __tablename__ = "order_line_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(String(255), nullable=False, index=True)
    product_name = Column(String(500), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(19, 2), nullable=False)
    subtotal = Column(Numeric(19, 2), nullable=False)

    # Relationship back to order
    order = relationship("OrderModel", back_populates="line_items")

    def __repr__(self):
        return f"<OrderLineItemModel(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
