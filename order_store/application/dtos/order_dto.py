"""Application DTOs for Order operations."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List
from uuid import UUID

from pydantic import BaseModel, Field

from order_store.domain.enums import OrderStatus


class LineItemRequest(BaseModel):
    """Line item requested when creating an order."""

    product_id: str = Field(..., min_length=1, description="Product identifier")
    product_name: str = Field(..., description="Product name at time of order")
    quantity: int = Field(..., gt=0, description="Quantity ordered")
    unit_price: Decimal = Field(..., gt=0, description="Unit price")

    model_config = {"frozen": True}


class CreateOrderRequest(BaseModel):
    """Request DTO for creating an order."""

    customer_id: str = Field(..., min_length=1, description="Customer identifier")
    items: List[LineItemRequest] = Field(default_factory=list, description="Initial line items")

    model_config = {"frozen": True}


class OrderLineItemDTO(BaseModel):
    """DTO for order line item."""

    id: UUID = Field(..., description="Line item identity")
    product_id: str = Field(..., description="Product identifier")
    product_name: str = Field(..., description="Product name")
    quantity: int = Field(..., gt=0, description="Quantity ordered")
    unit_price: Decimal = Field(..., gt=0, description="Unit price")
    subtotal: Decimal = Field(..., gt=0, description="unit_price x quantity")

    model_config = {"frozen": True}


class OrderDTO(BaseModel):
    """Response DTO for order details."""

    id: UUID = Field(..., description="Order identity")
    customer_id: str = Field(..., description="Customer identifier")
    status: OrderStatus = Field(..., description="Lifecycle status")
    total_amount: Decimal = Field(..., ge=0, description="Sum of line item subtotals")
    line_items: List[OrderLineItemDTO] = Field(default_factory=list, description="Line items")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")
    updated_at: datetime = Field(..., description="Last mutation timestamp (UTC)")
    version: int = Field(..., ge=0, description="Stored version")

    model_config = {"frozen": True}


class OrderSummaryDTO(BaseModel):
    """DTO for the aggregate report."""

    total_orders: int = Field(..., ge=0, description="Number of orders")
    total_amount: Decimal = Field(..., ge=0, description="Sum of order totals")
    average_amount: Decimal = Field(..., ge=0, description="Average order total")
    count_by_status: Dict[OrderStatus, int] = Field(default_factory=dict, description="Orders per status")

    model_config = {"frozen": True}
