"""API schemas for the order management API.

Pydantic models for request/response validation and serialization.
Money travels as ``{"amount": "12.50", "currency": "USD"}`` with the
amount as a decimal string.
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# ============================================================================
# Common Schemas
# ============================================================================


class MoneySchema(BaseModel):
    """Money representation."""

    amount: str = Field(..., description="Decimal amount as a string")
    currency: str = Field(..., description="ISO 4217 currency code")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | list[Any] = Field(
        default_factory=dict, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


# ============================================================================
# Order Schemas
# ============================================================================


class OrderStatusEnum(str, Enum):
    """Order lifecycle status."""

    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatusEnum(str, Enum):
    """Payment status of an order."""

    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"


class OrderLineRequest(BaseModel):
    """Requested product line of a new order."""

    product_id: str = Field(..., description="Product ID")
    quantity: int = Field(..., description="Quantity to order (positive)")


class OrderCreateRequest(BaseModel):
    """Request to create an order."""

    customer_id: str = Field(..., description="Customer placing the order")
    items: list[OrderLineRequest] = Field(..., description="Order lines")
    shipping_address: str | None = Field(default=None, description="Delivery address")
    notes: str | None = Field(default=None, description="Free-form notes")
    currency: str | None = Field(
        default=None, description="Order currency (defaults to the first product's)"
    )


class OrderItemAddRequest(BaseModel):
    """Request to add a line to an order."""

    product_id: str = Field(..., description="Product ID")
    quantity: int = Field(..., description="Quantity to add (positive)")


class OrderItemQuantityRequest(BaseModel):
    """Request to change the quantity of a line."""

    quantity: int = Field(..., description="New quantity (positive)")


class OrderPayRequest(BaseModel):
    """Request to record payment of an order."""

    payment_method: str = Field(..., description="Payment method (e.g. card)")
    amount: Decimal = Field(..., description="Amount paid; must equal the order total")
    currency: str | None = Field(default=None, description="Payment currency")


class OrderShipRequest(BaseModel):
    """Request to ship an order."""

    tracking_number: str = Field(..., description="Carrier tracking number")


class OrderCancelRequest(BaseModel):
    """Request to cancel an order."""

    reason: str = Field(..., description="Cancellation reason")


class OrderRefundRequest(BaseModel):
    """Request to refund an order."""

    reason: str = Field(default="", description="Refund reason")


class OrderItemSchema(BaseModel):
    """Item in an order."""

    id: str = Field(..., description="Order item ID")
    product_id: str = Field(..., description="Product ID")
    product_name: str = Field(..., description="Product name at time of order")
    quantity: int = Field(..., ge=1, description="Quantity ordered")
    unit_price: MoneySchema = Field(..., description="Unit price at time of order")
    total_price: MoneySchema = Field(..., description="Line total")


class OrderResponse(BaseModel):
    """Order details response."""

    id: str = Field(..., description="Order ID")
    order_number: str = Field(..., description="Human-readable order number")
    customer_id: str = Field(..., description="Customer ID")
    status: OrderStatusEnum = Field(..., description="Current order status")
    payment_status: PaymentStatusEnum = Field(..., description="Payment status")
    total_amount: MoneySchema = Field(..., description="Order total")
    item_count: int = Field(..., description="Number of units ordered")
    items: list[OrderItemSchema] = Field(..., description="Order items")
    shipping_address: str | None = Field(default=None, description="Delivery address")
    notes: str | None = Field(default=None, description="Notes")
    payment_method: str | None = Field(default=None, description="Payment method")
    tracking_number: str | None = Field(default=None, description="Shipment tracking number")
    version: int = Field(..., description="Persisted version")
    created_at: str = Field(..., description="When order was created")
    updated_at: str | None = Field(default=None, description="When order was last updated")
    created_by: str = Field(..., description="Who created the order")
    updated_by: str | None = Field(default=None, description="Who last updated the order")
    paid_at: str | None = Field(default=None, description="When order was paid")
    shipped_at: str | None = Field(default=None, description="When order shipped")
    delivered_at: str | None = Field(default=None, description="When order was delivered")
    cancelled_at: str | None = Field(default=None, description="When order was cancelled")


# ============================================================================
# Product Schemas
# ============================================================================


class DeletionModeEnum(str, Enum):
    """Product deletion mode."""

    SOFT = "soft"
    HARD = "hard"


class ProductCreateRequest(BaseModel):
    """Request to create a product."""

    name: str = Field(..., description="Product name")
    sku: str = Field(..., description="Stock keeping unit (unique, case-insensitive)")
    price: Decimal = Field(..., description="Unit price")
    currency: str | None = Field(default=None, description="Price currency")
    stock_quantity: int = Field(default=0, ge=0, description="Initial stock")
    description: str = Field(default="", description="Description")
    category: str = Field(default="", description="Category")
    min_stock_threshold: int | None = Field(
        default=None, ge=0, description="Low-stock threshold"
    )


class ProductUpdateRequest(BaseModel):
    """Request to update product details."""

    name: str = Field(..., description="Product name")
    price: Decimal = Field(..., description="Unit price")
    description: str = Field(default="", description="Description")
    category: str | None = Field(default=None, description="Category (unchanged if omitted)")


class StockAdjustmentRequest(BaseModel):
    """Request to change stock by a signed amount."""

    quantity_change: int = Field(..., description="Positive to restock, negative to take out")
    reason: str = Field(default="", description="Reason for the change")


class ProductResponse(BaseModel):
    """Product details response."""

    id: str = Field(..., description="Product ID")
    name: str = Field(..., description="Product name")
    description: str = Field(..., description="Description")
    sku: str = Field(..., description="SKU")
    category: str = Field(..., description="Category")
    price: MoneySchema = Field(..., description="Unit price")
    stock_quantity: int = Field(..., description="Units on hand")
    min_stock_threshold: int = Field(..., description="Low-stock threshold")
    is_active: bool = Field(..., description="Whether the product can be ordered")
    is_low_stock: bool = Field(..., description="Stock at or below threshold")
    version: int = Field(..., description="Persisted version")
    created_at: str = Field(..., description="When created")
    updated_at: str | None = Field(default=None, description="When last updated")
    created_by: str = Field(..., description="Who created the product")
    updated_by: str | None = Field(default=None, description="Who last updated the product")


class ProductListResponse(BaseModel):
    """One page of the catalog."""

    items: list[ProductResponse] = Field(..., description="Products on this page")
    page: int = Field(..., description="1-based page number")
    page_size: int = Field(..., description="Products per page")
    total_count: int = Field(..., description="Matching products across all pages")
    total_pages: int = Field(..., description="Number of pages")
    has_next: bool = Field(..., description="Whether a later page exists")
    has_previous: bool = Field(..., description="Whether an earlier page exists")


class ProductSortEnum(str, Enum):
    """Sort field of a product listing."""

    NAME = "name"
    PRICE = "price"
    CATEGORY = "category"


class ProductAlternativeResponse(BaseModel):
    """A product offered instead of one that cannot be deleted."""

    product_id: str
    name: str
    sku: str
    price: MoneySchema
    stock_quantity: int
    category: str


class DeletionCheckResponse(BaseModel):
    """Whether a product can be deleted."""

    product_id: str
    product_name: str
    active_order_count: int
    can_delete: bool
    alternatives: list[ProductAlternativeResponse] = Field(
        default_factory=list,
        description="Active, in-stock products of the same category (only when blocked)",
    )


class ProductDeletedResponse(BaseModel):
    """Outcome of a product deletion."""

    product_id: str
    hard_delete: bool


# ============================================================================
# Customer Schemas
# ============================================================================


class CustomerCreateRequest(BaseModel):
    """Request to register a customer."""

    first_name: str = Field(..., description="First name")
    last_name: str = Field(..., description="Last name")
    email: str = Field(..., description="Email (unique, case-insensitive)")
    phone: str = Field(default="", description="Phone number")
    address: str = Field(default="", description="Postal address")


class CustomerResponse(BaseModel):
    """Customer details response."""

    id: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str
    address: str
    is_active: bool
    created_at: str
    updated_at: str | None = None
