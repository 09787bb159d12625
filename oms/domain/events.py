"""Domain events for the order management system.

Domain events represent significant occurrences in the domain.
They are used for:
- Downstream notifications (e.g. low-stock alerts)
- Read-cache invalidation
- Analytics and audit logging

Every event is denormalized: it carries the identifiers, quantities and
prices a consumer needs without re-reading the store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar

from oms.domain.base import DomainEvent, utcnow
from oms.domain.value_objects import CancelledItem, ShippedItem


# ============================================================================
# Order Events
# ============================================================================


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Event raised when a new order is placed."""

    event_type: ClassVar[str] = "order.created"

    order_id: str = ""
    order_number: str = ""
    customer_id: str = ""
    total_amount: Decimal = Decimal("0")
    currency: str = "USD"

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "total_amount": str(self.total_amount),
            "currency": self.currency,
        }


@dataclass(frozen=True)
class OrderItemAdded(DomainEvent):
    """Event raised when a line item is added to an order."""

    event_type: ClassVar[str] = "order.item_added"

    order_id: str = ""
    item_id: str = ""
    product_id: str = ""
    product_name: str = ""
    quantity: int = 0
    unit_price: Decimal = Decimal("0")
    currency: str = "USD"
    order_total: Decimal = Decimal("0")

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "order_id": self.order_id,
            "item_id": self.item_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "currency": self.currency,
            "order_total": str(self.order_total),
        }


@dataclass(frozen=True)
class OrderItemRemoved(DomainEvent):
    """Event raised when a line item is removed from an order."""

    event_type: ClassVar[str] = "order.item_removed"

    order_id: str = ""
    item_id: str = ""
    product_id: str = ""
    quantity: int = 0
    currency: str = "USD"
    order_total: Decimal = Decimal("0")

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "order_id": self.order_id,
            "item_id": self.item_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "currency": self.currency,
            "order_total": str(self.order_total),
        }


@dataclass(frozen=True)
class OrderItemQuantityUpdated(DomainEvent):
    """Event raised when the quantity of a line item changes."""

    event_type: ClassVar[str] = "order.item_quantity_updated"

    order_id: str = ""
    item_id: str = ""
    product_id: str = ""
    old_quantity: int = 0
    new_quantity: int = 0
    currency: str = "USD"
    order_total: Decimal = Decimal("0")

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "order_id": self.order_id,
            "item_id": self.item_id,
            "product_id": self.product_id,
            "old_quantity": self.old_quantity,
            "new_quantity": self.new_quantity,
            "currency": self.currency,
            "order_total": str(self.order_total),
        }


@dataclass(frozen=True)
class OrderProcessingStarted(DomainEvent):
    """Event raised when an order moves into processing."""

    event_type: ClassVar[str] = "order.processing_started"

    order_id: str = ""
    order_number: str = ""

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
        }


@dataclass(frozen=True)
class OrderPaid(DomainEvent):
    """Event raised when payment for the full order total is recorded."""

    event_type: ClassVar[str] = "order.paid"

    order_id: str = ""
    order_number: str = ""
    customer_id: str = ""
    payment_method: str = ""
    amount_paid: Decimal = Decimal("0")
    currency: str = "USD"

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "payment_method": self.payment_method,
            "amount_paid": str(self.amount_paid),
            "currency": self.currency,
        }


@dataclass(frozen=True)
class OrderShipped(DomainEvent):
    """Event raised when order is shipped."""

    event_type: ClassVar[str] = "order.shipped"

    order_id: str = ""
    order_number: str = ""
    customer_id: str = ""
    tracking_number: str = ""
    items: tuple[ShippedItem, ...] = ()
    shipped_at: datetime = field(default_factory=utcnow)

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "tracking_number": self.tracking_number,
            "items": [item.to_dict() for item in self.items],
            "shipped_at": self.shipped_at.isoformat(),
        }


@dataclass(frozen=True)
class OrderDelivered(DomainEvent):
    """Event raised when order is delivered."""

    event_type: ClassVar[str] = "order.delivered"

    order_id: str = ""
    customer_id: str = ""
    delivered_at: datetime = field(default_factory=utcnow)

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "order_id": self.order_id,
            "customer_id": self.customer_id,
            "delivered_at": self.delivered_at.isoformat(),
        }


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Event raised when order is cancelled.

    ``items`` reports, per line, whether its quantity went back into the
    product's stock in the cancelling unit of work.
    """

    event_type: ClassVar[str] = "order.cancelled"

    order_id: str = ""
    order_number: str = ""
    customer_id: str = ""
    reason: str = ""
    previous_status: str = ""
    items: tuple[CancelledItem, ...] = ()

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "reason": self.reason,
            "previous_status": self.previous_status,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass(frozen=True)
class OrderRefunded(DomainEvent):
    """Event raised when a delivered order is refunded."""

    event_type: ClassVar[str] = "order.refunded"

    order_id: str = ""
    customer_id: str = ""
    refund_amount: Decimal = Decimal("0")
    currency: str = "USD"
    reason: str = ""

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "order_id": self.order_id,
            "customer_id": self.customer_id,
            "refund_amount": str(self.refund_amount),
            "currency": self.currency,
            "reason": self.reason,
        }


# ============================================================================
# Product Events
# ============================================================================


@dataclass(frozen=True)
class ProductCreated(DomainEvent):
    """Event raised when a product is added to the catalog."""

    event_type: ClassVar[str] = "product.created"

    product_id: str = ""
    sku: str = ""
    name: str = ""
    price: Decimal = Decimal("0")
    currency: str = "USD"
    stock_quantity: int = 0

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "product_id": self.product_id,
            "sku": self.sku,
            "name": self.name,
            "price": str(self.price),
            "currency": self.currency,
            "stock_quantity": self.stock_quantity,
        }


@dataclass(frozen=True)
class ProductUpdated(DomainEvent):
    """Event raised when descriptive product details change."""

    event_type: ClassVar[str] = "product.updated"

    product_id: str = ""
    name: str = ""
    description: str = ""
    category: str | None = None

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "product_id": self.product_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
        }


@dataclass(frozen=True)
class ProductPriceChanged(DomainEvent):
    """Event raised when the catalog price of a product changes."""

    event_type: ClassVar[str] = "product.price_changed"

    product_id: str = ""
    old_price: Decimal = Decimal("0")
    new_price: Decimal = Decimal("0")
    currency: str = "USD"

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "product_id": self.product_id,
            "old_price": str(self.old_price),
            "new_price": str(self.new_price),
            "currency": self.currency,
        }


@dataclass(frozen=True)
class ProductStockUpdated(DomainEvent):
    """Event raised on every stock change."""

    event_type: ClassVar[str] = "product.stock_updated"

    product_id: str = ""
    sku: str = ""
    old_quantity: int = 0
    new_quantity: int = 0
    reason: str = ""

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "product_id": self.product_id,
            "sku": self.sku,
            "old_quantity": self.old_quantity,
            "new_quantity": self.new_quantity,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ProductLowStock(DomainEvent):
    """Event raised when stock is at or below the product's threshold."""

    event_type: ClassVar[str] = "product.low_stock"

    product_id: str = ""
    product_name: str = ""
    sku: str = ""
    current_stock: int = 0
    min_stock_threshold: int = 0

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "current_stock": self.current_stock,
            "min_stock_threshold": self.min_stock_threshold,
        }


@dataclass(frozen=True)
class ProductActivated(DomainEvent):
    """Event raised when a product becomes orderable again."""

    event_type: ClassVar[str] = "product.activated"

    product_id: str = ""
    sku: str = ""

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {"product_id": self.product_id, "sku": self.sku}


@dataclass(frozen=True)
class ProductDeactivated(DomainEvent):
    """Event raised when a product is withdrawn from sale."""

    event_type: ClassVar[str] = "product.deactivated"

    product_id: str = ""
    sku: str = ""

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {"product_id": self.product_id, "sku": self.sku}


@dataclass(frozen=True)
class ProductDeleted(DomainEvent):
    """Event raised when a product is removed (soft or hard)."""

    event_type: ClassVar[str] = "product.deleted"

    product_id: str = ""
    sku: str = ""
    name: str = ""
    hard_delete: bool = False

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "product_id": self.product_id,
            "sku": self.sku,
            "name": self.name,
            "hard_delete": self.hard_delete,
        }


# ============================================================================
# Customer Events
# ============================================================================


@dataclass(frozen=True)
class CustomerCreated(DomainEvent):
    """Event raised when a customer is registered."""

    event_type: ClassVar[str] = "customer.created"

    customer_id: str = ""
    email: str = ""
    full_name: str = ""

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "customer_id": self.customer_id,
            "email": self.email,
            "full_name": self.full_name,
        }


# ============================================================================
# Event Registry
# ============================================================================


EVENT_REGISTRY: dict[str, type[DomainEvent]] = {
    # Order events
    OrderCreated.event_type: OrderCreated,
    OrderItemAdded.event_type: OrderItemAdded,
    OrderItemRemoved.event_type: OrderItemRemoved,
    OrderItemQuantityUpdated.event_type: OrderItemQuantityUpdated,
    OrderProcessingStarted.event_type: OrderProcessingStarted,
    OrderPaid.event_type: OrderPaid,
    OrderShipped.event_type: OrderShipped,
    OrderDelivered.event_type: OrderDelivered,
    OrderCancelled.event_type: OrderCancelled,
    OrderRefunded.event_type: OrderRefunded,
    # Product events
    ProductCreated.event_type: ProductCreated,
    ProductUpdated.event_type: ProductUpdated,
    ProductPriceChanged.event_type: ProductPriceChanged,
    ProductStockUpdated.event_type: ProductStockUpdated,
    ProductLowStock.event_type: ProductLowStock,
    ProductActivated.event_type: ProductActivated,
    ProductDeactivated.event_type: ProductDeactivated,
    ProductDeleted.event_type: ProductDeleted,
    # Customer events
    CustomerCreated.event_type: CustomerCreated,
}


def get_event_class(event_type: str) -> type[DomainEvent] | None:
    """Get event class by event type string.

    Args:
        event_type: Event type identifier (e.g., 'order.created').

    Returns:
        Event class if found, None otherwise.
    """
    return EVENT_REGISTRY.get(event_type)
