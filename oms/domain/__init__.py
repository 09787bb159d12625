"""Domain layer - Aggregates, value objects, state machines, domain events.

This module exports the core domain building blocks following DDD patterns:

- **Aggregates**: Product, Order (owning OrderItem) and Customer
- **Value Objects**: Money, typed IDs, item snapshots
- **State Machines**: OrderStatus and PaymentStatus
- **Domain Events**: Denormalized records of committed changes
- **Exceptions**: Domain errors grouped by ErrorKind

Example usage:
    from oms.domain import CustomerId, Money, Order, Product

    product = Product.create(name="Widget", sku="wid-1", price=Money("50.00"), stock_quantity=10)
    order = Order.create(customer_id=CustomerId.generate())

    product.reduce_stock(2)
    order.add_item(product.id, product.name, 2, product.price)

    print(order.total)  # 100.00 USD
"""

# Base classes
from oms.domain.base import AggregateRoot, DomainEvent, Entity, ValueObject

# Entities
from oms.domain.entities import (
    DEFAULT_MIN_STOCK_THRESHOLD,
    Customer,
    Order,
    OrderItem,
    Product,
)

# Domain Events
from oms.domain.events import (
    EVENT_REGISTRY,
    CustomerCreated,
    OrderCancelled,
    OrderCreated,
    OrderDelivered,
    OrderItemAdded,
    OrderItemQuantityUpdated,
    OrderItemRemoved,
    OrderPaid,
    OrderProcessingStarted,
    OrderRefunded,
    OrderShipped,
    ProductActivated,
    ProductCreated,
    ProductDeactivated,
    ProductDeleted,
    ProductLowStock,
    ProductPriceChanged,
    ProductStockUpdated,
    ProductUpdated,
    get_event_class,
)

# Exceptions
from oms.domain.exceptions import (
    BusinessRuleViolation,
    ConflictError,
    CurrencyMismatchError,
    CustomerNotFoundError,
    DomainError,
    DuplicateEmailError,
    DuplicateSkuError,
    ErrorKind,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidStateTransitionError,
    MoneyError,
    NegativeMoneyError,
    NotFoundError,
    OrderItemNotFoundError,
    OrderNotCancellableError,
    OrderNotEditableError,
    OrderNotFoundError,
    PaymentAmountMismatchError,
    ProductInactiveError,
    ProductInUseError,
    ProductNotFoundError,
    TransientStoreError,
    ValidationError,
)

# State Machines
from oms.domain.state_machines import (
    OrderStatus,
    PaymentStatus,
    validate_order_transition,
)

# Value Objects
from oms.domain.value_objects import (
    CancelledItem,
    CustomerId,
    Money,
    OrderId,
    OrderItemId,
    ProductId,
    ShippedItem,
    generate_order_number,
)

__all__ = [
    # Base
    "AggregateRoot",
    "DomainEvent",
    "Entity",
    "ValueObject",
    # Entities
    "DEFAULT_MIN_STOCK_THRESHOLD",
    "Customer",
    "Order",
    "OrderItem",
    "Product",
    # Events
    "EVENT_REGISTRY",
    "CustomerCreated",
    "OrderCancelled",
    "OrderCreated",
    "OrderDelivered",
    "OrderItemAdded",
    "OrderItemQuantityUpdated",
    "OrderItemRemoved",
    "OrderPaid",
    "OrderProcessingStarted",
    "OrderRefunded",
    "OrderShipped",
    "ProductActivated",
    "ProductCreated",
    "ProductDeactivated",
    "ProductDeleted",
    "ProductLowStock",
    "ProductPriceChanged",
    "ProductStockUpdated",
    "ProductUpdated",
    "get_event_class",
    # Exceptions
    "BusinessRuleViolation",
    "ConflictError",
    "CurrencyMismatchError",
    "CustomerNotFoundError",
    "DomainError",
    "DuplicateEmailError",
    "DuplicateSkuError",
    "ErrorKind",
    "InsufficientStockError",
    "InvalidQuantityError",
    "InvalidStateTransitionError",
    "MoneyError",
    "NegativeMoneyError",
    "NotFoundError",
    "OrderItemNotFoundError",
    "OrderNotCancellableError",
    "OrderNotEditableError",
    "OrderNotFoundError",
    "PaymentAmountMismatchError",
    "ProductInactiveError",
    "ProductInUseError",
    "ProductNotFoundError",
    "TransientStoreError",
    "ValidationError",
    # State Machines
    "OrderStatus",
    "PaymentStatus",
    "validate_order_transition",
    # Value Objects
    "CancelledItem",
    "CustomerId",
    "Money",
    "OrderId",
    "OrderItemId",
    "ProductId",
    "ShippedItem",
    "generate_order_number",
]
