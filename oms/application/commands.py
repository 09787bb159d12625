"""Commands accepted by the application services.

Commands are plain immutable requests. Identifiers arrive as strings
and are parsed by the services, so malformed IDs surface as validation
errors before any store access.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


# ============================================================================
# Order Commands
# ============================================================================


@dataclass(frozen=True)
class OrderLine:
    """Requested product and quantity for a new order."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class CreateOrderCommand:
    customer_id: str
    items: list[OrderLine] = field(default_factory=list)
    shipping_address: str | None = None
    notes: str | None = None
    currency: str | None = None
    actor: str = "system"


@dataclass(frozen=True)
class AddOrderItemCommand:
    order_id: str
    product_id: str
    quantity: int
    actor: str = "system"


@dataclass(frozen=True)
class RemoveOrderItemCommand:
    order_id: str
    item_id: str
    actor: str = "system"


@dataclass(frozen=True)
class UpdateOrderItemQuantityCommand:
    order_id: str
    item_id: str
    new_quantity: int
    actor: str = "system"


@dataclass(frozen=True)
class StartProcessingCommand:
    order_id: str
    actor: str = "system"


@dataclass(frozen=True)
class MarkOrderAsPaidCommand:
    order_id: str
    payment_method: str
    amount_paid: Decimal
    currency: str | None = None
    actor: str = "system"


@dataclass(frozen=True)
class MarkOrderAsShippedCommand:
    order_id: str
    tracking_number: str
    actor: str = "system"


@dataclass(frozen=True)
class MarkOrderAsDeliveredCommand:
    order_id: str
    actor: str = "system"


@dataclass(frozen=True)
class RefundOrderCommand:
    order_id: str
    reason: str = ""
    actor: str = "system"


@dataclass(frozen=True)
class CancelOrderCommand:
    order_id: str
    reason: str
    actor: str = "system"


# ============================================================================
# Product Commands
# ============================================================================


class DeletionMode(str, Enum):
    """How a product is deleted.

    SOFT deactivates and keeps the row, HARD removes it. Both require
    that no non-terminal order references the product.
    """

    SOFT = "soft"
    HARD = "hard"


@dataclass(frozen=True)
class CreateProductCommand:
    name: str
    sku: str
    price: Decimal
    stock_quantity: int = 0
    currency: str | None = None
    description: str = ""
    category: str = ""
    min_stock_threshold: int | None = None
    actor: str = "system"


@dataclass(frozen=True)
class UpdateProductDetailsCommand:
    product_id: str
    name: str
    price: Decimal
    description: str = ""
    category: str | None = None
    actor: str = "system"


@dataclass(frozen=True)
class AdjustStockCommand:
    """Signed stock change: positive restocks, negative takes stock out."""

    product_id: str
    quantity_change: int
    reason: str = ""
    actor: str = "system"


@dataclass(frozen=True)
class ActivateProductCommand:
    product_id: str
    actor: str = "system"


@dataclass(frozen=True)
class DeactivateProductCommand:
    product_id: str
    actor: str = "system"


@dataclass(frozen=True)
class DeleteProductCommand:
    product_id: str
    mode: DeletionMode = DeletionMode.SOFT
    actor: str = "system"


# ============================================================================
# Customer Commands
# ============================================================================


@dataclass(frozen=True)
class CreateCustomerCommand:
    first_name: str
    last_name: str
    email: str
    phone: str = ""
    address: str = ""
    actor: str = "system"
