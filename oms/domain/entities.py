"""Domain entities for the order management system.

Entities are domain objects with identity that persists across state changes.
This module contains the aggregates: Product, Order (owning its OrderItems)
and Customer. Aggregates reference each other by identifier only; loading
the referenced aggregate is the orchestrator's job.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping

from oms.domain.base import AggregateRoot, Entity, utcnow
from oms.domain.events import (
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
)
from oms.domain.exceptions import (
    CurrencyMismatchError,
    InsufficientStockError,
    InvalidQuantityError,
    OrderItemNotFoundError,
    OrderNotCancellableError,
    OrderNotEditableError,
    PaymentAmountMismatchError,
    ValidationError,
)
from oms.domain.state_machines import (
    OrderStatus,
    PaymentStatus,
    validate_order_transition,
)
from oms.domain.value_objects import (
    CancelledItem,
    CustomerId,
    Money,
    OrderId,
    OrderItemId,
    ProductId,
    ShippedItem,
    generate_order_number,
    to_decimal,
)

DEFAULT_MIN_STOCK_THRESHOLD = 10

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _required_text(value: str | None, field_name: str) -> str:
    """Trim a mandatory text field, rejecting blanks."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(
            f"{field_name} cannot be empty",
            details={"field": field_name},
        )
    return cleaned


# ============================================================================
# Product Aggregate Root
# ============================================================================


@dataclass(kw_only=True, eq=False)
class Product(AggregateRoot[ProductId]):
    """Product aggregate root.

    Owns the stock level of one catalog item. Stock is never negative:
    a reduction larger than the available quantity is rejected without
    touching state. Every stock mutation that leaves the quantity at or
    below ``min_stock_threshold`` raises a ``ProductLowStock`` event.

    Attributes:
        id: Unique product identifier.
        name: Display name.
        sku: Stock keeping unit, trimmed and upper-cased, immutable.
        price: Current catalog price.
        stock_quantity: Units on hand.
        min_stock_threshold: Low-stock threshold (inclusive).
        description: Free-form description.
        category: Catalog category.
        is_active: Whether the product can be added to orders.
    """

    aggregate_type = "Product"

    id: ProductId
    name: str
    sku: str
    price: Money
    stock_quantity: int = 0
    min_stock_threshold: int = DEFAULT_MIN_STOCK_THRESHOLD
    description: str = ""
    category: str = ""
    is_active: bool = True

    def __post_init__(self) -> None:
        """Validate product constraints."""
        self.name = _required_text(self.name, "name")
        self.sku = _required_text(self.sku, "sku").upper()
        self.description = (self.description or "").strip()
        self.category = (self.category or "").strip()
        if self.stock_quantity < 0:
            raise InvalidQuantityError(self.stock_quantity, "Stock quantity cannot be negative")
        if self.min_stock_threshold < 0:
            raise InvalidQuantityError(
                self.min_stock_threshold, "Minimum stock threshold cannot be negative"
            )

    @classmethod
    def create(
        cls,
        name: str,
        sku: str,
        price: Money,
        stock_quantity: int = 0,
        description: str = "",
        category: str = "",
        min_stock_threshold: int = DEFAULT_MIN_STOCK_THRESHOLD,
        created_by: str = "system",
        product_id: ProductId | None = None,
    ) -> "Product":
        """Create a new, active product.

        Args:
            name: Display name.
            sku: Stock keeping unit (normalized to upper case).
            price: Catalog price.
            stock_quantity: Initial stock.
            description: Description.
            category: Category.
            min_stock_threshold: Low-stock threshold.
            created_by: Actor creating the product.
            product_id: Optional pre-generated product ID.

        Returns:
            New Product instance with ``ProductCreated`` recorded, followed
            by ``ProductLowStock`` when the initial stock is already low.
        """
        product = cls(
            id=product_id or ProductId.generate(),
            name=name,
            sku=sku,
            price=price,
            stock_quantity=stock_quantity,
            description=description,
            category=category,
            min_stock_threshold=min_stock_threshold,
            created_by=created_by,
        )
        product._record_event(
            ProductCreated(
                **product._event_context(created_by),
                product_id=str(product.id),
                sku=product.sku,
                name=product.name,
                price=product.price.amount,
                currency=product.price.currency,
                stock_quantity=product.stock_quantity,
            )
        )
        product._check_low_stock(created_by)
        return product

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    @property
    def is_low_stock(self) -> bool:
        """Check if stock is at or below the threshold."""
        return self.stock_quantity <= self.min_stock_threshold

    def has_stock(self, quantity: int) -> bool:
        """Check if the requested quantity is available."""
        return 0 < quantity <= self.stock_quantity

    # -------------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------------

    def reduce_stock(self, quantity: int, actor: str | None = None, reason: str = "") -> None:
        """Take units out of stock.

        Args:
            quantity: Units to remove, must be positive.
            actor: Who performed the change.
            reason: Free-form reason carried on the stock event.

        Raises:
            InvalidQuantityError: If quantity is not positive.
            InsufficientStockError: If quantity exceeds the stock on hand.
        """
        if quantity <= 0:
            raise InvalidQuantityError(quantity)
        if quantity > self.stock_quantity:
            raise InsufficientStockError(str(self.id), self.stock_quantity, quantity)
        self._change_stock(self.stock_quantity - quantity, actor, reason or "reduced")

    def increase_stock(self, quantity: int, actor: str | None = None, reason: str = "") -> None:
        """Put units back into stock.

        Args:
            quantity: Units to add, must be positive.
            actor: Who performed the change.
            reason: Free-form reason carried on the stock event.

        Raises:
            InvalidQuantityError: If quantity is not positive.
        """
        if quantity <= 0:
            raise InvalidQuantityError(quantity)
        self._change_stock(self.stock_quantity + quantity, actor, reason or "increased")

    def _change_stock(self, new_quantity: int, actor: str | None, reason: str) -> None:
        old_quantity = self.stock_quantity
        self.stock_quantity = new_quantity
        self.touch(actor)
        self._record_event(
            ProductStockUpdated(
                **self._event_context(actor),
                product_id=str(self.id),
                sku=self.sku,
                old_quantity=old_quantity,
                new_quantity=new_quantity,
                reason=reason,
            )
        )
        self._check_low_stock(actor)

    def _check_low_stock(self, actor: str | None) -> None:
        # Fires on every qualifying mutation; consumers deduplicate.
        if self.is_low_stock:
            self._record_event(
                ProductLowStock(
                    **self._event_context(actor),
                    product_id=str(self.id),
                    product_name=self.name,
                    sku=self.sku,
                    current_stock=self.stock_quantity,
                    min_stock_threshold=self.min_stock_threshold,
                )
            )

    # -------------------------------------------------------------------------
    # Details & Lifecycle
    # -------------------------------------------------------------------------

    def update_details(
        self,
        name: str,
        description: str,
        price: Money,
        category: str | None = None,
        actor: str | None = None,
    ) -> None:
        """Update descriptive fields and price.

        Existing order items keep the price they were snapshotted with.

        Raises:
            ValidationError: If name is blank.
        """
        new_name = _required_text(name, "name")
        old_price = self.price
        self.name = new_name
        self.description = (description or "").strip()
        if category is not None:
            self.category = category.strip()
        self.price = price
        self.touch(actor)
        self._record_event(
            ProductUpdated(
                **self._event_context(actor),
                product_id=str(self.id),
                name=self.name,
                description=self.description,
                category=self.category,
            )
        )
        if old_price != price:
            self._record_event(
                ProductPriceChanged(
                    **self._event_context(actor),
                    product_id=str(self.id),
                    old_price=old_price.amount,
                    new_price=price.amount,
                    currency=price.currency,
                )
            )

    def activate(self, actor: str | None = None) -> None:
        """Make the product orderable. No-op when already active."""
        if self.is_active:
            return
        self.is_active = True
        self.touch(actor)
        self._record_event(
            ProductActivated(**self._event_context(actor), product_id=str(self.id), sku=self.sku)
        )

    def deactivate(self, actor: str | None = None) -> None:
        """Withdraw the product from sale. Stock is left untouched."""
        if not self.is_active:
            return
        self.is_active = False
        self.touch(actor)
        self._record_event(
            ProductDeactivated(**self._event_context(actor), product_id=str(self.id), sku=self.sku)
        )

    def mark_deleted(self, hard_delete: bool, actor: str | None = None) -> None:
        """Record the deletion of this product.

        A soft delete deactivates the product and keeps the row. A hard
        delete only records the event; removing the row is up to the store.
        """
        if not hard_delete:
            self.deactivate(actor)
        self.touch(actor)
        self._record_event(
            ProductDeleted(
                **self._event_context(actor),
                product_id=str(self.id),
                sku=self.sku,
                name=self.name,
                hard_delete=hard_delete,
            )
        )

    def _event_context(self, actor: str | None) -> dict[str, Any]:
        return {
            "aggregate_id": str(self.id),
            "aggregate_type": self.aggregate_type,
            "actor": actor or "system",
        }


# ============================================================================
# Order Item Entity
# ============================================================================


@dataclass(kw_only=True, eq=False)
class OrderItem(Entity[OrderItemId]):
    """A line item in an order.

    OrderItem is an entity owned by the Order aggregate. Product name and
    unit price are snapshots taken when the line was added and are never
    refreshed from the live product.

    Attributes:
        id: Unique identifier for this line.
        product_id: Referenced product.
        product_name: Product name at the time the line was added.
        quantity: Ordered units, always positive.
        unit_price: Price per unit at the time the line was added.
    """

    id: OrderItemId
    product_id: ProductId
    product_name: str
    quantity: int
    unit_price: Money

    def __post_init__(self) -> None:
        """Validate order item constraints."""
        self.product_name = _required_text(self.product_name, "product_name")
        if self.quantity <= 0:
            raise InvalidQuantityError(self.quantity)
        if self.unit_price.is_zero():
            raise ValidationError(
                "Unit price must be greater than zero",
                details={"unit_price": str(self.unit_price.amount)},
            )

    @property
    def total_price(self) -> Money:
        """Calculate total price for this line item.

        Returns:
            Unit price multiplied by quantity.
        """
        return self.unit_price * self.quantity

    def update_quantity(self, new_quantity: int) -> int:
        """Update item quantity.

        Args:
            new_quantity: New quantity value.

        Returns:
            Previous quantity.

        Raises:
            InvalidQuantityError: If quantity is not positive.
        """
        if new_quantity <= 0:
            raise InvalidQuantityError(new_quantity)
        old_quantity = self.quantity
        self.quantity = new_quantity
        return old_quantity


# ============================================================================
# Order Aggregate Root
# ============================================================================


@dataclass(kw_only=True, eq=False)
class Order(AggregateRoot[OrderId]):
    """Order aggregate root.

    Tracks line items, the derived total and the order lifecycle. The
    total always equals the sum of the line totals: it is recomputed on
    construction and after every item mutation. Stock is not touched
    here; the orchestrator adjusts products in the same unit of work.

    Attributes:
        id: Unique order identifier.
        order_number: Human-readable number, generated once at creation.
        customer_id: Owning customer.
        currency: Currency of every line and of the total.
        status: Current order status.
        payment_status: Payment lifecycle.
        items: Order line items.
        total_amount: Sum of item totals (derived).
        shipping_address: Delivery address.
        notes: Free-form notes (cancellation reason is recorded here).
        payment_method: Method used when the order was paid.
        tracking_number: Shipping tracking number.
    """

    aggregate_type = "Order"

    id: OrderId
    order_number: str
    customer_id: CustomerId
    currency: str = "USD"
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    items: list[OrderItem] = field(default_factory=list)
    total_amount: Money = field(init=False)
    shipping_address: str | None = None
    notes: str | None = None
    payment_method: str | None = None
    tracking_number: str | None = None
    paid_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None

    def __post_init__(self) -> None:
        """Normalize currency and derive the total from the items."""
        self.currency = Money.zero(self.currency).currency
        self._recalculate_total()

    @classmethod
    def create(
        cls,
        customer_id: CustomerId,
        shipping_address: str | None = None,
        notes: str | None = None,
        currency: str = "USD",
        created_by: str = "system",
        order_id: OrderId | None = None,
    ) -> "Order":
        """Create a new pending order with no items.

        Args:
            customer_id: Owning customer.
            shipping_address: Delivery address.
            notes: Free-form notes.
            currency: Order currency.
            created_by: Actor placing the order.
            order_id: Optional pre-generated order ID.

        Returns:
            New Order instance.
        """
        order = cls(
            id=order_id or OrderId.generate(),
            order_number=generate_order_number(),
            customer_id=customer_id,
            currency=currency,
            shipping_address=shipping_address,
            notes=notes,
            created_by=created_by,
        )
        order._record_event(
            OrderCreated(
                **order._event_context(created_by),
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(order.customer_id),
                total_amount=order.total.amount,
                currency=order.currency,
            )
        )
        return order

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    @property
    def total(self) -> Money:
        """Order total, derived from the items."""
        return self.total_amount

    @property
    def item_count(self) -> int:
        """Get total number of units.

        Returns:
            Sum of all item quantities.
        """
        return sum(item.quantity for item in self.items)

    @property
    def is_editable(self) -> bool:
        """Check if items can still be changed."""
        return self.status.is_editable()

    def get_item(self, item_id: OrderItemId) -> OrderItem:
        """Find a line item by ID.

        Raises:
            OrderItemNotFoundError: If the item is not part of this order.
        """
        for item in self.items:
            if item.id == item_id:
                return item
        raise OrderItemNotFoundError(str(self.id), str(item_id))

    def product_ids(self) -> list[ProductId]:
        """Distinct referenced product IDs, in line order."""
        seen: list[ProductId] = []
        for item in self.items:
            if item.product_id not in seen:
                seen.append(item.product_id)
        return seen

    # -------------------------------------------------------------------------
    # Item Management
    # -------------------------------------------------------------------------

    def ensure_editable(self) -> None:
        """Raise unless items may be changed in the current status.

        Raises:
            OrderNotEditableError: If order is past processing.
        """
        if not self.is_editable:
            raise OrderNotEditableError(str(self.id), self.status.value)

    def add_item(
        self,
        product_id: ProductId,
        product_name: str,
        quantity: int,
        unit_price: Money,
        actor: str | None = None,
        item_id: OrderItemId | None = None,
    ) -> OrderItem:
        """Add a line item using a snapshot of the product.

        Args:
            product_id: Referenced product.
            product_name: Snapshot of the product name.
            quantity: Units ordered.
            unit_price: Snapshot of the product price.
            actor: Who performed the change.
            item_id: Optional pre-generated item ID.

        Returns:
            The new line item.

        Raises:
            OrderNotEditableError: If order is past processing.
            CurrencyMismatchError: If price currency differs from the order's.
            InvalidQuantityError: If quantity is not positive.
        """
        self.ensure_editable()
        if unit_price.currency != self.currency:
            raise CurrencyMismatchError(self.currency, unit_price.currency)
        item = OrderItem(
            id=item_id or OrderItemId.generate(),
            product_id=product_id,
            product_name=product_name,
            quantity=quantity,
            unit_price=unit_price,
        )
        self.items.append(item)
        self._recalculate_total()
        self.touch(actor)
        self._record_event(
            OrderItemAdded(
                **self._event_context(actor),
                order_id=str(self.id),
                item_id=str(item.id),
                product_id=str(item.product_id),
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price.amount,
                currency=self.currency,
                order_total=self.total.amount,
            )
        )
        return item

    def remove_item(self, item_id: OrderItemId, actor: str | None = None) -> OrderItem:
        """Remove a line item.

        Returns:
            The removed line item, so the caller can restore its stock.

        Raises:
            OrderNotEditableError: If order is past processing.
            OrderItemNotFoundError: If item is not part of this order.
        """
        self.ensure_editable()
        item = self.get_item(item_id)
        self.items.remove(item)
        self._recalculate_total()
        self.touch(actor)
        self._record_event(
            OrderItemRemoved(
                **self._event_context(actor),
                order_id=str(self.id),
                item_id=str(item.id),
                product_id=str(item.product_id),
                quantity=item.quantity,
                currency=self.currency,
                order_total=self.total.amount,
            )
        )
        return item

    def update_item_quantity(
        self,
        item_id: OrderItemId,
        new_quantity: int,
        actor: str | None = None,
    ) -> int:
        """Change the quantity of a line item.

        Returns:
            Previous quantity. Equal quantities change nothing.

        Raises:
            OrderNotEditableError: If order is past processing.
            OrderItemNotFoundError: If item is not part of this order.
            InvalidQuantityError: If quantity is not positive.
        """
        self.ensure_editable()
        item = self.get_item(item_id)
        if new_quantity == item.quantity:
            return item.quantity
        old_quantity = item.update_quantity(new_quantity)
        self._recalculate_total()
        self.touch(actor)
        self._record_event(
            OrderItemQuantityUpdated(
                **self._event_context(actor),
                order_id=str(self.id),
                item_id=str(item.id),
                product_id=str(item.product_id),
                old_quantity=old_quantity,
                new_quantity=new_quantity,
                currency=self.currency,
                order_total=self.total.amount,
            )
        )
        return old_quantity

    def _recalculate_total(self) -> None:
        total = Money.zero(self.currency)
        for item in self.items:
            total = total + item.total_price
        self.total_amount = total

    # -------------------------------------------------------------------------
    # State Transitions
    # -------------------------------------------------------------------------

    def start_processing(self, actor: str | None = None) -> None:
        """Move a pending order into processing.

        Raises:
            InvalidStateTransitionError: If not pending.
        """
        validate_order_transition(str(self.id), self.status, OrderStatus.PROCESSING)
        self.status = OrderStatus.PROCESSING
        self.touch(actor)
        self._record_event(
            OrderProcessingStarted(
                **self._event_context(actor),
                order_id=str(self.id),
                order_number=self.order_number,
            )
        )

    def mark_as_paid(
        self,
        payment_method: str,
        amount_paid: Money | Decimal | int | str,
        actor: str | None = None,
    ) -> None:
        """Record full payment of the order.

        A pending order walks through processing on its way to paid.
        The amount must equal the current total exactly; nothing changes
        when it does not.

        Args:
            payment_method: How the order was paid.
            amount_paid: Amount received (plain numbers use the order currency).
            actor: Who recorded the payment.

        Raises:
            InvalidStateTransitionError: If order is neither pending nor processing.
            CurrencyMismatchError: If payment currency differs from the order's.
            PaymentAmountMismatchError: If amount differs from the total.
        """
        if self.status == OrderStatus.PENDING:
            # Pending -> Processing -> Paid, both legal edges.
            next_status = OrderStatus.PROCESSING
        else:
            validate_order_transition(str(self.id), self.status, OrderStatus.PAID)
            next_status = OrderStatus.PAID

        paid = amount_paid if isinstance(amount_paid, Money) else Money(to_decimal(amount_paid), self.currency)
        if paid.currency != self.currency:
            raise CurrencyMismatchError(self.currency, paid.currency)
        if paid.amount != self.total.amount:
            raise PaymentAmountMismatchError(str(self.id), paid.amount, self.total.amount)
        method = _required_text(payment_method, "payment_method")

        if next_status == OrderStatus.PROCESSING:
            self.start_processing(actor)
        validate_order_transition(str(self.id), self.status, OrderStatus.PAID)
        self.status = OrderStatus.PAID
        self.payment_status = PaymentStatus.COMPLETED
        self.payment_method = method
        self.paid_at = utcnow()
        self.touch(actor)
        self._record_event(
            OrderPaid(
                **self._event_context(actor),
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                payment_method=method,
                amount_paid=paid.amount,
                currency=self.currency,
            )
        )

    def mark_as_shipped(self, tracking_number: str, actor: str | None = None) -> None:
        """Mark a paid order as shipped.

        Raises:
            InvalidStateTransitionError: If not paid.
            ValidationError: If tracking number is blank.
        """
        validate_order_transition(str(self.id), self.status, OrderStatus.SHIPPED)
        tracking = _required_text(tracking_number, "tracking_number")
        self.status = OrderStatus.SHIPPED
        self.tracking_number = tracking
        self.shipped_at = utcnow()
        self.touch(actor)
        self._record_event(
            OrderShipped(
                **self._event_context(actor),
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                tracking_number=tracking,
                items=tuple(
                    ShippedItem(
                        product_id=str(item.product_id),
                        product_name=item.product_name,
                        quantity=item.quantity,
                        unit_price=item.unit_price.amount,
                    )
                    for item in self.items
                ),
                shipped_at=self.shipped_at,
            )
        )

    def mark_as_delivered(self, actor: str | None = None) -> None:
        """Mark a shipped order as delivered.

        Raises:
            InvalidStateTransitionError: If not shipped.
        """
        validate_order_transition(str(self.id), self.status, OrderStatus.DELIVERED)
        self.status = OrderStatus.DELIVERED
        self.delivered_at = utcnow()
        self.touch(actor)
        self._record_event(
            OrderDelivered(
                **self._event_context(actor),
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                delivered_at=self.delivered_at,
            )
        )

    def cancel(
        self,
        reason: str,
        restored: Mapping[OrderItemId, bool] | None = None,
        actor: str | None = None,
    ) -> None:
        """Cancel the order.

        Stock restoration is done by the caller before cancelling; the
        ``restored`` map records, per line, whether it succeeded.

        Args:
            reason: Cancellation reason.
            restored: Per-item stock restoration outcome.
            actor: Who cancelled.

        Raises:
            OrderNotCancellableError: If order is shipped, delivered or terminal.
        """
        if not self.status.is_cancellable():
            raise OrderNotCancellableError(str(self.id), self.status.value)
        restored = restored or {}
        previous_status = self.status
        self.status = OrderStatus.CANCELLED
        if self.payment_status == PaymentStatus.COMPLETED:
            self.payment_status = PaymentStatus.REFUNDED
        self.notes = f"Cancelled: {reason}"
        self.cancelled_at = utcnow()
        self.touch(actor)
        self._record_event(
            OrderCancelled(
                **self._event_context(actor),
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                reason=reason,
                previous_status=previous_status.value,
                items=tuple(
                    CancelledItem(
                        product_id=str(item.product_id),
                        product_name=item.product_name,
                        quantity=item.quantity,
                        unit_price=item.unit_price.amount,
                        stock_restored=restored.get(item.id, False),
                    )
                    for item in self.items
                ),
            )
        )

    def refund(self, reason: str = "", actor: str | None = None) -> None:
        """Refund a delivered order in full. Stock is not restored.

        Raises:
            InvalidStateTransitionError: If not delivered.
        """
        validate_order_transition(str(self.id), self.status, OrderStatus.REFUNDED)
        self.status = OrderStatus.REFUNDED
        self.payment_status = PaymentStatus.REFUNDED
        self.touch(actor)
        self._record_event(
            OrderRefunded(
                **self._event_context(actor),
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                refund_amount=self.total.amount,
                currency=self.currency,
                reason=reason,
            )
        )

    def _event_context(self, actor: str | None) -> dict[str, Any]:
        return {
            "aggregate_id": str(self.id),
            "aggregate_type": self.aggregate_type,
            "actor": actor or "system",
        }


# ============================================================================
# Customer Aggregate Root
# ============================================================================


@dataclass(kw_only=True, eq=False)
class Customer(AggregateRoot[CustomerId]):
    """Customer aggregate root.

    Attributes:
        id: Unique customer identifier.
        first_name: Given name.
        last_name: Family name.
        email: Contact email, lower-cased.
        phone: Contact phone.
        address: Postal address.
        is_active: Whether the customer may place orders.
    """

    aggregate_type = "Customer"

    id: CustomerId
    first_name: str
    last_name: str
    email: str
    phone: str = ""
    address: str = ""
    is_active: bool = True

    def __post_init__(self) -> None:
        """Validate customer constraints."""
        self.first_name = _required_text(self.first_name, "first_name")
        self.last_name = _required_text(self.last_name, "last_name")
        email = _required_text(self.email, "email").lower()
        if not _EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email format", details={"email": self.email})
        self.email = email
        self.phone = (self.phone or "").strip()
        self.address = (self.address or "").strip()

    @classmethod
    def create(
        cls,
        first_name: str,
        last_name: str,
        email: str,
        phone: str = "",
        address: str = "",
        created_by: str = "system",
        customer_id: CustomerId | None = None,
    ) -> "Customer":
        """Register a new customer."""
        customer = cls(
            id=customer_id or CustomerId.generate(),
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            address=address,
            created_by=created_by,
        )
        customer._record_event(
            CustomerCreated(
                aggregate_id=str(customer.id),
                aggregate_type=cls.aggregate_type,
                actor=created_by,
                customer_id=str(customer.id),
                email=customer.email,
                full_name=customer.full_name,
            )
        )
        return customer

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
