"""Order application service.

Orchestrates every order command inside one unit of work:
- Creating orders and adding, removing or re-quantifying items, with the
  matching product stock change committed atomically with the order
- Walking the lifecycle: processing, payment, shipping, delivery, refund
- Cancelling, with stock restoration for every line

Inventory-affecting operations follow a fixed sequence: validate the
order status, then validate and mutate product stock, then mutate the
order.
"""

import structlog

from oms.application.commands import (
    AddOrderItemCommand,
    CancelOrderCommand,
    CreateOrderCommand,
    MarkOrderAsDeliveredCommand,
    MarkOrderAsPaidCommand,
    MarkOrderAsShippedCommand,
    RefundOrderCommand,
    RemoveOrderItemCommand,
    StartProcessingCommand,
    UpdateOrderItemQuantityCommand,
)
from oms.application.results import OrderResult
from oms.application.runner import UnitOfWorkRunner
from oms.application.unit_of_work import AbstractUnitOfWork
from oms.application.validation import (
    check_length,
    parse_amount,
    parse_id,
    require_positive,
    require_text,
)
from oms.domain.entities import Order, Product
from oms.domain.exceptions import (
    CustomerNotFoundError,
    DomainError,
    OrderNotCancellableError,
    OrderNotFoundError,
    ProductInactiveError,
    ProductNotFoundError,
    ValidationError,
)
from oms.domain.value_objects import CustomerId, Money, OrderId, OrderItemId, ProductId

logger = structlog.get_logger()

MAX_SHIPPING_ADDRESS_LENGTH = 500
MAX_NOTES_LENGTH = 1000


class OrderService:
    """Application service for order commands."""

    def __init__(self, runner: UnitOfWorkRunner) -> None:
        """Initialize service.

        Args:
            runner: Runs each command in its own unit of work.
        """
        self.runner = runner

    # -------------------------------------------------------------------------
    # Creation & Items
    # -------------------------------------------------------------------------

    async def create_order(self, command: CreateOrderCommand) -> OrderResult:
        """Create an order, reserving stock for every line.

        Args:
            command: Customer, lines and delivery details.

        Returns:
            OrderResult with the created order.
        """
        try:
            customer_id = parse_id(CustomerId, command.customer_id, "customer_id")
            if not command.items:
                raise ValidationError("Order must have at least one item")
            lines = [
                (parse_id(ProductId, line.product_id, "product_id"), require_positive(line.quantity))
                for line in command.items
            ]
            check_length(command.shipping_address, "shipping_address", MAX_SHIPPING_ADDRESS_LENGTH)
            check_length(command.notes, "notes", MAX_NOTES_LENGTH)
        except DomainError as e:
            return OrderResult.failure(e)

        async def operation(uow: AbstractUnitOfWork) -> Order:
            if await uow.customers.get(customer_id) is None:
                raise CustomerNotFoundError(str(customer_id))

            # Load every product before mutating anything.
            products: dict[ProductId, Product] = {}
            for product_id, _ in lines:
                if product_id not in products:
                    products[product_id] = await _load_product(uow, product_id)

            first_product = products[lines[0][0]]
            currency = command.currency or first_product.price.currency
            order = Order.create(
                customer_id=customer_id,
                shipping_address=command.shipping_address,
                notes=command.notes,
                currency=currency,
                created_by=command.actor,
            )
            for product_id, quantity in lines:
                product = products[product_id]
                _ensure_active(product)
                product.reduce_stock(quantity, command.actor, reason=f"order {order.order_number}")
                order.add_item(product.id, product.name, quantity, product.price, command.actor)

            for product in products.values():
                await uow.products.save(product)
            await uow.orders.add(order)
            return order

        return await self._execute(
            "create_order",
            operation,
            customer_id=str(customer_id),
            line_count=len(lines),
        )

    async def add_item(self, command: AddOrderItemCommand) -> OrderResult:
        """Add a line to an editable order and take its stock."""
        try:
            order_id = parse_id(OrderId, command.order_id, "order_id")
            product_id = parse_id(ProductId, command.product_id, "product_id")
            quantity = require_positive(command.quantity)
        except DomainError as e:
            return OrderResult.failure(e)

        async def operation(uow: AbstractUnitOfWork) -> Order:
            order = await _load_order(uow, order_id)
            product = await _load_product(uow, product_id)

            order.ensure_editable()
            _ensure_active(product)
            product.reduce_stock(quantity, command.actor, reason=f"order {order.order_number}")
            order.add_item(product.id, product.name, quantity, product.price, command.actor)

            await uow.products.save(product)
            await uow.orders.save(order)
            return order

        return await self._execute(
            "add_order_item",
            operation,
            order_id=str(order_id),
            product_id=str(product_id),
            quantity=quantity,
        )

    async def remove_item(self, command: RemoveOrderItemCommand) -> OrderResult:
        """Remove a line from an editable order and restore its stock."""
        try:
            order_id = parse_id(OrderId, command.order_id, "order_id")
            item_id = parse_id(OrderItemId, command.item_id, "item_id")
        except DomainError as e:
            return OrderResult.failure(e)

        async def operation(uow: AbstractUnitOfWork) -> Order:
            order = await _load_order(uow, order_id)
            order.ensure_editable()
            item = order.get_item(item_id)
            product = await _load_product(uow, item.product_id)

            product.increase_stock(item.quantity, command.actor, reason=f"item removed from {order.order_number}")
            order.remove_item(item.id, command.actor)

            await uow.products.save(product)
            await uow.orders.save(order)
            return order

        return await self._execute(
            "remove_order_item",
            operation,
            order_id=str(order_id),
            item_id=str(item_id),
        )

    async def update_item_quantity(self, command: UpdateOrderItemQuantityCommand) -> OrderResult:
        """Change the quantity of a line, moving only the delta in stock.

        A positive delta takes stock, a negative one restores it, and a
        zero delta succeeds without writing anything.
        """
        try:
            order_id = parse_id(OrderId, command.order_id, "order_id")
            item_id = parse_id(OrderItemId, command.item_id, "item_id")
            new_quantity = require_positive(command.new_quantity, "new_quantity")
        except DomainError as e:
            return OrderResult.failure(e)

        async def operation(uow: AbstractUnitOfWork) -> Order:
            order = await _load_order(uow, order_id)
            order.ensure_editable()
            item = order.get_item(item_id)
            product = await _load_product(uow, item.product_id)

            delta = new_quantity - item.quantity
            if delta == 0:
                return order
            reason = f"quantity change on {order.order_number}"
            if delta > 0:
                product.reduce_stock(delta, command.actor, reason=reason)
            else:
                product.increase_stock(-delta, command.actor, reason=reason)
            order.update_item_quantity(item.id, new_quantity, command.actor)

            await uow.products.save(product)
            await uow.orders.save(order)
            return order

        return await self._execute(
            "update_order_item_quantity",
            operation,
            order_id=str(order_id),
            item_id=str(item_id),
            new_quantity=new_quantity,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start_processing(self, command: StartProcessingCommand) -> OrderResult:
        """Move a pending order into processing."""
        return await self._transition(
            "start_processing",
            command.order_id,
            lambda order: order.start_processing(command.actor),
        )

    async def mark_as_paid(self, command: MarkOrderAsPaidCommand) -> OrderResult:
        """Record full payment. The amount must equal the order total exactly."""
        try:
            payment_method = require_text(command.payment_method, "payment_method", 50)
            amount = parse_amount(command.amount_paid, "amount_paid")
        except DomainError as e:
            return OrderResult.failure(e)

        def pay(order: Order) -> None:
            paid = Money(amount, command.currency or order.currency)
            order.mark_as_paid(payment_method, paid, command.actor)

        return await self._transition("mark_order_as_paid", command.order_id, pay)

    async def mark_as_shipped(self, command: MarkOrderAsShippedCommand) -> OrderResult:
        """Ship a paid order."""
        try:
            tracking_number = require_text(command.tracking_number, "tracking_number", 100)
        except DomainError as e:
            return OrderResult.failure(e)
        return await self._transition(
            "mark_order_as_shipped",
            command.order_id,
            lambda order: order.mark_as_shipped(tracking_number, command.actor),
        )

    async def mark_as_delivered(self, command: MarkOrderAsDeliveredCommand) -> OrderResult:
        """Confirm delivery of a shipped order."""
        return await self._transition(
            "mark_order_as_delivered",
            command.order_id,
            lambda order: order.mark_as_delivered(command.actor),
        )

    async def refund(self, command: RefundOrderCommand) -> OrderResult:
        """Refund a delivered order. Stock is not restored."""
        return await self._transition(
            "refund_order",
            command.order_id,
            lambda order: order.refund(command.reason, command.actor),
        )

    async def cancel_order(self, command: CancelOrderCommand) -> OrderResult:
        """Cancel an order and return every line's quantity to stock.

        A line whose product no longer exists cannot be restored; it is
        reported with ``stock_restored=False`` and the cancellation
        proceeds.
        """
        try:
            order_id = parse_id(OrderId, command.order_id, "order_id")
            reason = require_text(command.reason, "reason", 500)
        except DomainError as e:
            return OrderResult.failure(e)

        async def operation(uow: AbstractUnitOfWork) -> Order:
            order = await _load_order(uow, order_id)
            if not order.status.is_cancellable():
                raise OrderNotCancellableError(str(order.id), order.status.value)

            restored: dict[OrderItemId, bool] = {}
            touched: dict[ProductId, Product] = {}
            for item in order.items:
                product = touched.get(item.product_id)
                if product is None:
                    product = await uow.products.get(item.product_id, for_update=True)
                if product is None:
                    logger.warning(
                        "Cannot restore stock for missing product",
                        order_id=str(order.id),
                        item_id=str(item.id),
                        product_id=str(item.product_id),
                    )
                    restored[item.id] = False
                    continue
                product.increase_stock(item.quantity, command.actor, reason=f"order {order.order_number} cancelled")
                touched[product.id] = product
                restored[item.id] = True

            order.cancel(reason, restored, command.actor)

            for product in touched.values():
                await uow.products.save(product)
            await uow.orders.save(order)
            return order

        return await self._execute("cancel_order", operation, order_id=str(order_id))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _transition(self, name: str, raw_order_id: str, apply) -> OrderResult:
        """Load an order, apply a lifecycle method and save it."""
        try:
            order_id = parse_id(OrderId, raw_order_id, "order_id")
        except DomainError as e:
            return OrderResult.failure(e)

        async def operation(uow: AbstractUnitOfWork) -> Order:
            order = await _load_order(uow, order_id)
            apply(order)
            await uow.orders.save(order)
            return order

        return await self._execute(name, operation, order_id=str(order_id))

    async def _execute(self, name: str, operation, **log_context) -> OrderResult:
        try:
            order = await self.runner.run(operation, name)
        except DomainError as e:
            logger.info(
                "Order command rejected",
                operation=name,
                error_code=e.error_code,
                error=e.message,
                **log_context,
            )
            return OrderResult.failure(e)

        logger.info(
            "Order command completed",
            operation=name,
            order_id=str(order.id),
            status=order.status.value,
            total=str(order.total.amount),
            **{k: v for k, v in log_context.items() if k != "order_id"},
        )
        return OrderResult(order=order)


# ============================================================================
# Loading Helpers
# ============================================================================


async def _load_order(uow: AbstractUnitOfWork, order_id: OrderId) -> Order:
    order = await uow.orders.get(order_id)
    if order is None:
        raise OrderNotFoundError(str(order_id))
    return order


async def _load_product(uow: AbstractUnitOfWork, product_id: ProductId) -> Product:
    # Always the store, locked for the rest of the unit of work.
    product = await uow.products.get(product_id, for_update=True)
    if product is None:
        raise ProductNotFoundError(str(product_id))
    return product


def _ensure_active(product: Product) -> None:
    if not product.is_active:
        raise ProductInactiveError(str(product.id), product.name)

