"""Product application service.

Catalog and inventory commands. Stock decisions always read the
product from the store inside the unit of work, never from the cache.
"""

import structlog

from oms.application.commands import (
    ActivateProductCommand,
    AdjustStockCommand,
    CreateProductCommand,
    DeactivateProductCommand,
    DeleteProductCommand,
    DeletionMode,
    UpdateProductDetailsCommand,
)
from oms.application.dto import product_alternative_to_dict
from oms.application.results import DeleteProductResult, DeletionCheckResult, ProductResult
from oms.application.runner import UnitOfWorkRunner
from oms.application.unit_of_work import AbstractUnitOfWork, UnitOfWorkFactory
from oms.application.validation import check_length, parse_amount, parse_id, require_text
from oms.domain.entities import Product
from oms.domain.exceptions import (
    DomainError,
    DuplicateSkuError,
    InvalidQuantityError,
    ProductInUseError,
    ProductNotFoundError,
    ValidationError,
)
from oms.domain.value_objects import Money, ProductId
from oms.infrastructure.config import settings

logger = structlog.get_logger()


class ProductService:
    """Application service for product commands."""

    def __init__(self, runner: UnitOfWorkRunner, uow_factory: UnitOfWorkFactory) -> None:
        """Initialize service.

        Args:
            runner: Runs each command in its own unit of work.
            uow_factory: Read-only units of work for checks.
        """
        self.runner = runner
        self.uow_factory = uow_factory

    async def create_product(self, command: CreateProductCommand) -> ProductResult:
        """Add a product to the catalog.

        The SKU is trimmed and upper-cased and must be unique.

        Returns:
            ProductResult with the created product.
        """
        try:
            name = require_text(command.name, "name", 200)
            sku = require_text(command.sku, "sku", 50).upper()
            check_length(command.description, "description", 2000)
            price = Money(parse_amount(command.price, "price"), command.currency or settings.default_currency)
            if command.stock_quantity < 0:
                raise InvalidQuantityError(command.stock_quantity, "Stock quantity cannot be negative")
            threshold = (
                settings.default_min_stock_threshold
                if command.min_stock_threshold is None
                else command.min_stock_threshold
            )
        except DomainError as e:
            return ProductResult.failure(e)

        async def operation(uow: AbstractUnitOfWork) -> Product:
            if await uow.products.get_by_sku(sku) is not None:
                raise DuplicateSkuError(sku)
            product = Product.create(
                name=name,
                sku=sku,
                price=price,
                stock_quantity=command.stock_quantity,
                description=command.description,
                category=command.category,
                min_stock_threshold=threshold,
                created_by=command.actor,
            )
            await uow.products.add(product)
            return product

        return await self._execute("create_product", operation, sku=sku)

    async def update_details(self, command: UpdateProductDetailsCommand) -> ProductResult:
        """Change name, description, category and price.

        Order items keep the price they were added with.
        """
        try:
            product_id = parse_id(ProductId, command.product_id, "product_id")
            name = require_text(command.name, "name", 200)
            check_length(command.description, "description", 2000)
            amount = parse_amount(command.price, "price")
        except DomainError as e:
            return ProductResult.failure(e)

        async def operation(uow: AbstractUnitOfWork) -> Product:
            product = await _load_product(uow, product_id)
            product.update_details(
                name=name,
                description=command.description,
                price=Money(amount, product.price.currency),
                category=command.category,
                actor=command.actor,
            )
            await uow.products.save(product)
            return product

        return await self._execute("update_product", operation, product_id=str(product_id))

    async def adjust_stock(self, command: AdjustStockCommand) -> ProductResult:
        """Apply a signed stock change.

        Positive changes restock; negative ones take stock out and are
        rejected, without any change, when they exceed the stock on hand.
        """
        try:
            product_id = parse_id(ProductId, command.product_id, "product_id")
            change = command.quantity_change
            if isinstance(change, bool) or not isinstance(change, int):
                raise ValidationError("quantity_change must be an integer")
            if change == 0:
                raise InvalidQuantityError(change, "Quantity change cannot be zero")
        except DomainError as e:
            return ProductResult.failure(e)

        async def operation(uow: AbstractUnitOfWork) -> Product:
            product = await _load_product(uow, product_id)
            if change > 0:
                product.increase_stock(change, command.actor, reason=command.reason or "restock")
            else:
                product.reduce_stock(-change, command.actor, reason=command.reason or "adjustment")
            await uow.products.save(product)
            return product

        return await self._execute(
            "adjust_stock",
            operation,
            product_id=str(product_id),
            quantity_change=change,
        )

    async def activate(self, command: ActivateProductCommand) -> ProductResult:
        """Make a product orderable again."""
        return await self._toggle("activate_product", command.product_id, lambda p: p.activate(command.actor))

    async def deactivate(self, command: DeactivateProductCommand) -> ProductResult:
        """Withdraw a product from sale. Stock is untouched."""
        return await self._toggle("deactivate_product", command.product_id, lambda p: p.deactivate(command.actor))

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    async def check_deletion(
        self, product_id: str, suggest_alternatives: bool = True
    ) -> DeletionCheckResult:
        """Report whether a product can be deleted right now.

        Deletion is allowed only when no non-terminal order references
        the product. When it is blocked, up to
        ``settings.deletion_alternatives_limit`` active, in-stock products
        of the same category are suggested instead.

        Args:
            product_id: Product to check.
            suggest_alternatives: Look up replacement products when blocked.
        """
        alternatives: list[Product] = []
        try:
            pid = parse_id(ProductId, product_id, "product_id")
            async with self.uow_factory() as uow:
                product = await uow.products.get(pid)
                if product is None:
                    raise ProductNotFoundError(str(pid))
                active = await uow.orders.count_active_for_product(pid)
                if active and suggest_alternatives:
                    alternatives = await uow.products.list_alternatives(
                        pid, product.category, settings.deletion_alternatives_limit
                    )
        except DomainError as e:
            return DeletionCheckResult.failure(e)

        return DeletionCheckResult(
            product_id=str(product.id),
            product_name=product.name,
            active_order_count=active,
            can_delete=active == 0,
            alternatives=[product_alternative_to_dict(p) for p in alternatives],
        )

    async def delete_product(self, command: DeleteProductCommand) -> DeleteProductResult:
        """Delete a product softly (deactivate) or hard (remove the row).

        Both modes are rejected while non-terminal orders reference the
        product.
        """
        try:
            product_id = parse_id(ProductId, command.product_id, "product_id")
            mode = DeletionMode(command.mode)
        except ValueError:
            return DeleteProductResult.failure(
                ValidationError(f"Invalid deletion mode: {command.mode!r}", details={"mode": str(command.mode)})
            )
        except DomainError as e:
            return DeleteProductResult.failure(e)
        hard = mode == DeletionMode.HARD

        async def operation(uow: AbstractUnitOfWork) -> Product:
            product = await _load_product(uow, product_id)
            active = await uow.orders.count_active_for_product(product_id)
            if active > 0:
                raise ProductInUseError(str(product.id), product.name, active)
            product.mark_deleted(hard, command.actor)
            if hard:
                await uow.products.delete(product)
            else:
                await uow.products.save(product)
            return product

        try:
            product = await self.runner.run(operation, "delete_product")
        except DomainError as e:
            logger.info(
                "Product deletion rejected",
                product_id=str(product_id),
                error_code=e.error_code,
                error=e.message,
            )
            return DeleteProductResult.failure(e)

        logger.info(
            "Product deleted",
            product_id=str(product.id),
            sku=product.sku,
            hard_delete=hard,
        )
        return DeleteProductResult(product_id=str(product.id), hard_delete=hard)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _toggle(self, name: str, raw_product_id: str, apply) -> ProductResult:
        try:
            product_id = parse_id(ProductId, raw_product_id, "product_id")
        except DomainError as e:
            return ProductResult.failure(e)

        async def operation(uow: AbstractUnitOfWork) -> Product:
            product = await _load_product(uow, product_id)
            apply(product)
            await uow.products.save(product)
            return product

        return await self._execute(name, operation, product_id=str(product_id))

    async def _execute(self, name: str, operation, **log_context) -> ProductResult:
        try:
            product = await self.runner.run(operation, name)
        except DomainError as e:
            logger.info(
                "Product command rejected",
                operation=name,
                error_code=e.error_code,
                error=e.message,
                **log_context,
            )
            return ProductResult.failure(e)

        logger.info(
            "Product command completed",
            operation=name,
            product_id=str(product.id),
            sku=product.sku,
            stock_quantity=product.stock_quantity,
        )
        return ProductResult(product=product)


async def _load_product(uow: AbstractUnitOfWork, product_id: ProductId) -> Product:
    product = await uow.products.get(product_id, for_update=True)
    if product is None:
        raise ProductNotFoundError(str(product_id))
    return product
