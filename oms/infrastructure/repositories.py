"""SQLAlchemy repositories.

Map between domain aggregates and ORM models. Every repository of one
unit of work shares that unit of work's session, so the commit covers
all of them. Driver and ORM failures surface as domain errors: lost
version races and unique-key clashes as ``ConflictError``, connection
and driver failures as ``TransientStoreError``.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from oms.application.unit_of_work import (
    CustomerRepository,
    OrderRepository,
    ProductRepository,
    ProductSearch,
)
from oms.domain.base import AggregateRoot
from oms.domain.entities import Customer, Order, OrderItem, Product
from oms.domain.exceptions import ConflictError, TransientStoreError
from oms.domain.state_machines import INACTIVE_ORDER_STATUSES, OrderStatus, PaymentStatus
from oms.domain.value_objects import CustomerId, Money, OrderId, OrderItemId, ProductId
from oms.infrastructure.database import Base
from oms.infrastructure.models import CustomerModel, OrderItemModel, OrderModel, ProductModel

_INACTIVE_STATUS_VALUES = [status.value for status in INACTIVE_ORDER_STATUSES]


@contextmanager
def translate_store_errors() -> Iterator[None]:
    """Re-raise SQLAlchemy failures as retryable domain errors."""
    try:
        yield
    except StaleDataError as e:
        raise ConflictError(
            "Concurrent modification detected",
            details={"reason": str(e)},
        ) from e
    except IntegrityError as e:
        raise ConflictError(
            "Unique constraint violated",
            details={"reason": str(e.orig)},
        ) from e
    except (OperationalError, DBAPIError) as e:
        raise TransientStoreError(
            "Store temporarily unavailable",
            details={"reason": str(e.orig)},
        ) from e


def _money(amount: Decimal, currency: str) -> Money:
    return Money(Decimal(amount), currency)


_SORT_COLUMNS = {
    "name": ProductModel.name,
    "price": ProductModel.price_amount,
    "category": ProductModel.category,
}


def _search_conditions(criteria: ProductSearch) -> list[Any]:
    conditions: list[Any] = []
    if criteria.category:
        conditions.append(func.lower(ProductModel.category) == criteria.category.lower())
    if criteria.is_active is not None:
        conditions.append(ProductModel.is_active.is_(criteria.is_active))
    if criteria.search_term:
        term = criteria.search_term.lower()
        conditions.append(
            or_(
                func.lower(ProductModel.name).contains(term, autoescape=True),
                func.lower(ProductModel.description).contains(term, autoescape=True),
                func.lower(ProductModel.sku).contains(term, autoescape=True),
            )
        )
    if criteria.min_price is not None:
        conditions.append(ProductModel.price_amount >= criteria.min_price)
    if criteria.max_price is not None:
        conditions.append(ProductModel.price_amount <= criteria.max_price)
    return conditions


class _SessionMixin:
    """Session access with error translation."""

    session: AsyncSession

    async def _execute(self, stmt: Any) -> Any:
        with translate_store_errors():
            return await self.session.execute(stmt)

    async def _fetch(self, model_cls: type[Base], key: str) -> Any:
        with translate_store_errors():
            return await self.session.get(model_cls, key)

    async def _insert(self, model: Base) -> None:
        with translate_store_errors():
            self.session.add(model)
            await self.session.flush()

    async def _flush(self) -> None:
        with translate_store_errors():
            await self.session.flush()

    async def _claim(self, model_cls: type[Base], aggregate: AggregateRoot) -> Any:
        """Lock the stored row and check it still carries the loaded version.

        The no-op UPDATE takes the row write lock, so a racing unit of work
        waits for this one to finish and then fails the same check.

        Raises:
            ConflictError: If the row is gone or was written since it was loaded.
        """
        key = str(aggregate.id)
        table = model_cls.__table__
        await self._execute(
            update(table)
            .where(table.c.id == key)
            .where(table.c.version == aggregate.version)
            .values(version=table.c.version)
        )
        stored = (
            await self._execute(select(table.c.version).where(table.c.id == key))
        ).scalar_one_or_none()
        if stored is None or stored != aggregate.version:
            raise ConflictError(
                f"{aggregate.aggregate_type} {key} was modified concurrently",
                details={
                    "aggregate_id": key,
                    "expected_version": aggregate.version,
                    "actual_version": stored,
                },
            )
        return await self._fetch(model_cls, key)

    async def _remove(self, model_cls: type[Base], key: str) -> None:
        with translate_store_errors():
            model = await self.session.get(model_cls, key)
            if model is not None:
                await self.session.delete(model)
                await self.session.flush()


# ============================================================================
# Product Repository
# ============================================================================


class SqlAlchemyProductRepository(_SessionMixin, ProductRepository):
    """Product repository backed by the ``products`` table."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__()
        self.session = session

    async def _get(self, product_id: ProductId, for_update: bool) -> Product | None:
        stmt = select(ProductModel).where(ProductModel.id == str(product_id))
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        model = (await self._execute(stmt)).scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def _get_by_sku(self, sku: str) -> Product | None:
        stmt = select(ProductModel).where(ProductModel.sku == sku)
        model = (await self._execute(stmt)).scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_low_stock(self, limit: int = 100) -> list[Product]:
        stmt = (
            select(ProductModel)
            .where(ProductModel.is_active.is_(True))
            .where(ProductModel.stock_quantity <= ProductModel.min_stock_threshold)
            .order_by(ProductModel.stock_quantity, ProductModel.name)
            .limit(limit)
        )
        result = await self._execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def search(self, criteria: ProductSearch) -> tuple[list[Product], int]:
        conditions = _search_conditions(criteria)
        total = (
            await self._execute(select(func.count()).select_from(ProductModel).where(*conditions))
        ).scalar_one()

        column = _SORT_COLUMNS[criteria.sort_by]
        stmt = (
            select(ProductModel)
            .where(*conditions)
            .order_by(column.desc() if criteria.descending else column.asc(), ProductModel.id)
            .offset(criteria.offset)
            .limit(criteria.page_size)
        )
        result = await self._execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()], int(total)

    async def list_alternatives(
        self, product_id: ProductId, category: str, limit: int = 5
    ) -> list[Product]:
        stmt = (
            select(ProductModel)
            .where(ProductModel.id != str(product_id))
            .where(ProductModel.is_active.is_(True))
            .where(ProductModel.stock_quantity > 0)
            .where(func.lower(ProductModel.category) == category.lower())
            .order_by(ProductModel.name, ProductModel.id)
            .limit(limit)
        )
        result = await self._execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def _add(self, product: Product) -> None:
        model = ProductModel(id=str(product.id))
        self._apply(product, model)
        await self._insert(model)
        product.version = model.version

    async def _save(self, product: Product) -> None:
        model = await self._claim(ProductModel, product)
        self._apply(product, model)
        await self._flush()
        product.version = model.version

    async def _delete(self, product: Product) -> None:
        await self._claim(ProductModel, product)
        await self._remove(ProductModel, str(product.id))

    @staticmethod
    def _apply(product: Product, model: ProductModel) -> None:
        model.name = product.name
        model.description = product.description
        model.sku = product.sku
        model.category = product.category
        model.price_amount = product.price.amount
        model.price_currency = product.price.currency
        model.stock_quantity = product.stock_quantity
        model.min_stock_threshold = product.min_stock_threshold
        model.is_active = product.is_active
        model.created_at = product.created_at
        model.updated_at = product.updated_at
        model.created_by = product.created_by
        model.updated_by = product.updated_by

    @staticmethod
    def _to_entity(model: ProductModel) -> Product:
        return Product(
            id=ProductId.from_string(model.id),
            name=model.name,
            sku=model.sku,
            price=_money(model.price_amount, model.price_currency),
            stock_quantity=model.stock_quantity,
            min_stock_threshold=model.min_stock_threshold,
            description=model.description,
            category=model.category,
            is_active=model.is_active,
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
            created_by=model.created_by,
            updated_by=model.updated_by,
        )


# ============================================================================
# Order Repository
# ============================================================================


class SqlAlchemyOrderRepository(_SessionMixin, OrderRepository):
    """Order repository backed by ``orders`` and ``order_items``."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__()
        self.session = session

    async def _get(self, order_id: OrderId) -> Order | None:
        model = await self._fetch(OrderModel, str(order_id))
        return self._to_entity(model) if model else None

    async def list_by_customer(self, customer_id: CustomerId) -> list[Order]:
        stmt = (
            select(OrderModel)
            .where(OrderModel.customer_id == str(customer_id))
            .order_by(OrderModel.created_at.desc())
        )
        result = await self._execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def list_by_status(self, status: OrderStatus) -> list[Order]:
        stmt = (
            select(OrderModel)
            .where(OrderModel.status == status.value)
            .order_by(OrderModel.created_at.desc())
        )
        result = await self._execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def count_active_for_product(self, product_id: ProductId) -> int:
        stmt = (
            select(func.count(func.distinct(OrderModel.id)))
            .select_from(OrderModel)
            .join(OrderItemModel, OrderItemModel.order_id == OrderModel.id)
            .where(OrderItemModel.product_id == str(product_id))
            .where(OrderModel.status.notin_(_INACTIVE_STATUS_VALUES))
        )
        return int((await self._execute(stmt)).scalar_one())

    async def _add(self, order: Order) -> None:
        model = OrderModel(id=str(order.id), items=[])
        self._apply(order, model)
        await self._insert(model)
        order.version = model.version

    async def _save(self, order: Order) -> None:
        model = await self._claim(OrderModel, order)
        self._apply(order, model)
        await self._flush()
        order.version = model.version

    async def _delete(self, order: Order) -> None:
        await self._claim(OrderModel, order)
        await self._remove(OrderModel, str(order.id))

    @staticmethod
    def _apply(order: Order, model: OrderModel) -> None:
        model.order_number = order.order_number
        model.customer_id = str(order.customer_id)
        model.status = order.status.value
        model.payment_status = order.payment_status.value
        model.total_amount = order.total.amount
        model.currency = order.currency
        model.shipping_address = order.shipping_address
        model.notes = order.notes
        model.payment_method = order.payment_method
        model.tracking_number = order.tracking_number
        model.paid_at = order.paid_at
        model.shipped_at = order.shipped_at
        model.delivered_at = order.delivered_at
        model.cancelled_at = order.cancelled_at
        model.created_at = order.created_at
        model.updated_at = order.updated_at
        model.created_by = order.created_by
        model.updated_by = order.updated_by

        # Sync items: update in place, add new, drop removed.
        existing = {item.id: item for item in model.items}
        synced: list[OrderItemModel] = []
        for position, item in enumerate(order.items):
            item_model = existing.get(str(item.id))
            if item_model is None:
                item_model = OrderItemModel(id=str(item.id))
            item_model.position = position
            item_model.product_id = str(item.product_id)
            item_model.product_name = item.product_name
            item_model.quantity = item.quantity
            item_model.unit_price = item.unit_price.amount
            synced.append(item_model)
        model.items = synced

    @staticmethod
    def _to_entity(model: OrderModel) -> Order:
        items = [
            OrderItem(
                id=OrderItemId.from_string(item.id),
                product_id=ProductId.from_string(item.product_id),
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=_money(item.unit_price, model.currency),
            )
            for item in sorted(model.items, key=lambda i: i.position)
        ]
        return Order(
            id=OrderId.from_string(model.id),
            order_number=model.order_number,
            customer_id=CustomerId.from_string(model.customer_id),
            currency=model.currency,
            status=OrderStatus(model.status),
            payment_status=PaymentStatus(model.payment_status),
            items=items,
            shipping_address=model.shipping_address,
            notes=model.notes,
            payment_method=model.payment_method,
            tracking_number=model.tracking_number,
            paid_at=model.paid_at,
            shipped_at=model.shipped_at,
            delivered_at=model.delivered_at,
            cancelled_at=model.cancelled_at,
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
            created_by=model.created_by,
            updated_by=model.updated_by,
        )


# ============================================================================
# Customer Repository
# ============================================================================


class SqlAlchemyCustomerRepository(_SessionMixin, CustomerRepository):
    """Customer repository backed by the ``customers`` table."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__()
        self.session = session

    async def _get(self, customer_id: CustomerId) -> Customer | None:
        model = await self._fetch(CustomerModel, str(customer_id))
        return self._to_entity(model) if model else None

    async def _get_by_email(self, email: str) -> Customer | None:
        stmt = select(CustomerModel).where(CustomerModel.email == email)
        model = (await self._execute(stmt)).scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def _add(self, customer: Customer) -> None:
        model = CustomerModel(id=str(customer.id))
        self._apply(customer, model)
        await self._insert(model)
        customer.version = model.version

    async def _save(self, customer: Customer) -> None:
        model = await self._claim(CustomerModel, customer)
        self._apply(customer, model)
        await self._flush()
        customer.version = model.version

    async def _delete(self, customer: Customer) -> None:
        await self._claim(CustomerModel, customer)
        await self._remove(CustomerModel, str(customer.id))

    @staticmethod
    def _apply(customer: Customer, model: CustomerModel) -> None:
        model.first_name = customer.first_name
        model.last_name = customer.last_name
        model.email = customer.email
        model.phone = customer.phone
        model.address = customer.address
        model.is_active = customer.is_active
        model.created_at = customer.created_at
        model.updated_at = customer.updated_at
        model.created_by = customer.created_by
        model.updated_by = customer.updated_by

    @staticmethod
    def _to_entity(model: CustomerModel) -> Customer:
        return Customer(
            id=CustomerId.from_string(model.id),
            first_name=model.first_name,
            last_name=model.last_name,
            email=model.email,
            phone=model.phone,
            address=model.address,
            is_active=model.is_active,
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
            created_by=model.created_by,
            updated_by=model.updated_by,
        )
