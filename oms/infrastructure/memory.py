"""In-memory store backend.

Keeps committed aggregates in dicts. A unit of work loads private copies
and stages its writes; commit checks every written aggregate's version
against the store and applies all writes at once under a lock, or none.
Used by the test suite and by ``store_backend=memory``.
"""

import asyncio
import copy

import structlog

from oms.application.unit_of_work import (
    AbstractUnitOfWork,
    CustomerRepository,
    OrderRepository,
    ProductRepository,
    ProductSearch,
)
from oms.domain.base import AggregateRoot
from oms.domain.entities import Customer, Order, Product
from oms.domain.exceptions import ConflictError
from oms.domain.state_machines import INACTIVE_ORDER_STATUSES, OrderStatus
from oms.domain.value_objects import CustomerId, OrderId, ProductId

logger = structlog.get_logger()


def _snapshot(aggregate: AggregateRoot) -> AggregateRoot:
    copied = copy.deepcopy(aggregate)
    copied.clear_events()
    return copied


class InMemoryStore:
    """Committed state shared by every in-memory unit of work."""

    def __init__(self) -> None:
        self.products: dict[str, Product] = {}
        self.orders: dict[str, Order] = {}
        self.customers: dict[str, Customer] = {}
        self.lock = asyncio.Lock()
        self.commit_count = 0
        self._failures: list[Exception] = []

    def fail_next_commits(self, error: Exception, times: int = 1) -> None:
        """Make the next ``times`` commits raise ``error`` without applying."""
        self._failures.extend([error] * times)

    def table(self, aggregate: AggregateRoot) -> dict:
        if isinstance(aggregate, Product):
            return self.products
        if isinstance(aggregate, Order):
            return self.orders
        if isinstance(aggregate, Customer):
            return self.customers
        raise TypeError(f"Unsupported aggregate: {type(aggregate).__name__}")

    def load(self, table: dict, key: str) -> AggregateRoot | None:
        stored = table.get(key)
        return _snapshot(stored) if stored is not None else None

    def seed(self, *aggregates: AggregateRoot) -> None:
        """Store aggregates directly, as if committed. Events are discarded."""
        for aggregate in aggregates:
            aggregate.clear_events()
            aggregate.version += 1
            self.table(aggregate)[str(aggregate.id)] = _snapshot(aggregate)


# ============================================================================
# Repositories
# ============================================================================


_SORT_KEYS = {
    "name": lambda p: p.name,
    "price": lambda p: p.price.amount,
    "category": lambda p: p.category,
}


def _matches(product: Product, criteria: ProductSearch) -> bool:
    if criteria.category and product.category.lower() != criteria.category.lower():
        return False
    if criteria.is_active is not None and product.is_active != criteria.is_active:
        return False
    if criteria.search_term:
        term = criteria.search_term.lower()
        if not any(term in text.lower() for text in (product.name, product.description, product.sku)):
            return False
    if criteria.min_price is not None and product.price.amount < criteria.min_price:
        return False
    if criteria.max_price is not None and product.price.amount > criteria.max_price:
        return False
    return True


class _StagingMixin:
    """Stages writes in the owning unit of work."""

    def __init__(self, store: InMemoryStore, staged: dict) -> None:
        super().__init__()
        self.store = store
        self.staged = staged

    async def _add(self, aggregate: AggregateRoot) -> None:
        self.staged[(type(aggregate), str(aggregate.id))] = ("add", aggregate)

    async def _save(self, aggregate: AggregateRoot) -> None:
        key = (type(aggregate), str(aggregate.id))
        # An aggregate added in this unit of work stays an insert.
        if key in self.staged and self.staged[key][0] == "add":
            return
        self.staged[key] = ("save", aggregate)

    async def _delete(self, aggregate: AggregateRoot) -> None:
        self.staged[(type(aggregate), str(aggregate.id))] = ("delete", aggregate)


class InMemoryProductRepository(_StagingMixin, ProductRepository):

    async def _get(self, product_id: ProductId, for_update: bool) -> Product | None:
        await asyncio.sleep(0)
        return self.store.load(self.store.products, str(product_id))

    async def _get_by_sku(self, sku: str) -> Product | None:
        await asyncio.sleep(0)
        for product in self.store.products.values():
            if product.sku == sku:
                return _snapshot(product)
        return None

    async def list_low_stock(self, limit: int = 100) -> list[Product]:
        products = [
            p for p in self.store.products.values() if p.is_active and p.is_low_stock
        ]
        products.sort(key=lambda p: (p.stock_quantity, p.name))
        return [_snapshot(p) for p in products[:limit]]

    async def search(self, criteria: ProductSearch) -> tuple[list[Product], int]:
        products = [p for p in self.store.products.values() if _matches(p, criteria)]
        products.sort(key=lambda p: str(p.id))
        products.sort(key=_SORT_KEYS[criteria.sort_by], reverse=criteria.descending)
        page = products[criteria.offset : criteria.offset + criteria.page_size]
        return [_snapshot(p) for p in page], len(products)

    async def list_alternatives(
        self, product_id: ProductId, category: str, limit: int = 5
    ) -> list[Product]:
        products = [
            p
            for p in self.store.products.values()
            if p.id != product_id
            and p.is_active
            and p.stock_quantity > 0
            and p.category.lower() == category.lower()
        ]
        products.sort(key=lambda p: (p.name, str(p.id)))
        return [_snapshot(p) for p in products[:limit]]


class InMemoryOrderRepository(_StagingMixin, OrderRepository):

    async def _get(self, order_id: OrderId) -> Order | None:
        await asyncio.sleep(0)
        return self.store.load(self.store.orders, str(order_id))

    async def list_by_customer(self, customer_id: CustomerId) -> list[Order]:
        orders = [o for o in self.store.orders.values() if o.customer_id == customer_id]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return [_snapshot(o) for o in orders]

    async def list_by_status(self, status: OrderStatus) -> list[Order]:
        orders = [o for o in self.store.orders.values() if o.status == status]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return [_snapshot(o) for o in orders]

    async def count_active_for_product(self, product_id: ProductId) -> int:
        return sum(
            1
            for order in self.store.orders.values()
            if order.status not in INACTIVE_ORDER_STATUSES and product_id in order.product_ids()
        )


class InMemoryCustomerRepository(_StagingMixin, CustomerRepository):

    async def _get(self, customer_id: CustomerId) -> Customer | None:
        await asyncio.sleep(0)
        return self.store.load(self.store.customers, str(customer_id))

    async def _get_by_email(self, email: str) -> Customer | None:
        await asyncio.sleep(0)
        for customer in self.store.customers.values():
            if customer.email == email:
                return _snapshot(customer)
        return None


# ============================================================================
# Unit of Work
# ============================================================================


class InMemoryUnitOfWork(AbstractUnitOfWork):
    """Unit of work over an ``InMemoryStore`` with optimistic versioning."""

    def __init__(self, store: InMemoryStore) -> None:
        super().__init__()
        self.store = store
        self._staged: dict = {}
        self._reset()

    def _reset(self) -> None:
        self._staged = {}
        self.products = InMemoryProductRepository(self.store, self._staged)
        self.orders = InMemoryOrderRepository(self.store, self._staged)
        self.customers = InMemoryCustomerRepository(self.store, self._staged)

    async def _begin(self) -> None:
        self._reset()

    async def _commit(self) -> None:
        async with self.store.lock:
            if self.store._failures:
                raise self.store._failures.pop(0)

            for (_, key), (action, aggregate) in self._staged.items():
                current = self.store.table(aggregate).get(key)
                if action == "add":
                    if current is not None:
                        raise ConflictError(
                            f"{aggregate.aggregate_type} {key} already exists",
                            details={"aggregate_id": key},
                        )
                elif current is None or current.version != aggregate.version:
                    raise ConflictError(
                        f"{aggregate.aggregate_type} {key} was modified concurrently",
                        details={
                            "aggregate_id": key,
                            "expected_version": aggregate.version,
                            "actual_version": None if current is None else current.version,
                        },
                    )
            self._check_unique()

            for (_, key), (action, aggregate) in self._staged.items():
                table = self.store.table(aggregate)
                if action == "delete":
                    table.pop(key, None)
                    continue
                aggregate.version += 1
                table[key] = _snapshot(aggregate)
            self.store.commit_count += 1

        logger.debug("In-memory unit of work committed", writes=len(self._staged))

    def _check_unique(self) -> None:
        """Reject writes that would duplicate a SKU or an email."""
        for (_, key), (action, aggregate) in self._staged.items():
            if action == "delete":
                continue
            if isinstance(aggregate, Product):
                clash = any(
                    p.sku == aggregate.sku and pid != key
                    for pid, p in self.store.products.items()
                )
                field_name, value = "sku", aggregate.sku
            elif isinstance(aggregate, Customer):
                clash = any(
                    c.email == aggregate.email and cid != key
                    for cid, c in self.store.customers.items()
                )
                field_name, value = "email", aggregate.email
            else:
                continue
            if clash:
                raise ConflictError(
                    f"Unique constraint violated on {field_name}",
                    details={field_name: value},
                )

    async def _rollback(self) -> None:
        self._staged.clear()
