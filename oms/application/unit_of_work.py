"""Unit of work and repository contracts.

One unit of work spans one business operation: every aggregate it loads
and every change it persists commit together or not at all. Repositories
track the aggregates written through them so that, after commit, the
unit of work can hand their recorded events to the relay (in raised
order) and tell the cache invalidator which aggregates changed.

Example usage:
    async with uow_factory() as uow:
        product = await uow.products.get(product_id, for_update=True)
        product.reduce_stock(2)
        await uow.products.save(product)
        await uow.commit()
    events = uow.collect_events()
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from types import TracebackType
from typing import Callable, Generic, Self, TypeVar

from oms.domain.base import AggregateRoot, DomainEvent
from oms.domain.entities import Customer, Order, Product
from oms.domain.state_machines import OrderStatus
from oms.domain.value_objects import CustomerId, OrderId, ProductId

A = TypeVar("A", bound=AggregateRoot)

PRODUCT_SORT_FIELDS = ("name", "price", "category")


@dataclass(frozen=True)
class ProductSearch:
    """Filters, ordering and paging of a product listing.

    Attributes:
        category: Exact category, case-insensitive.
        is_active: Only active (True) or inactive (False) products; None for both.
        search_term: Substring of name, description or SKU, case-insensitive.
        min_price: Lowest unit price, inclusive.
        max_price: Highest unit price, inclusive.
        sort_by: One of ``PRODUCT_SORT_FIELDS``.
        descending: Reverse the ordering.
        page: 1-based page number.
        page_size: Products per page.
    """

    category: str | None = None
    is_active: bool | None = True
    search_term: str | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    sort_by: str = "name"
    descending: bool = False
    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


# ============================================================================
# Repositories
# ============================================================================


class TrackingRepository(ABC, Generic[A]):
    """Base repository that remembers every aggregate written through it.

    Loaded aggregates are remembered too, so their buffered events can be
    discarded on rollback.
    """

    def __init__(self) -> None:
        self.seen: dict[str, A] = {}
        self.written: dict[str, A] = {}
        self.deleted: dict[str, A] = {}

    def _loaded(self, aggregate_id: object) -> A | None:
        key = str(aggregate_id)
        if key in self.deleted:
            return None
        return self.seen.get(key)

    def _remember(self, aggregate: A | None) -> A | None:
        # One instance per identity within a unit of work.
        if aggregate is None:
            return None
        return self.seen.setdefault(str(aggregate.id), aggregate)

    async def add(self, aggregate: A) -> None:
        """Persist a new aggregate."""
        await self._add(aggregate)
        self.seen[str(aggregate.id)] = aggregate
        self.written[str(aggregate.id)] = aggregate

    async def save(self, aggregate: A) -> None:
        """Persist changes to a loaded aggregate."""
        await self._save(aggregate)
        self.seen[str(aggregate.id)] = aggregate
        self.written[str(aggregate.id)] = aggregate

    async def delete(self, aggregate: A) -> None:
        """Remove an aggregate from the store."""
        await self._delete(aggregate)
        self.written.pop(str(aggregate.id), None)
        self.seen[str(aggregate.id)] = aggregate
        self.deleted[str(aggregate.id)] = aggregate

    @abstractmethod
    async def _add(self, aggregate: A) -> None: ...

    @abstractmethod
    async def _save(self, aggregate: A) -> None: ...

    @abstractmethod
    async def _delete(self, aggregate: A) -> None: ...


class ProductRepository(TrackingRepository[Product]):
    """Repository for the Product aggregate."""

    async def get(self, product_id: ProductId, for_update: bool = False) -> Product | None:
        """Load a product.

        Args:
            product_id: Product identifier.
            for_update: Lock the row until the unit of work ends.

        Returns:
            Product if found, None otherwise.
        """
        return self._loaded(product_id) or self._remember(await self._get(product_id, for_update))

    async def get_by_sku(self, sku: str) -> Product | None:
        """Load a product by its normalized SKU."""
        return self._remember(await self._get_by_sku(sku.strip().upper()))

    @abstractmethod
    async def _get(self, product_id: ProductId, for_update: bool) -> Product | None: ...

    @abstractmethod
    async def _get_by_sku(self, sku: str) -> Product | None: ...

    @abstractmethod
    async def list_low_stock(self, limit: int = 100) -> list[Product]:
        """Active products at or below their threshold, lowest stock first."""

    @abstractmethod
    async def search(self, criteria: ProductSearch) -> tuple[list[Product], int]:
        """One page of matching products and the total number of matches."""

    @abstractmethod
    async def list_alternatives(
        self, product_id: ProductId, category: str, limit: int = 5
    ) -> list[Product]:
        """Active, in-stock products of the same category, excluding ``product_id``."""


class OrderRepository(TrackingRepository[Order]):
    """Repository for the Order aggregate (items included)."""

    async def get(self, order_id: OrderId) -> Order | None:
        """Load an order with its items.

        Returns:
            Order if found, None otherwise.
        """
        return self._loaded(order_id) or self._remember(await self._get(order_id))

    @abstractmethod
    async def _get(self, order_id: OrderId) -> Order | None: ...

    @abstractmethod
    async def list_by_customer(self, customer_id: CustomerId) -> list[Order]:
        """Orders of one customer, newest first."""

    @abstractmethod
    async def list_by_status(self, status: OrderStatus) -> list[Order]:
        """Orders currently in one status, newest first."""

    @abstractmethod
    async def count_active_for_product(self, product_id: ProductId) -> int:
        """Count non-terminal orders that reference a product."""


class CustomerRepository(TrackingRepository[Customer]):
    """Repository for the Customer aggregate."""

    async def get(self, customer_id: CustomerId) -> Customer | None:
        """Load a customer."""
        return self._loaded(customer_id) or self._remember(await self._get(customer_id))

    async def get_by_email(self, email: str) -> Customer | None:
        """Load a customer by lower-cased email."""
        return self._remember(await self._get_by_email(email.strip().lower()))

    @abstractmethod
    async def _get(self, customer_id: CustomerId) -> Customer | None: ...

    @abstractmethod
    async def _get_by_email(self, email: str) -> Customer | None: ...


# ============================================================================
# Unit of Work
# ============================================================================


class AbstractUnitOfWork(ABC):
    """Atomic boundary for one business operation.

    Use as an async context manager. Leaving the block without a
    successful ``commit()`` rolls back, including when the task is
    cancelled; buffered events of every loaded aggregate are discarded
    on rollback.
    """

    products: ProductRepository
    orders: OrderRepository
    customers: CustomerRepository

    def __init__(self) -> None:
        self.committed = False

    async def __aenter__(self) -> Self:
        self.committed = False
        await self._begin()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if not self.committed:
                await self.rollback()
        finally:
            await self._close()

    async def commit(self) -> None:
        """Atomically persist every change made in this unit of work.

        Raises:
            ConflictError: If a written aggregate changed concurrently.
            TransientStoreError: If the store failed in a retryable way.
        """
        await self._commit()
        self.committed = True

    async def rollback(self) -> None:
        """Discard every change and every buffered event."""
        try:
            await self._rollback()
        finally:
            for aggregate in self._all_seen():
                aggregate.clear_events()

    def collect_events(self) -> list[DomainEvent]:
        """Drain events of every written or deleted aggregate, in raised order.

        Only meaningful after a successful commit.
        """
        events: list[DomainEvent] = []
        for aggregate in self.written_aggregates() + self.deleted_aggregates():
            events.extend(aggregate.collect_events())
        events.sort(key=lambda event: event.sequence)
        return events

    def written_aggregates(self) -> list[AggregateRoot]:
        """Aggregates added or saved in this unit of work."""
        return [
            aggregate
            for repo in self._repositories()
            for aggregate in repo.written.values()
        ]

    def deleted_aggregates(self) -> list[AggregateRoot]:
        """Aggregates deleted in this unit of work."""
        return [
            aggregate
            for repo in self._repositories()
            for aggregate in repo.deleted.values()
        ]

    def _all_seen(self) -> list[AggregateRoot]:
        return [
            aggregate
            for repo in self._repositories()
            for aggregate in repo.seen.values()
        ]

    def _repositories(self) -> list[TrackingRepository]:
        return [self.products, self.orders, self.customers]

    @abstractmethod
    async def _begin(self) -> None: ...

    @abstractmethod
    async def _commit(self) -> None: ...

    @abstractmethod
    async def _rollback(self) -> None: ...

    async def _close(self) -> None:
        """Release resources held by the unit of work."""
        return None


UnitOfWorkFactory = Callable[[], AbstractUnitOfWork]
