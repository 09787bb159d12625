"""Read side: cache-aside queries.

Reads check the cache first and fall back to the store, populating the
cache with a TTL. Commands never read from here; after a commit the
invalidator evicts the affected keys so the next read repopulates.
"""

import math
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import structlog

from oms.application.cache_invalidation import (
    LOW_STOCK_PRODUCTS_KEY,
    PRODUCT_LIST_GENERATION_KEY,
    customer_key,
    customer_orders_key,
    order_key,
    orders_by_status_key,
    product_key,
    product_list_key,
    product_sku_key,
)
from oms.application.dto import customer_to_dict, order_to_dict, product_to_dict
from oms.application.ports import Cache
from oms.application.results import ServiceResult
from oms.application.unit_of_work import (
    PRODUCT_SORT_FIELDS,
    AbstractUnitOfWork,
    ProductSearch,
    UnitOfWorkFactory,
)
from oms.application.validation import parse_id
from oms.domain.exceptions import (
    CustomerNotFoundError,
    DomainError,
    OrderNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from oms.domain.state_machines import OrderStatus
from oms.domain.value_objects import CustomerId, OrderId, ProductId
from oms.infrastructure.config import settings

logger = structlog.get_logger()

MAX_PAGE_SIZE = 100


@dataclass
class QueryResult(ServiceResult):
    """Result of a read. ``data`` is a JSON-compatible read model."""

    data: Any = None
    cached: bool = False


class QueryService:
    """Cache-aside reads of orders, products and customers."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        cache: Cache,
        ttl_seconds: int | None = None,
    ) -> None:
        """Initialize query service.

        Args:
            uow_factory: Read-only units of work for cache misses.
            cache: Read cache.
            ttl_seconds: Entry lifetime (defaults to ``settings.cache_ttl_seconds``).
        """
        self.uow_factory = uow_factory
        self.cache = cache
        self.ttl_seconds = settings.cache_ttl_seconds if ttl_seconds is None else ttl_seconds

    async def get_order(self, order_id: str) -> QueryResult:
        """Get an order with its items."""
        try:
            oid = parse_id(OrderId, order_id, "order_id")
        except DomainError as e:
            return QueryResult.failure(e)

        async def load(uow: AbstractUnitOfWork) -> dict[str, Any]:
            order = await uow.orders.get(oid)
            if order is None:
                raise OrderNotFoundError(str(oid))
            return order_to_dict(order)

        return await self._cached(order_key(str(oid)), load)

    async def get_customer_orders(self, customer_id: str) -> QueryResult:
        """Get every order of a customer, newest first."""
        try:
            cid = parse_id(CustomerId, customer_id, "customer_id")
        except DomainError as e:
            return QueryResult.failure(e)

        async def load(uow: AbstractUnitOfWork) -> list[dict[str, Any]]:
            if await uow.customers.get(cid) is None:
                raise CustomerNotFoundError(str(cid))
            return [order_to_dict(order) for order in await uow.orders.list_by_customer(cid)]

        return await self._cached(customer_orders_key(str(cid)), load)

    async def get_orders_by_status(self, status: str) -> QueryResult:
        """Get every order currently in one status, newest first."""
        try:
            order_status = OrderStatus(str(status).strip().lower())
        except ValueError:
            return QueryResult.failure(
                ValidationError(
                    f"Invalid order status: {status!r}",
                    details={"field": "status", "allowed": [s.value for s in OrderStatus]},
                )
            )

        async def load(uow: AbstractUnitOfWork) -> list[dict[str, Any]]:
            return [order_to_dict(order) for order in await uow.orders.list_by_status(order_status)]

        return await self._cached(orders_by_status_key(order_status), load)

    async def get_product(self, product_id: str) -> QueryResult:
        """Get a product."""
        try:
            pid = parse_id(ProductId, product_id, "product_id")
        except DomainError as e:
            return QueryResult.failure(e)

        async def load(uow: AbstractUnitOfWork) -> dict[str, Any]:
            product = await uow.products.get(pid)
            if product is None:
                raise ProductNotFoundError(str(pid))
            return product_to_dict(product)

        return await self._cached(product_key(str(pid)), load)

    async def get_product_by_sku(self, sku: str) -> QueryResult:
        """Get a product by SKU (case-insensitive)."""
        normalized = sku.strip().upper()

        async def load(uow: AbstractUnitOfWork) -> dict[str, Any]:
            product = await uow.products.get_by_sku(normalized)
            if product is None:
                raise ProductNotFoundError(normalized)
            return product_to_dict(product)

        return await self._cached(product_sku_key(normalized), load)

    async def list_products(self, criteria: ProductSearch | None = None) -> QueryResult:
        """Get one page of the catalog.

        Active products sorted by name unless ``criteria`` says otherwise.
        The result carries ``items`` plus paging fields (``page``,
        ``page_size``, ``total_count``, ``total_pages``, ``has_next``,
        ``has_previous``).
        """
        criteria = criteria or ProductSearch()
        try:
            _check_search(criteria)
        except DomainError as e:
            return QueryResult.failure(e)

        async def load(uow: AbstractUnitOfWork) -> dict[str, Any]:
            products, total = await uow.products.search(criteria)
            total_pages = math.ceil(total / criteria.page_size) if total else 0
            return {
                "items": [product_to_dict(p) for p in products],
                "page": criteria.page,
                "page_size": criteria.page_size,
                "total_count": total,
                "total_pages": total_pages,
                "has_next": criteria.page < total_pages,
                "has_previous": criteria.page > 1,
            }

        generation = await self._product_list_generation()
        return await self._cached(product_list_key(generation, criteria), load)

    async def get_low_stock_products(self) -> QueryResult:
        """Get active products at or below their threshold."""

        async def load(uow: AbstractUnitOfWork) -> list[dict[str, Any]]:
            return [product_to_dict(p) for p in await uow.products.list_low_stock()]

        return await self._cached(LOW_STOCK_PRODUCTS_KEY, load)

    async def get_customer(self, customer_id: str) -> QueryResult:
        """Get a customer."""
        try:
            cid = parse_id(CustomerId, customer_id, "customer_id")
        except DomainError as e:
            return QueryResult.failure(e)

        async def load(uow: AbstractUnitOfWork) -> dict[str, Any]:
            customer = await uow.customers.get(cid)
            if customer is None:
                raise CustomerNotFoundError(str(cid))
            return customer_to_dict(customer)

        return await self._cached(customer_key(str(cid)), load)

    async def _product_list_generation(self) -> str:
        try:
            generation = await self.cache.get(PRODUCT_LIST_GENERATION_KEY)
        except Exception as e:
            logger.warning("Cache read failed", key=PRODUCT_LIST_GENERATION_KEY, error=str(e))
            return uuid.uuid4().hex
        if generation is not None:
            return generation

        generation = uuid.uuid4().hex
        try:
            await self.cache.set(PRODUCT_LIST_GENERATION_KEY, generation, self.ttl_seconds)
        except Exception as e:
            logger.warning("Cache write failed", key=PRODUCT_LIST_GENERATION_KEY, error=str(e))
        return generation

    async def _cached(
        self,
        key: str,
        load: Callable[[AbstractUnitOfWork], Awaitable[Any]],
    ) -> QueryResult:
        try:
            hit = await self.cache.get(key)
        except Exception as e:
            logger.warning("Cache read failed", key=key, error=str(e))
            hit = None
        if hit is not None:
            return QueryResult(data=hit, cached=True)

        try:
            async with self.uow_factory() as uow:
                data = await load(uow)
        except DomainError as e:
            return QueryResult.failure(e)

        try:
            await self.cache.set(key, data, self.ttl_seconds)
        except Exception as e:
            logger.warning("Cache write failed", key=key, error=str(e))
        return QueryResult(data=data)


def _check_search(criteria: ProductSearch) -> None:
    """Reject listings that cannot be served.

    Raises:
        ValidationError: On a bad page, page size, sort field or price range.
    """
    if criteria.page < 1:
        raise ValidationError("Page must be at least 1", details={"field": "page"})
    if not 1 <= criteria.page_size <= MAX_PAGE_SIZE:
        raise ValidationError(
            f"Page size must be between 1 and {MAX_PAGE_SIZE}",
            details={"field": "page_size"},
        )
    if criteria.sort_by not in PRODUCT_SORT_FIELDS:
        raise ValidationError(
            f"Cannot sort by {criteria.sort_by!r}",
            details={"field": "sort_by", "allowed": list(PRODUCT_SORT_FIELDS)},
        )
    for field_name in ("min_price", "max_price"):
        value = getattr(criteria, field_name)
        if value is not None and value < 0:
            raise ValidationError(f"{field_name} cannot be negative", details={"field": field_name})
    if (
        criteria.min_price is not None
        and criteria.max_price is not None
        and criteria.min_price > criteria.max_price
    ):
        raise ValidationError(
            "min_price cannot exceed max_price",
            details={"field": "min_price"},
        )
