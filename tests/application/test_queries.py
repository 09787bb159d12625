"""Tests for cache-aside reads."""

from decimal import Decimal
from typing import Any

import pytest

from oms.application.cache_invalidation import product_key
from oms.application.commands import (
    AdjustStockCommand,
    CancelOrderCommand,
    CreateOrderCommand,
    OrderLine,
    StartProcessingCommand,
)
from oms.application.ports import Cache
from oms.application.queries import QueryService
from oms.application.unit_of_work import ProductSearch
from oms.domain.exceptions import ErrorKind
from oms.infrastructure.memory import InMemoryUnitOfWork


class BrokenCache(Cache):
    """Cache whose backend is unreachable."""

    async def get(self, key: str) -> Any | None:
        raise ConnectionError("cache down")

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        raise ConnectionError("cache down")

    async def remove(self, key: str) -> None:
        raise ConnectionError("cache down")


class TestQueryService:
    """Tests for reads through the cache."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, container, make_product) -> None:
        product = make_product(stock=12)

        first = await container.queries.get_product(str(product.id))
        second = await container.queries.get_product(str(product.id))

        assert first.success and not first.cached
        assert second.cached
        assert second.data == first.data
        assert first.data["stock_quantity"] == 12
        assert first.data["price"] == {"amount": "50.00", "currency": "USD"}

    @pytest.mark.asyncio
    async def test_command_evicts_cached_product(self, container, make_product) -> None:
        product = make_product(stock=12)
        await container.queries.get_product(str(product.id))

        await container.products.adjust_stock(AdjustStockCommand(str(product.id), -2))

        assert await container.cache.get(product_key(str(product.id))) is None
        fresh = await container.queries.get_product(str(product.id))
        assert not fresh.cached
        assert fresh.data["stock_quantity"] == 10

    @pytest.mark.asyncio
    async def test_get_order_not_found(self, container) -> None:
        result = await container.queries.get_order("00000000-0000-0000-0000-000000000009")

        assert not result.success
        assert result.error_code == "ORDER_NOT_FOUND"
        assert result.error_kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_malformed_id_is_validation_error(self, container) -> None:
        result = await container.queries.get_product("not-a-uuid")
        assert result.error_kind == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, container) -> None:
        missing = "00000000-0000-0000-0000-000000000009"
        await container.queries.get_product(missing)
        assert await container.cache.get(product_key(missing)) is None

    @pytest.mark.asyncio
    async def test_get_order_with_items(self, container, make_product, make_customer) -> None:
        product = make_product(price="20.00")
        customer = make_customer()
        created = await container.orders.create_order(
            CreateOrderCommand(customer_id=str(customer.id), items=[OrderLine(str(product.id), 3)])
        )

        result = await container.queries.get_order(str(created.order.id))

        assert result.data["status"] == "pending"
        assert result.data["total_amount"] == {"amount": "60.00", "currency": "USD"}
        assert result.data["items"][0]["quantity"] == 3
        assert result.data["order_number"].startswith("ORD-")

    @pytest.mark.asyncio
    async def test_customer_orders_newest_first(self, container, make_product, make_customer) -> None:
        product = make_product(stock=20)
        customer = make_customer()
        for _ in range(3):
            await container.orders.create_order(
                CreateOrderCommand(customer_id=str(customer.id), items=[OrderLine(str(product.id), 1)])
            )

        result = await container.queries.get_customer_orders(str(customer.id))

        created = [order["created_at"] for order in result.data]
        assert len(created) == 3
        assert created == sorted(created, reverse=True)

    @pytest.mark.asyncio
    async def test_customer_orders_cache_evicted_by_new_order(self, container, make_product, make_customer) -> None:
        product = make_product()
        customer = make_customer()
        empty = await container.queries.get_customer_orders(str(customer.id))
        assert empty.data == []

        await container.orders.create_order(
            CreateOrderCommand(customer_id=str(customer.id), items=[OrderLine(str(product.id), 1)])
        )

        refreshed = await container.queries.get_customer_orders(str(customer.id))
        assert not refreshed.cached
        assert len(refreshed.data) == 1

    @pytest.mark.asyncio
    async def test_customer_orders_unknown_customer(self, container) -> None:
        result = await container.queries.get_customer_orders("00000000-0000-0000-0000-000000000009")
        assert result.error_code == "CUSTOMER_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_product_by_sku_is_case_insensitive(self, container, make_product) -> None:
        product = make_product(sku="ABC-42")

        result = await container.queries.get_product_by_sku(" abc-42 ")

        assert result.data["id"] == str(product.id)

    @pytest.mark.asyncio
    async def test_low_stock_products(self, container, make_product) -> None:
        low = make_product(stock=1, threshold=5)
        make_product(stock=50, threshold=5)
        make_product(stock=0, threshold=5, is_active=False)

        result = await container.queries.get_low_stock_products()

        assert [p["id"] for p in result.data] == [str(low.id)]
        assert result.data[0]["is_low_stock"] is True

    @pytest.mark.asyncio
    async def test_get_customer(self, container, make_customer) -> None:
        customer = make_customer(email="ada@example.com")

        result = await container.queries.get_customer(str(customer.id))

        assert result.data["email"] == "ada@example.com"
        assert result.data["full_name"] == "Ada Lovelace"

    @pytest.mark.asyncio
    async def test_unreachable_cache_falls_back_to_store(self, store, make_product) -> None:
        product = make_product(stock=4)
        queries = QueryService(lambda: InMemoryUnitOfWork(store), BrokenCache(), ttl_seconds=60)

        result = await queries.get_product(str(product.id))

        assert result.success
        assert not result.cached
        assert result.data["stock_quantity"] == 4

    @pytest.mark.asyncio
    async def test_upper_case_order_id_sees_cancellation(self, container, make_product, make_customer) -> None:
        product = make_product()
        customer = make_customer()
        created = await container.orders.create_order(
            CreateOrderCommand(customer_id=str(customer.id), items=[OrderLine(str(product.id), 1)])
        )
        order_id = str(created.order.id).upper()
        before = await container.queries.get_order(order_id)
        assert before.data["status"] == "pending"

        await container.orders.cancel_order(CancelOrderCommand(str(created.order.id), "changed mind"))

        after = await container.queries.get_order(order_id)
        assert not after.cached
        assert after.data["status"] == "cancelled"
        assert after.data["id"] == str(created.order.id)


class TestOrdersByStatus:
    """Tests for listing orders by status."""

    @pytest.mark.asyncio
    async def test_lists_orders_in_status(self, container, make_product, make_customer) -> None:
        product = make_product(stock=20)
        customer = make_customer()
        ids = []
        for _ in range(2):
            created = await container.orders.create_order(
                CreateOrderCommand(customer_id=str(customer.id), items=[OrderLine(str(product.id), 1)])
            )
            ids.append(str(created.order.id))
        await container.orders.start_processing(StartProcessingCommand(ids[0]))

        pending = await container.queries.get_orders_by_status("pending")
        processing = await container.queries.get_orders_by_status("PROCESSING")

        assert [o["id"] for o in pending.data] == [ids[1]]
        assert [o["id"] for o in processing.data] == [ids[0]]

    @pytest.mark.asyncio
    async def test_listing_refreshed_after_transition(self, container, make_product, make_customer) -> None:
        product = make_product()
        customer = make_customer()
        created = await container.orders.create_order(
            CreateOrderCommand(customer_id=str(customer.id), items=[OrderLine(str(product.id), 1)])
        )
        assert len((await container.queries.get_orders_by_status("pending")).data) == 1
        assert (await container.queries.get_orders_by_status("cancelled")).data == []

        await container.orders.cancel_order(CancelOrderCommand(str(created.order.id), "changed mind"))

        pending = await container.queries.get_orders_by_status("pending")
        cancelled = await container.queries.get_orders_by_status("cancelled")
        assert not pending.cached and pending.data == []
        assert [o["id"] for o in cancelled.data] == [str(created.order.id)]

    @pytest.mark.asyncio
    async def test_unknown_status_is_validation_error(self, container) -> None:
        result = await container.queries.get_orders_by_status("lost")

        assert result.error_kind == ErrorKind.VALIDATION
        assert "pending" in result.details["allowed"]


class TestListProducts:
    """Tests for the paged catalog listing."""

    @pytest.mark.asyncio
    async def test_active_products_sorted_by_name(self, container, make_product) -> None:
        make_product(name="Gadget")
        make_product(name="Anvil")
        make_product(name="Bolt", is_active=False)

        result = await container.queries.list_products()

        assert [p["name"] for p in result.data["items"]] == ["Anvil", "Gadget"]
        assert result.data["total_count"] == 2
        assert result.data["total_pages"] == 1
        assert result.data["has_next"] is False

    @pytest.mark.asyncio
    async def test_filters(self, container, make_product) -> None:
        cheap = make_product(name="Cheap hammer", price="5.00", category="Tools")
        make_product(name="Dear hammer", price="80.00", category="tools")
        make_product(name="Cheap lamp", price="5.00", category="lighting")

        by_category = await container.queries.list_products(ProductSearch(category="TOOLS"))
        by_range = await container.queries.list_products(
            ProductSearch(search_term="hammer", max_price=Decimal("10"))
        )

        assert by_category.data["total_count"] == 2
        assert [p["id"] for p in by_range.data["items"]] == [str(cheap.id)]

    @pytest.mark.asyncio
    async def test_paging_and_price_sort(self, container, make_product) -> None:
        for price in ("30.00", "10.00", "20.00"):
            make_product(price=price)

        first = await container.queries.list_products(
            ProductSearch(sort_by="price", descending=True, page_size=2)
        )
        second = await container.queries.list_products(
            ProductSearch(sort_by="price", descending=True, page=2, page_size=2)
        )

        assert [p["price"]["amount"] for p in first.data["items"]] == ["30.00", "20.00"]
        assert [p["price"]["amount"] for p in second.data["items"]] == ["10.00"]
        assert first.data["total_pages"] == 2
        assert first.data["has_next"] and not first.data["has_previous"]
        assert second.data["has_previous"] and not second.data["has_next"]

    @pytest.mark.asyncio
    async def test_listing_refreshed_after_product_write(self, container, make_product) -> None:
        product = make_product(stock=12)
        await container.queries.list_products()
        assert (await container.queries.list_products()).cached

        await container.products.adjust_stock(AdjustStockCommand(str(product.id), -2))

        fresh = await container.queries.list_products()
        assert not fresh.cached
        assert fresh.data["items"][0]["stock_quantity"] == 10

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "criteria",
        [
            ProductSearch(page=0),
            ProductSearch(page_size=101),
            ProductSearch(sort_by="stock"),
            ProductSearch(min_price=Decimal("-1")),
            ProductSearch(min_price=Decimal("10"), max_price=Decimal("5")),
        ],
    )
    async def test_invalid_listing_rejected(self, container, criteria) -> None:
        result = await container.queries.list_products(criteria)
        assert result.error_kind == ErrorKind.VALIDATION
