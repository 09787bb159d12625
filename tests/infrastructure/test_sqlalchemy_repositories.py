"""Tests for the SQLAlchemy repositories and unit of work (aiosqlite)."""

import asyncio
from collections.abc import AsyncGenerator
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from oms.application.commands import (
    CancelOrderCommand,
    CreateCustomerCommand,
    CreateOrderCommand,
    CreateProductCommand,
    DeleteProductCommand,
    DeletionMode,
    OrderLine,
    RemoveOrderItemCommand,
)
from oms.application.notifications import RecordingNotifier
from oms.application.unit_of_work import ProductSearch
from oms.domain.entities import Customer, Order, Product
from oms.domain.exceptions import ConflictError
from oms.domain.state_machines import OrderStatus
from oms.domain.value_objects import Money
from oms.infrastructure import models  # noqa: F401  registers tables
from oms.infrastructure.bootstrap import Container, build_container
from oms.infrastructure.database import Base, create_engine, create_session_factory
from oms.infrastructure.sqlalchemy_uow import SqlAlchemyUnitOfWork


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh SQLite file."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'oms.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_container(session_factory) -> AsyncGenerator[Container, None]:
    """Container over the SQLite store with in-memory cache and events."""
    container = build_container(
        "sqlalchemy",
        "memory",
        "memory",
        session_factory=session_factory,
        notifier=RecordingNotifier(),
        max_retries=3,
        retry_backoff_seconds=0,
    )
    yield container
    await container.dispatcher.drain()


async def _add(session_factory, *aggregates) -> None:
    async with SqlAlchemyUnitOfWork(session_factory) as uow:
        for aggregate in aggregates:
            if isinstance(aggregate, Product):
                await uow.products.add(aggregate)
            elif isinstance(aggregate, Order):
                await uow.orders.add(aggregate)
            else:
                await uow.customers.add(aggregate)
        await uow.commit()


def _product(sku: str = "WID-1", stock: int = 10) -> Product:
    return Product.create(
        name="Widget",
        sku=sku,
        price=Money(Decimal("19.99")),
        stock_quantity=stock,
        min_stock_threshold=3,
        description="A widget",
        category="tools",
    )


class TestProductRepository:
    """Tests for product persistence."""

    @pytest.mark.asyncio
    async def test_round_trip(self, session_factory) -> None:
        product = _product()
        await _add(session_factory, product)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            loaded = await uow.products.get(product.id)

        assert loaded.sku == "WID-1"
        assert loaded.price == Money("19.99", "USD")
        assert loaded.stock_quantity == 10
        assert loaded.min_stock_threshold == 3
        assert loaded.category == "tools"
        assert loaded.version == 1

    @pytest.mark.asyncio
    async def test_get_by_sku(self, session_factory) -> None:
        product = _product(sku="ABC-7")
        await _add(session_factory, product)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            loaded = await uow.products.get_by_sku("ABC-7")
            missing = await uow.products.get_by_sku("NOPE")

        assert loaded.id == product.id
        assert missing is None

    @pytest.mark.asyncio
    async def test_save_bumps_version(self, session_factory) -> None:
        product = _product()
        await _add(session_factory, product)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            loaded = await uow.products.get(product.id, for_update=True)
            loaded.reduce_stock(4)
            await uow.products.save(loaded)
            await uow.commit()

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            reloaded = await uow.products.get(product.id)

        assert reloaded.stock_quantity == 6
        assert reloaded.version == 2

    @pytest.mark.asyncio
    async def test_stale_write_is_conflict(self, session_factory) -> None:
        product = _product()
        await _add(session_factory, product)

        async with SqlAlchemyUnitOfWork(session_factory) as stale:
            stale_copy = await stale.products.get(product.id)

            async with SqlAlchemyUnitOfWork(session_factory) as fresh:
                fresh_copy = await fresh.products.get(product.id, for_update=True)
                fresh_copy.increase_stock(1)
                await fresh.products.save(fresh_copy)
                await fresh.commit()

            stale_copy.increase_stock(2)
            with pytest.raises(ConflictError):
                await stale.products.save(stale_copy)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            assert (await uow.products.get(product.id)).stock_quantity == 11

    @pytest.mark.asyncio
    async def test_duplicate_sku_is_conflict(self, session_factory) -> None:
        await _add(session_factory, _product(sku="DUP-1"))

        with pytest.raises(ConflictError):
            await _add(session_factory, _product(sku="DUP-1"))

    @pytest.mark.asyncio
    async def test_uncommitted_changes_roll_back(self, session_factory) -> None:
        product = _product()
        await _add(session_factory, product)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            loaded = await uow.products.get(product.id, for_update=True)
            loaded.reduce_stock(5)
            await uow.products.save(loaded)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            assert (await uow.products.get(product.id)).stock_quantity == 10

    @pytest.mark.asyncio
    async def test_list_low_stock(self, session_factory) -> None:
        low = _product(sku="LOW-1", stock=1)
        await _add(session_factory, low, _product(sku="OK-1", stock=50))

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            products = await uow.products.list_low_stock()

        assert [p.id for p in products] == [low.id]

    @pytest.mark.asyncio
    async def test_search_filters_sorts_and_pages(self, session_factory) -> None:
        anvil = Product.create(name="Anvil", sku="ANV-1", price=Money("30.00"), stock_quantity=5, category="Tools")
        bolt = Product.create(name="Bolt", sku="BLT-1", price=Money("2.00"), stock_quantity=5, category="tools")
        lamp = Product.create(name="Lamp", sku="LMP-1", price=Money("4.00"), stock_quantity=5, category="home")
        retired = Product.create(name="Axe", sku="AXE-1", price=Money("9.00"), stock_quantity=5, category="tools")
        retired.deactivate()
        await _add(session_factory, anvil, bolt, lamp, retired)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            tools, tools_total = await uow.products.search(
                ProductSearch(category="TOOLS", sort_by="price", descending=True, page_size=1)
            )
            found, _ = await uow.products.search(ProductSearch(search_term="lmp"))
            cheap, _ = await uow.products.search(ProductSearch(max_price=Decimal("5")))

        assert tools_total == 2
        assert [p.id for p in tools] == [anvil.id]
        assert [p.id for p in found] == [lamp.id]
        assert [p.id for p in cheap] == [bolt.id, lamp.id]

    @pytest.mark.asyncio
    async def test_list_alternatives(self, session_factory) -> None:
        product = _product(sku="WID-1")
        sibling = _product(sku="WID-2")
        empty = _product(sku="WID-3", stock=0)
        await _add(session_factory, product, sibling, empty)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            alternatives = await uow.products.list_alternatives(product.id, "TOOLS")

        assert [p.id for p in alternatives] == [sibling.id]


class TestCustomerRepository:
    """Tests for customer persistence."""

    @pytest.mark.asyncio
    async def test_round_trip_and_email_lookup(self, session_factory) -> None:
        customer = Customer.create("Ada", "Lovelace", "ada@example.com", address="London")
        await _add(session_factory, customer)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            loaded = await uow.customers.get_by_email("ada@example.com")

        assert loaded.id == customer.id
        assert loaded.full_name == "Ada Lovelace"
        assert loaded.address == "London"

    @pytest.mark.asyncio
    async def test_duplicate_email_is_conflict(self, session_factory) -> None:
        await _add(session_factory, Customer.create("A", "B", "same@example.com"))

        with pytest.raises(ConflictError):
            await _add(session_factory, Customer.create("C", "D", "same@example.com"))


class TestOrderRepository:
    """Tests for order persistence and version checks."""

    async def _seed_order(self, session_factory) -> Order:
        customer = Customer.create("Ada", "Lovelace", "ada@example.com")
        order = Order.create(customer_id=customer.id)
        order.add_item(_product().id, "Widget", 2, Money("19.99"))
        await _add(session_factory, customer, order)
        return order

    @pytest.mark.asyncio
    async def test_round_trip_with_items(self, session_factory) -> None:
        order = await self._seed_order(session_factory)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            loaded = await uow.orders.get(order.id)

        assert loaded.order_number == order.order_number
        assert loaded.total == Money("39.98")
        assert [item.quantity for item in loaded.items] == [2]
        assert loaded.version == 1

    @pytest.mark.asyncio
    async def test_stale_order_write_is_conflict(self, session_factory) -> None:
        """A transition based on a stale read cannot resurrect a cancelled order."""
        order = await self._seed_order(session_factory)

        async with SqlAlchemyUnitOfWork(session_factory) as stale:
            stale_copy = await stale.orders.get(order.id)

            async with SqlAlchemyUnitOfWork(session_factory) as fresh:
                fresh_copy = await fresh.orders.get(order.id)
                fresh_copy.cancel("changed my mind")
                await fresh.orders.save(fresh_copy)
                await fresh.commit()

            stale_copy.start_processing()
            with pytest.raises(ConflictError) as exc_info:
                await stale.orders.save(stale_copy)

        assert exc_info.value.details["expected_version"] == 1
        assert exc_info.value.details["actual_version"] == 2
        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            assert (await uow.orders.get(order.id)).status == OrderStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_save_of_deleted_order_is_conflict(self, session_factory) -> None:
        order = await self._seed_order(session_factory)

        async with SqlAlchemyUnitOfWork(session_factory) as stale:
            stale_copy = await stale.orders.get(order.id)

            async with SqlAlchemyUnitOfWork(session_factory) as fresh:
                await fresh.orders.delete(await fresh.orders.get(order.id))
                await fresh.commit()

            stale_copy.start_processing()
            with pytest.raises(ConflictError):
                await stale.orders.save(stale_copy)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            assert await uow.orders.get(order.id) is None

    @pytest.mark.asyncio
    async def test_list_by_status(self, session_factory) -> None:
        order = await self._seed_order(session_factory)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            pending = await uow.orders.list_by_status(OrderStatus.PENDING)
            shipped = await uow.orders.list_by_status(OrderStatus.SHIPPED)

        assert [o.id for o in pending] == [order.id]
        assert shipped == []


class TestSqlAlchemyServices:
    """The application services over the SQLite store."""

    async def _seed(self, container: Container, stock: int = 10) -> tuple[str, str]:
        product = await container.products.create_product(
            CreateProductCommand(
                name="Widget",
                sku="WID-1",
                price=Decimal("50.00"),
                stock_quantity=stock,
                min_stock_threshold=2,
            )
        )
        customer = await container.customers.create_customer(
            CreateCustomerCommand("Ada", "Lovelace", "ada@example.com")
        )
        return str(product.product.id), str(customer.customer.id)

    @pytest.mark.asyncio
    async def test_order_with_items_persists(self, sql_container) -> None:
        product_id, customer_id = await self._seed(sql_container)

        created = await sql_container.orders.create_order(
            CreateOrderCommand(customer_id=customer_id, items=[OrderLine(product_id, 2)])
        )
        assert created.success

        order = await sql_container.queries.get_order(str(created.order.id))
        product = await sql_container.queries.get_product(product_id)

        assert order.data["total_amount"] == {"amount": "100.00", "currency": "USD"}
        assert order.data["items"][0]["product_name"] == "Widget"
        assert order.data["items"][0]["quantity"] == 2
        assert product.data["stock_quantity"] == 8

    @pytest.mark.asyncio
    async def test_insufficient_stock_writes_nothing(self, sql_container) -> None:
        product_id, customer_id = await self._seed(sql_container, stock=1)

        result = await sql_container.orders.create_order(
            CreateOrderCommand(customer_id=customer_id, items=[OrderLine(product_id, 2)])
        )

        assert result.error_code == "INSUFFICIENT_STOCK"
        orders = await sql_container.queries.get_customer_orders(customer_id)
        assert orders.data == []

    @pytest.mark.asyncio
    async def test_remove_item_and_cancel_restore_stock(self, sql_container) -> None:
        product_id, customer_id = await self._seed(sql_container)
        created = await sql_container.orders.create_order(
            CreateOrderCommand(
                customer_id=customer_id,
                items=[OrderLine(product_id, 2), OrderLine(product_id, 3)],
            )
        )
        first_item = created.order.items[0]

        removed = await sql_container.orders.remove_item(
            RemoveOrderItemCommand(str(created.order.id), str(first_item.id))
        )
        assert removed.success
        assert len(removed.order.items) == 1

        cancelled = await sql_container.orders.cancel_order(
            CancelOrderCommand(str(created.order.id), "changed my mind")
        )
        assert cancelled.success

        product = await sql_container.queries.get_product(product_id)
        assert product.data["stock_quantity"] == 10

    @pytest.mark.asyncio
    async def test_product_delete_blocked_by_active_order(self, sql_container) -> None:
        product_id, customer_id = await self._seed(sql_container)
        await sql_container.orders.create_order(
            CreateOrderCommand(customer_id=customer_id, items=[OrderLine(product_id, 1)])
        )

        check = await sql_container.products.check_deletion(product_id)
        result = await sql_container.products.delete_product(
            DeleteProductCommand(product_id, DeletionMode.HARD)
        )

        assert check.active_order_count == 1
        assert result.error_code == "PRODUCT_IN_USE"

    @pytest.mark.asyncio
    async def test_concurrent_cancels_restore_stock_once(self, sql_container) -> None:
        """Two racing cancels of one order: one wins, the other sees the cancelled order."""
        product_id, customer_id = await self._seed(sql_container)
        created = await sql_container.orders.create_order(
            CreateOrderCommand(customer_id=customer_id, items=[OrderLine(product_id, 4)])
        )
        order_id = str(created.order.id)

        results = await asyncio.gather(
            sql_container.orders.cancel_order(CancelOrderCommand(order_id, "first")),
            sql_container.orders.cancel_order(CancelOrderCommand(order_id, "second")),
        )

        assert sum(1 for result in results if result.success) == 1
        product = await sql_container.queries.get_product(product_id)
        assert product.data["stock_quantity"] == 10
        order = await sql_container.queries.get_order(order_id)
        assert order.data["status"] == "cancelled"
