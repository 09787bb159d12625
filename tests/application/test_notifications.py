"""Tests for low-stock alerts and order notifications."""

import asyncio
from datetime import datetime, timezone

import pytest

from oms.application.commands import AdjustStockCommand, CreateOrderCommand, OrderLine
from oms.application.notifications import (
    LOW_STOCK_TOPIC,
    ORDER_STATUS_TOPIC,
    LowStockAlertConsumer,
    OrderNotificationConsumer,
    RecordingNotifier,
    low_stock_alert_key,
)
from oms.domain.entities import Product
from oms.domain.events import ProductLowStock
from oms.domain.value_objects import Money
from oms.infrastructure.cache import InMemoryCache
from oms.infrastructure.memory import InMemoryStore, InMemoryUnitOfWork


def _low_stock_event(product: Product | None = None) -> ProductLowStock:
    product = product or Product.create(
        name="Widget",
        sku="WID-1",
        price=Money("5"),
        stock_quantity=2,
        min_stock_threshold=5,
    )
    return next(e for e in product.collect_events() if isinstance(e, ProductLowStock))


class TestLowStockAlertConsumer:
    """Tests for alert deduplication."""

    def test_alert_key_is_daily(self) -> None:
        now = datetime(2024, 3, 5, 23, 59, tzinfo=timezone.utc)
        assert low_stock_alert_key("p-1", now) == "low_stock_alert:p-1:20240305"

    @pytest.mark.asyncio
    async def test_one_alert_per_product_per_day(self) -> None:
        notifier = RecordingNotifier()
        consumer = LowStockAlertConsumer(InMemoryCache(), notifier)
        event = _low_stock_event()

        assert await consumer.handle(event) is True
        assert await consumer.handle(event) is False

        assert len(notifier.sent) == 1
        topic, message, data = notifier.sent[0]
        assert topic == LOW_STOCK_TOPIC
        assert "WID-1" in message
        assert data["current_stock"] == 2

    @pytest.mark.asyncio
    async def test_concurrent_events_send_one_alert(self) -> None:
        notifier = RecordingNotifier()
        consumer = LowStockAlertConsumer(InMemoryCache(), notifier)
        event = _low_stock_event()

        results = await asyncio.gather(*[consumer.handle(event) for _ in range(5)])

        assert results.count(True) == 1
        assert len(notifier.sent) == 1

    @pytest.mark.asyncio
    async def test_products_are_alerted_independently(self) -> None:
        notifier = RecordingNotifier()
        consumer = LowStockAlertConsumer(InMemoryCache(), notifier)

        await consumer.handle(_low_stock_event())
        await consumer.handle(_low_stock_event())

        assert len(notifier.sent) == 2

    @pytest.mark.asyncio
    async def test_other_events_ignored(self) -> None:
        notifier = RecordingNotifier()
        consumer = LowStockAlertConsumer(InMemoryCache(), notifier)
        product = Product.create(name="W", sku="W", price=Money("1"), stock_quantity=50)

        assert await consumer.handle(product.collect_events()[0]) is False
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_deleted_product_not_alerted(self) -> None:
        store = InMemoryStore()
        notifier = RecordingNotifier()
        consumer = LowStockAlertConsumer(
            InMemoryCache(), notifier, uow_factory=lambda: InMemoryUnitOfWork(store)
        )

        assert await consumer.handle(_low_stock_event()) is False
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_current_threshold_reported(self) -> None:
        store = InMemoryStore()
        product = Product.create(
            name="Widget", sku="WID-9", price=Money("5"), stock_quantity=2, min_stock_threshold=5
        )
        event = _low_stock_event(product)
        product.min_stock_threshold = 3
        store.seed(product)
        notifier = RecordingNotifier()
        consumer = LowStockAlertConsumer(
            InMemoryCache(), notifier, uow_factory=lambda: InMemoryUnitOfWork(store)
        )

        await consumer.handle(event)

        assert notifier.sent[0][2]["min_stock_threshold"] == 3

    @pytest.mark.asyncio
    async def test_repeated_reductions_alert_once(self, container, notifier, make_product) -> None:
        product = make_product(stock=10, threshold=5)

        await container.products.adjust_stock(AdjustStockCommand(str(product.id), -6))
        await container.products.adjust_stock(AdjustStockCommand(str(product.id), -1))
        await container.dispatcher.drain()

        assert container.dispatcher.event_types().count("product.low_stock") == 2
        alerts = [sent for sent in notifier.sent if sent[0] == LOW_STOCK_TOPIC]
        assert len(alerts) == 1


class TestOrderNotificationConsumer:
    """Tests for customer-facing order messages."""

    @pytest.mark.asyncio
    async def test_order_created_notifies_customer(self, container, notifier, make_product, make_customer) -> None:
        product = make_product(price="10.00")
        customer = make_customer()

        result = await container.orders.create_order(
            CreateOrderCommand(customer_id=str(customer.id), items=[OrderLine(str(product.id), 2)])
        )
        await container.dispatcher.drain()

        messages = [sent for sent in notifier.sent if sent[0] == ORDER_STATUS_TOPIC]
        assert len(messages) == 1
        _, message, data = messages[0]
        assert result.order.order_number in message
        assert data["order_id"] == str(result.order.id)
        assert data["customer_id"] == str(customer.id)

    @pytest.mark.asyncio
    async def test_non_lifecycle_events_ignored(self) -> None:
        notifier = RecordingNotifier()
        product = Product.create(name="W", sku="W", price=Money("1"), stock_quantity=50)

        assert await OrderNotificationConsumer(notifier).handle(product.collect_events()[0]) is False
        assert notifier.sent == []
