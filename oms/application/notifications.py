"""Notification consumers for published domain events.

Consumers run after commit, subscribed to the event sink. They never
mutate aggregates; anything they need from the store they read through
a read-only unit of work.
"""

import asyncio
from datetime import datetime
from typing import Any

import structlog

from oms.application.ports import Cache, Notifier
from oms.application.unit_of_work import UnitOfWorkFactory
from oms.domain.base import DomainEvent, utcnow
from oms.domain.events import (
    OrderCancelled,
    OrderCreated,
    OrderDelivered,
    OrderPaid,
    OrderRefunded,
    OrderShipped,
    ProductLowStock,
)
from oms.domain.value_objects import ProductId
from oms.infrastructure.config import settings

logger = structlog.get_logger()

LOW_STOCK_TOPIC = "inventory.low_stock"
ORDER_STATUS_TOPIC = "order.status"


def low_stock_alert_key(product_id: str, now: datetime | None = None) -> str:
    """Daily suppression key for a product's low-stock alert."""
    day = (now or utcnow()).strftime("%Y%m%d")
    return f"low_stock_alert:{product_id}:{day}"


class LoggingNotifier(Notifier):
    """Notifier that writes notifications to the log."""

    async def send(self, topic: str, message: str, data: dict[str, Any]) -> None:
        logger.info("Notification sent", topic=topic, message=message, **data)


class RecordingNotifier(Notifier):
    """Notifier that keeps every notification in memory."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, dict[str, Any]]] = []

    async def send(self, topic: str, message: str, data: dict[str, Any]) -> None:
        self.sent.append((topic, message, dict(data)))


# ============================================================================
# Low-Stock Alerts
# ============================================================================


class LowStockAlertConsumer:
    """Sends at most one low-stock alert per product per day.

    Low-stock events fire on every qualifying stock mutation; this
    consumer deduplicates them with a time-boxed key in the cache.
    """

    def __init__(
        self,
        cache: Cache,
        notifier: Notifier,
        uow_factory: UnitOfWorkFactory | None = None,
        alert_ttl_hours: int | None = None,
    ) -> None:
        """Initialize consumer.

        Args:
            cache: Holds the suppression keys.
            notifier: Destination for alerts.
            uow_factory: When given, the product is re-read and alerts
                for deleted products are dropped.
            alert_ttl_hours: Suppression lifetime
                (defaults to ``settings.low_stock_alert_ttl_hours``).
        """
        self.cache = cache
        self.notifier = notifier
        self.uow_factory = uow_factory
        self.alert_ttl_hours = (
            settings.low_stock_alert_ttl_hours if alert_ttl_hours is None else alert_ttl_hours
        )
        self._lock = asyncio.Lock()

    async def handle(self, event: DomainEvent) -> bool:
        """Process a low-stock event.

        Returns:
            True if an alert was sent, False if it was suppressed or the
            event is not a low-stock event.
        """
        if not isinstance(event, ProductLowStock):
            return False

        logger.warning(
            "Processing low stock event",
            product_id=event.product_id,
            sku=event.sku,
            current_stock=event.current_stock,
        )
        # Check, send and mark as one step within this process.
        async with self._lock:
            return await self._alert(event)

    async def _alert(self, event: ProductLowStock) -> bool:
        key = low_stock_alert_key(event.product_id)
        if await self.cache.get(key) is not None:
            logger.debug("Low stock alert already sent today", product_id=event.product_id)
            return False

        threshold = event.min_stock_threshold
        if self.uow_factory is not None:
            async with self.uow_factory() as uow:
                product = await uow.products.get(ProductId.from_string(event.product_id))
            if product is None:
                logger.warning("Low stock alert for missing product", product_id=event.product_id)
                return False
            threshold = product.min_stock_threshold

        await self.notifier.send(
            LOW_STOCK_TOPIC,
            f"Low stock: {event.product_name} ({event.sku}) has {event.current_stock} left",
            {
                "product_id": event.product_id,
                "sku": event.sku,
                "current_stock": event.current_stock,
                "min_stock_threshold": threshold,
            },
        )
        await self.cache.set(key, True, self.alert_ttl_hours * 3600)
        logger.info("Low stock alert processed", product_id=event.product_id)
        return True


# ============================================================================
# Order Status Notifications
# ============================================================================


class OrderNotificationConsumer:
    """Tells customers about order lifecycle changes."""

    def __init__(self, notifier: Notifier) -> None:
        self.notifier = notifier

    async def handle(self, event: DomainEvent) -> bool:
        """Send a customer notification for lifecycle events.

        Returns:
            True if a notification was sent.
        """
        message = _order_message(event)
        if message is None:
            return False
        await self.notifier.send(
            ORDER_STATUS_TOPIC,
            message,
            {
                "order_id": event.aggregate_id,
                "customer_id": getattr(event, "customer_id", ""),
                "event_type": event.event_type,
            },
        )
        return True


def _order_message(event: DomainEvent) -> str | None:
    if isinstance(event, OrderCreated):
        return f"Order {event.order_number} received, total {event.total_amount} {event.currency}"
    if isinstance(event, OrderPaid):
        return f"Payment of {event.amount_paid} {event.currency} received for order {event.order_number}"
    if isinstance(event, OrderShipped):
        return f"Order {event.order_number} shipped, tracking number {event.tracking_number}"
    if isinstance(event, OrderDelivered):
        return "Your order was delivered"
    if isinstance(event, OrderCancelled):
        return f"Order {event.order_number} cancelled: {event.reason}"
    if isinstance(event, OrderRefunded):
        return f"Refund of {event.refund_amount} {event.currency} issued"
    return None
