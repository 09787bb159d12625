"""Composition root: wires adapters to the application services.

This is the only module that knows about every layer. Backends are
chosen from settings (``store_backend``, ``cache_backend``,
``event_sink_backend``) unless passed explicitly.
"""

from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from oms.application.cache_invalidation import CacheInvalidator
from oms.application.customer_service import CustomerService
from oms.application.event_relay import EventRelay
from oms.application.notifications import (
    LoggingNotifier,
    LowStockAlertConsumer,
    OrderNotificationConsumer,
)
from oms.application.order_service import OrderService
from oms.application.ports import Cache, EventSink, Notifier
from oms.application.product_service import ProductService
from oms.application.queries import QueryService
from oms.application.runner import UnitOfWorkRunner
from oms.application.unit_of_work import AbstractUnitOfWork, UnitOfWorkFactory
from oms.domain.events import ProductLowStock
from oms.infrastructure.cache import InMemoryCache, RedisCache
from oms.infrastructure.config import settings
from oms.infrastructure.event_sinks import (
    ALL_EVENTS,
    FanOutEventSink,
    InMemoryEventSink,
    LoggingEventSink,
    RedisStreamEventSink,
)
from oms.infrastructure.memory import InMemoryStore, InMemoryUnitOfWork
from oms.infrastructure.sqlalchemy_uow import SqlAlchemyUnitOfWork

logger = structlog.get_logger()


@dataclass
class Container:
    """Wired application services and the adapters behind them."""

    uow_factory: UnitOfWorkFactory
    cache: Cache
    event_sink: EventSink
    dispatcher: InMemoryEventSink
    notifier: Notifier
    runner: UnitOfWorkRunner
    orders: OrderService
    products: ProductService
    customers: CustomerService
    queries: QueryService
    low_stock_alerts: LowStockAlertConsumer
    store: InMemoryStore | None = None
    closeables: list[Any] = field(default_factory=list)

    async def close(self) -> None:
        """Release network clients."""
        for closeable in self.closeables:
            await closeable.close()


def build_container(
    store_backend: str | None = None,
    cache_backend: str | None = None,
    event_sink_backend: str | None = None,
    *,
    store: InMemoryStore | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    cache: Cache | None = None,
    notifier: Notifier | None = None,
    max_retries: int | None = None,
    retry_backoff_seconds: float | None = None,
) -> Container:
    """Build a container.

    Args:
        store_backend: ``sqlalchemy`` or ``memory``.
        cache_backend: ``redis`` or ``memory`` (ignored when ``cache`` is given).
        event_sink_backend: ``redis``, ``memory`` or ``log``.
        store: In-memory store to share (memory backend only).
        session_factory: Session factory (sqlalchemy backend only).
        cache: Ready-made cache.
        notifier: Notification channel (defaults to the log).
        max_retries: Unit-of-work retry override.
        retry_backoff_seconds: Unit-of-work backoff override.

    Returns:
        Wired container.
    """
    store_backend = store_backend or settings.store_backend
    cache_backend = cache_backend or settings.cache_backend
    event_sink_backend = event_sink_backend or settings.event_sink_backend
    closeables: list[Any] = []

    # Store
    if store_backend == "memory":
        store = store or InMemoryStore()

        def uow_factory() -> AbstractUnitOfWork:
            return InMemoryUnitOfWork(store)

    elif store_backend == "sqlalchemy":
        store = None

        def uow_factory() -> AbstractUnitOfWork:
            return SqlAlchemyUnitOfWork(session_factory)

    else:
        raise ValueError(f"Unknown store backend: {store_backend}")

    # Cache
    if cache is None:
        if cache_backend == "memory":
            cache = InMemoryCache(default_ttl_seconds=settings.cache_ttl_seconds)
        elif cache_backend == "redis":
            cache = RedisCache(url=settings.redis_url, default_ttl_seconds=settings.cache_ttl_seconds)
            closeables.append(cache)
        else:
            raise ValueError(f"Unknown cache backend: {cache_backend}")

    # Event sink; consumers always run in-process behind the dispatcher.
    if event_sink_backend == "memory":
        dispatcher = InMemoryEventSink()
        event_sink: EventSink = dispatcher
    elif event_sink_backend in ("redis", "log"):
        dispatcher = InMemoryEventSink(record=False)
        if event_sink_backend == "redis":
            primary: EventSink = RedisStreamEventSink(
                url=settings.redis_url,
                stream_prefix=settings.event_stream_prefix,
            )
            closeables.append(primary)
        else:
            primary = LoggingEventSink()
        event_sink = FanOutEventSink([primary, dispatcher])
    else:
        raise ValueError(f"Unknown event sink backend: {event_sink_backend}")

    notifier = notifier or LoggingNotifier()
    low_stock_alerts = LowStockAlertConsumer(cache, notifier, uow_factory=uow_factory)
    order_notifications = OrderNotificationConsumer(notifier)
    dispatcher.subscribe(ProductLowStock.event_type, low_stock_alerts.handle)
    dispatcher.subscribe(ALL_EVENTS, order_notifications.handle)

    runner = UnitOfWorkRunner(
        uow_factory,
        EventRelay(event_sink),
        CacheInvalidator(cache),
        max_retries=max_retries,
        retry_backoff_seconds=retry_backoff_seconds,
    )

    logger.info(
        "Container built",
        store_backend=store_backend,
        cache_backend=type(cache).__name__,
        event_sink_backend=event_sink_backend,
    )
    return Container(
        uow_factory=uow_factory,
        cache=cache,
        event_sink=event_sink,
        dispatcher=dispatcher,
        notifier=notifier,
        runner=runner,
        orders=OrderService(runner),
        products=ProductService(runner, uow_factory),
        customers=CustomerService(runner),
        queries=QueryService(uow_factory, cache),
        low_stock_alerts=low_stock_alerts,
        store=store,
        closeables=closeables,
    )


_container: Container | None = None


def get_container() -> Container:
    """Get the process-wide container, building it from settings on first use."""
    global _container
    if _container is None:
        _container = build_container()
    return _container


def set_container(container: Container | None) -> None:
    """Replace the process-wide container (tests, app startup)."""
    global _container
    _container = container
