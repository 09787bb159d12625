"""Shared fixtures: an in-memory container and seeded aggregates."""

from collections.abc import AsyncGenerator, Callable
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio

from oms.application.notifications import RecordingNotifier
from oms.domain.entities import Customer, Product
from oms.domain.value_objects import Money
from oms.infrastructure.bootstrap import Container, build_container
from oms.infrastructure.memory import InMemoryStore


@pytest.fixture
def store() -> InMemoryStore:
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Notifier that records what it was asked to send."""
    return RecordingNotifier()


@pytest_asyncio.fixture
async def container(store: InMemoryStore, notifier: RecordingNotifier) -> AsyncGenerator[Container, None]:
    """Container wired to memory backends with generous, instant retries.

    Event handlers still running at the end of the test are awaited.
    """
    container = build_container(
        "memory",
        "memory",
        "memory",
        store=store,
        notifier=notifier,
        max_retries=50,
        retry_backoff_seconds=0,
    )
    yield container
    await container.dispatcher.drain()


@pytest.fixture
def make_product(store: InMemoryStore) -> Callable[..., Product]:
    """Seed a committed product and return it."""

    def _make(
        stock: int = 10,
        price: str = "50.00",
        threshold: int = 2,
        name: str = "Widget",
        sku: str | None = None,
        currency: str = "USD",
        is_active: bool = True,
        category: str = "",
    ) -> Product:
        product = Product.create(
            name=name,
            sku=sku or f"SKU-{uuid4().hex[:8]}",
            price=Money(Decimal(price), currency),
            stock_quantity=stock,
            min_stock_threshold=threshold,
            category=category,
        )
        product.is_active = is_active
        store.seed(product)
        return product

    return _make


@pytest.fixture
def make_customer(store: InMemoryStore) -> Callable[..., Customer]:
    """Seed a committed customer and return it."""

    def _make(email: str | None = None) -> Customer:
        customer = Customer.create(
            first_name="Ada",
            last_name="Lovelace",
            email=email or f"ada-{uuid4().hex[:8]}@example.com",
        )
        store.seed(customer)
        return customer

    return _make
