"""Shared fixtures for E2E tests.

Requests go through the full ASGI stack (middleware, routers, services)
against in-memory backends, over an async client so requests can run
concurrently.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import httpx
import pytest_asyncio

from oms.application.notifications import RecordingNotifier
from oms.infrastructure.bootstrap import Container, build_container, set_container
from oms.infrastructure.config import settings
from oms.infrastructure.memory import InMemoryStore
from oms.main import app


# ============================================================================
# Client Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def e2e_container(store: InMemoryStore, notifier: RecordingNotifier) -> AsyncGenerator[Container, None]:
    """Process-wide container over in-memory backends."""
    container = build_container(
        "memory",
        "memory",
        "memory",
        store=store,
        notifier=notifier,
        max_retries=50,
        retry_backoff_seconds=0,
    )
    set_container(container)
    yield container
    await container.dispatcher.drain()
    set_container(None)


@pytest_asyncio.fixture
async def api(e2e_container: Container) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Authenticated async client bound to the app."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
        headers={
            "Authorization": f"Bearer {settings.oms_api_key}",
            "X-Request-ID": "e2e-test-request",
        },
    ) as client:
        yield client


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def seed(api: httpx.AsyncClient) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Create a customer and a product; returns their IDs."""

    async def _seed(stock: int = 10, price: str = "50.00", threshold: int = 2) -> dict[str, Any]:
        product = await api.post(
            "/products",
            json={
                "name": "Widget",
                "sku": "WID-1",
                "price": price,
                "stock_quantity": stock,
                "min_stock_threshold": threshold,
            },
        )
        customer = await api.post(
            "/customers",
            json={"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com"},
        )
        assert product.status_code == 201, product.text
        assert customer.status_code == 201, customer.text
        return {"product_id": product.json()["id"], "customer_id": customer.json()["id"]}

    return _seed
