"""Shared fixtures for API tests."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from oms.application.notifications import RecordingNotifier
from oms.infrastructure.bootstrap import Container, build_container, set_container
from oms.infrastructure.config import settings
from oms.infrastructure.memory import InMemoryStore
from oms.main import app


@pytest.fixture
def api_container(store: InMemoryStore, notifier: RecordingNotifier) -> Iterator[Container]:
    """Install an in-memory container as the process-wide one."""
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
    set_container(None)


@pytest.fixture
def client(api_container: Container) -> Iterator[TestClient]:
    """Create test client without authentication."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_client(api_container: Container) -> Iterator[TestClient]:
    """Create test client with valid API key authentication."""
    with TestClient(
        app,
        headers={"Authorization": f"Bearer {settings.oms_api_key}"},
    ) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Get authentication headers."""
    return {"Authorization": f"Bearer {settings.oms_api_key}"}
