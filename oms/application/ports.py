"""Contracts the application layer consumes.

Cache and event sink are narrow async interfaces; infrastructure ships
in-memory, logging and Redis implementations.
"""

from abc import ABC, abstractmethod
from typing import Any

from oms.domain.base import DomainEvent


class Cache(ABC):
    """Read-path cache. Never authoritative for mutating decisions."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store a JSON-serializable value with an optional TTL."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Evict a key. Removing a missing key is not an error."""


class EventSink(ABC):
    """Destination for domain events published after commit."""

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """Publish one event.

        Raises:
            Exception: Any transport failure; the relay logs it.
        """


class Notifier(ABC):
    """Customer- and operator-facing messaging channel."""

    @abstractmethod
    async def send(self, topic: str, message: str, data: dict[str, Any]) -> None:
        """Deliver a notification."""
