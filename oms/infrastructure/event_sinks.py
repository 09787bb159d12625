"""Event sink adapters.

Each sink receives one ``publish`` call per event, in raised order, from
the post-commit relay.
"""

import asyncio
import json
from collections import defaultdict
from collections.abc import Callable, Coroutine
from typing import Any

import redis.asyncio as aioredis
import structlog

from oms.application.ports import EventSink
from oms.domain.base import DomainEvent

logger = structlog.get_logger()

Handler = Callable[[DomainEvent], Coroutine[Any, Any, Any]]

ALL_EVENTS = "*"


class InMemoryEventSink(EventSink):
    """Records published events and dispatches them to subscribers.

    Subscribers run as background tasks so they never block the command
    that published the event. ``drain()`` waits for them.
    """

    def __init__(self, record: bool = True) -> None:
        """Initialize sink.

        Args:
            record: Keep every published event in ``published``.
        """
        self.record = record
        self.published: list[DomainEvent] = []
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._tasks: set[asyncio.Task] = set()
        self.handler_errors: list[tuple[str, str]] = []

    def subscribe(self, event_type: str, handler: Handler) -> None:
        """Register a handler for an event type, or ``"*"`` for every event."""
        self._handlers[event_type].append(handler)

    async def publish(self, event: DomainEvent) -> None:
        if self.record:
            self.published.append(event)
        for handler in self._handlers.get(event.event_type, []) + self._handlers.get(ALL_EVENTS, []):
            task = asyncio.create_task(self._dispatch(handler, event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _dispatch(self, handler: Handler, event: DomainEvent) -> None:
        try:
            await handler(event)
        except Exception as e:
            self.handler_errors.append((event.event_type, str(e)))
            logger.error(
                "Event handler failed",
                event_type=event.event_type,
                event_id=str(event.event_id),
                error=str(e),
            )

    async def drain(self) -> None:
        """Wait until every dispatched handler has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def event_types(self) -> list[str]:
        """Types of published events, in publication order."""
        return [event.event_type for event in self.published]

    def clear(self) -> None:
        self.published.clear()
        self.handler_errors.clear()


class LoggingEventSink(EventSink):
    """Writes every event to the log."""

    async def publish(self, event: DomainEvent) -> None:
        logger.info(
            "Domain event",
            event_type=event.event_type,
            event_id=str(event.event_id),
            aggregate_type=event.aggregate_type,
            aggregate_id=event.aggregate_id,
            payload=event.to_dict()["payload"],
        )


class RedisStreamEventSink(EventSink):
    """Appends events to Redis Streams, one stream per aggregate type.

    Stream name is ``{prefix}.{aggregate_type}`` (lower-cased), e.g.
    ``oms.events.order``. Entries carry the event type and the JSON body.
    """

    def __init__(
        self,
        client: aioredis.Redis | None = None,
        url: str | None = None,
        stream_prefix: str = "oms.events",
        max_stream_length: int = 10_000,
    ) -> None:
        """Initialize sink.

        Args:
            client: Existing async Redis client.
            url: Redis URL, used when no client is given.
            stream_prefix: Prefix of stream names.
            max_stream_length: Approximate cap on each stream.
        """
        if client is None:
            if url is None:
                raise ValueError("RedisStreamEventSink needs a client or a url")
            client = aioredis.from_url(url, decode_responses=True)
        self.client = client
        self.stream_prefix = stream_prefix
        self.max_stream_length = max_stream_length

    def stream_for(self, event: DomainEvent) -> str:
        return f"{self.stream_prefix}.{(event.aggregate_type or 'unknown').lower()}"

    async def publish(self, event: DomainEvent) -> None:
        payload = {
            "event_type": event.event_type,
            "event_id": str(event.event_id),
            "data": json.dumps(event.to_dict(), default=str),
        }
        await self.client.xadd(
            self.stream_for(event),
            payload,
            maxlen=self.max_stream_length,
            approximate=True,
        )

    async def close(self) -> None:
        await self.client.aclose()


class FanOutEventSink(EventSink):
    """Publishes every event to several sinks.

    All sinks are attempted; the first failure is re-raised afterwards so
    the relay logs it.
    """

    def __init__(self, sinks: list[EventSink]) -> None:
        self.sinks = sinks

    async def publish(self, event: DomainEvent) -> None:
        first_error: Exception | None = None
        for sink in self.sinks:
            try:
                await sink.publish(event)
            except Exception as e:
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error
