"""Post-commit event relay.

Publishes the events of a committed unit of work to the event sink, one
call per event, in raised order. The commit is the durability boundary:
a failed publication is logged and the remaining events are still
attempted, but nothing is rolled back. Delivery is at-least-once.
"""

import structlog

from oms.application.ports import EventSink
from oms.domain.base import DomainEvent

logger = structlog.get_logger()


class EventRelay:
    """Pass-through relay from a unit of work to an event sink."""

    def __init__(self, sink: EventSink) -> None:
        """Initialize relay.

        Args:
            sink: Destination for published events.
        """
        self.sink = sink

    async def publish_all(self, events: list[DomainEvent]) -> int:
        """Publish events in the given order.

        Args:
            events: Events drained from a committed unit of work.

        Returns:
            Number of events the sink accepted.
        """
        published = 0
        for event in events:
            try:
                await self.sink.publish(event)
            except Exception as e:
                logger.error(
                    "Event publication failed",
                    event_id=str(event.event_id),
                    event_type=event.event_type,
                    aggregate_id=event.aggregate_id,
                    error=str(e),
                )
                continue
            published += 1
            logger.debug(
                "Event published",
                event_id=str(event.event_id),
                event_type=event.event_type,
                aggregate_id=event.aggregate_id,
            )
        return published
