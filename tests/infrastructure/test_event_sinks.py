"""Tests for the event sink adapters."""

import json

import pytest

from oms.application.ports import EventSink
from oms.domain.entities import Product
from oms.domain.value_objects import Money
from oms.infrastructure.event_sinks import (
    ALL_EVENTS,
    FanOutEventSink,
    InMemoryEventSink,
    LoggingEventSink,
    RedisStreamEventSink,
)


class FakeStreamClient:
    """Records XADD calls."""

    def __init__(self) -> None:
        self.entries: list[tuple[str, dict, int, bool]] = []

    async def xadd(self, name: str, fields: dict, maxlen: int | None = None, approximate: bool = True) -> str:
        self.entries.append((name, fields, maxlen, approximate))
        return f"{len(self.entries)}-0"

    async def aclose(self) -> None:
        return None


class BrokenSink(EventSink):
    async def publish(self, event) -> None:
        raise ConnectionError("unreachable")


def _events():
    product = Product.create(
        name="Widget", sku="WID-1", price=Money("5"), stock_quantity=1, min_stock_threshold=3
    )
    return product.collect_events()


class TestInMemoryEventSink:
    """Tests for recording and dispatch."""

    @pytest.mark.asyncio
    async def test_records_in_order(self) -> None:
        sink = InMemoryEventSink()
        for event in _events():
            await sink.publish(event)

        assert sink.event_types() == ["product.created", "product.low_stock"]

    @pytest.mark.asyncio
    async def test_dispatches_to_subscribers(self) -> None:
        sink = InMemoryEventSink(record=False)
        by_type: list[str] = []
        everything: list[str] = []

        async def on_low_stock(event) -> None:
            by_type.append(event.event_type)

        async def on_any(event) -> None:
            everything.append(event.event_type)

        sink.subscribe("product.low_stock", on_low_stock)
        sink.subscribe(ALL_EVENTS, on_any)
        for event in _events():
            await sink.publish(event)
        await sink.drain()

        assert by_type == ["product.low_stock"]
        assert sorted(everything) == ["product.created", "product.low_stock"]
        assert sink.published == []

    @pytest.mark.asyncio
    async def test_handler_failure_is_recorded(self) -> None:
        sink = InMemoryEventSink()

        async def explode(event) -> None:
            raise RuntimeError("handler bug")

        sink.subscribe("product.created", explode)
        await sink.publish(_events()[0])
        await sink.drain()

        assert sink.handler_errors == [("product.created", "handler bug")]

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        sink = InMemoryEventSink()
        await sink.publish(_events()[0])

        sink.clear()

        assert sink.published == []


class TestRedisStreamEventSink:
    """Tests for XADD publication."""

    @pytest.mark.asyncio
    async def test_appends_to_aggregate_stream(self) -> None:
        client = FakeStreamClient()
        sink = RedisStreamEventSink(client=client, max_stream_length=500)
        event = _events()[0]

        await sink.publish(event)

        name, fields, maxlen, approximate = client.entries[0]
        assert name == "oms.events.product"
        assert fields["event_type"] == "product.created"
        assert fields["event_id"] == str(event.event_id)
        assert json.loads(fields["data"])["event_type"] == "product.created"
        assert maxlen == 500
        assert approximate is True

    def test_requires_client_or_url(self) -> None:
        with pytest.raises(ValueError):
            RedisStreamEventSink()


class TestFanOutEventSink:
    """Tests for publishing to several sinks."""

    @pytest.mark.asyncio
    async def test_every_sink_attempted_and_first_error_raised(self) -> None:
        recorder = InMemoryEventSink()
        sink = FanOutEventSink([BrokenSink(), recorder])

        with pytest.raises(ConnectionError):
            await sink.publish(_events()[0])

        assert recorder.event_types() == ["product.created"]

    @pytest.mark.asyncio
    async def test_logging_sink_accepts_events(self) -> None:
        recorder = InMemoryEventSink()
        sink = FanOutEventSink([LoggingEventSink(), recorder])

        for event in _events():
            await sink.publish(event)

        assert len(recorder.published) == 2
