"""Tests for the cache adapters."""

from datetime import datetime, timedelta

import pytest

from oms.infrastructure import cache as cache_module
from oms.infrastructure.cache import InMemoryCache, RedisCache


class FakeRedis:
    """Just enough of ``redis.asyncio.Redis`` for the cache."""

    def __init__(self, reachable: bool = True) -> None:
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}
        self.reachable = reachable
        self.closed = False

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self.data[key] = value
        self.expiry[key] = ex

    async def delete(self, key: str) -> int:
        return 1 if self.data.pop(key, None) is not None else 0

    async def ping(self) -> bool:
        if not self.reachable:
            raise ConnectionError("connection refused")
        return True

    async def aclose(self) -> None:
        self.closed = True


def _an_hour_later(monkeypatch: pytest.MonkeyPatch) -> None:
    class _Later(datetime):
        @classmethod
        def now(cls, tz=None):
            return datetime.now(tz) + timedelta(hours=1)

    monkeypatch.setattr(cache_module, "datetime", _Later)


class TestInMemoryCache:
    """Tests for the process-local cache."""

    @pytest.mark.asyncio
    async def test_set_get_remove(self) -> None:
        cache = InMemoryCache()

        await cache.set("order:1", {"status": "pending"})
        assert await cache.get("order:1") == {"status": "pending"}

        await cache.remove("order:1")
        await cache.remove("order:1")
        assert await cache.get("order:1") is None

    @pytest.mark.asyncio
    async def test_values_do_not_alias(self) -> None:
        cache = InMemoryCache()
        value = {"items": [1]}

        await cache.set("k", value)
        value["items"].append(2)

        assert await cache.get("k") == {"items": [1]}

    @pytest.mark.asyncio
    async def test_entry_expires(self, monkeypatch) -> None:
        cache = InMemoryCache()
        await cache.set("short", 1, ttl_seconds=60)
        await cache.set("forever", 2)

        _an_hour_later(monkeypatch)

        assert await cache.get("short") is None
        assert await cache.get("forever") == 2

    @pytest.mark.asyncio
    async def test_default_ttl_and_cleanup(self, monkeypatch) -> None:
        cache = InMemoryCache(default_ttl_seconds=60)
        await cache.set("a", 1)
        await cache.set("b", 2, ttl_seconds=7200)

        _an_hour_later(monkeypatch)

        assert await cache.cleanup_expired() == 1
        assert cache.keys() == ["b"]


class TestRedisCache:
    """Tests for the Redis cache against a fake client."""

    @pytest.mark.asyncio
    async def test_prefixed_json_with_ttl(self) -> None:
        client = FakeRedis()
        cache = RedisCache(client=client, default_ttl_seconds=300)

        await cache.set("product:1", {"stock_quantity": 4})

        assert client.data["oms:product:1"] == '{"stock_quantity": 4}'
        assert client.expiry["oms:product:1"] == 300
        assert await cache.get("product:1") == {"stock_quantity": 4}

    @pytest.mark.asyncio
    async def test_explicit_ttl_wins(self) -> None:
        client = FakeRedis()
        cache = RedisCache(client=client, default_ttl_seconds=300)

        await cache.set("k", 1, ttl_seconds=86400)

        assert client.expiry["oms:k"] == 86400

    @pytest.mark.asyncio
    async def test_remove_and_miss(self) -> None:
        client = FakeRedis()
        cache = RedisCache(client=client)
        await cache.set("k", 1)

        await cache.remove("k")

        assert await cache.get("k") is None
        assert client.expiry["oms:k"] is None

    @pytest.mark.asyncio
    async def test_ping(self) -> None:
        assert await RedisCache(client=FakeRedis()).ping() is True
        assert await RedisCache(client=FakeRedis(reachable=False)).ping() is False

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        client = FakeRedis()
        await RedisCache(client=client).close()
        assert client.closed

    def test_requires_client_or_url(self) -> None:
        with pytest.raises(ValueError):
            RedisCache()
