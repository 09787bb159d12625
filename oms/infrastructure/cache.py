"""Read-cache adapters.

The cache holds JSON-compatible read models only. It is advisory: the
store stays authoritative and no mutating decision reads from here.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any

import redis.asyncio as aioredis
import structlog

from oms.application.ports import Cache

logger = structlog.get_logger()


class InMemoryCache(Cache):
    """Process-local cache with per-entry expiry.

    Values are stored as JSON text, so a cached read model never aliases
    a live object.
    """

    def __init__(self, default_ttl_seconds: int | None = None) -> None:
        """Initialize cache.

        Args:
            default_ttl_seconds: TTL used when ``set`` gets none; None keeps
                entries until removed.
        """
        self._entries: dict[str, tuple[str, datetime | None]] = {}
        self.default_ttl_seconds = default_ttl_seconds

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        raw, expires_at = entry
        if expires_at is not None and datetime.now(timezone.utc) >= expires_at:
            del self._entries[key]
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl) if ttl else None
        self._entries[key] = (json.dumps(value), expires_at)

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def keys(self) -> list[str]:
        """Keys currently held, expired ones included until next access."""
        return list(self._entries)

    async def cleanup_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed.
        """
        now = datetime.now(timezone.utc)
        expired_keys = [
            key
            for key, (_, expires_at) in self._entries.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired_keys:
            del self._entries[key]
        return len(expired_keys)


class RedisCache(Cache):
    """Cache stored in Redis as JSON strings with ``SET ... EX``."""

    def __init__(
        self,
        client: aioredis.Redis | None = None,
        url: str | None = None,
        key_prefix: str = "oms:",
        default_ttl_seconds: int | None = None,
    ) -> None:
        """Initialize cache.

        Args:
            client: Existing async Redis client.
            url: Redis URL, used when no client is given.
            key_prefix: Namespace prepended to every key.
            default_ttl_seconds: TTL used when ``set`` gets none.
        """
        if client is None:
            if url is None:
                raise ValueError("RedisCache needs a client or a url")
            client = aioredis.from_url(url, decode_responses=True)
        self.client = client
        self.key_prefix = key_prefix
        self.default_ttl_seconds = default_ttl_seconds

    async def get(self, key: str) -> Any | None:
        raw = await self.client.get(self.key_prefix + key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        await self.client.set(self.key_prefix + key, json.dumps(value), ex=ttl or None)

    async def remove(self, key: str) -> None:
        await self.client.delete(self.key_prefix + key)

    async def ping(self) -> bool:
        """Check connectivity."""
        try:
            return bool(await self.client.ping())
        except Exception as e:
            logger.warning("Redis ping failed", error=str(e))
            return False

    async def close(self) -> None:
        await self.client.aclose()
