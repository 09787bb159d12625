"""Read-cache keys and post-commit invalidation.

Invalidation is eviction, never update-in-place: the next read
repopulates from the store.
"""

import hashlib
import json
from dataclasses import asdict

import structlog

from oms.application.ports import Cache
from oms.application.unit_of_work import ProductSearch
from oms.domain.base import AggregateRoot
from oms.domain.entities import Customer, Order, Product
from oms.domain.state_machines import OrderStatus

logger = structlog.get_logger()

LOW_STOCK_PRODUCTS_KEY = "products:low_stock"

# Listings take arbitrary filters, so their keys cannot be enumerated on
# write. Each key embeds the current generation; a product write evicts
# the generation and every listing key built from it stops being read.
PRODUCT_LIST_GENERATION_KEY = "products:list_generation"


def order_key(order_id: str) -> str:
    return f"order:{order_id}"


def customer_orders_key(customer_id: str) -> str:
    return f"customer_orders:{customer_id}"


def product_key(product_id: str) -> str:
    return f"product:{product_id}"


def product_sku_key(sku: str) -> str:
    return f"product_sku:{sku}"


def customer_key(customer_id: str) -> str:
    return f"customer:{customer_id}"


def orders_by_status_key(status: OrderStatus) -> str:
    return f"orders_status:{status.value}"


def product_list_key(generation: str, criteria: ProductSearch) -> str:
    payload = json.dumps(asdict(criteria), sort_keys=True, default=str)
    digest = hashlib.sha256(payload.encode()).hexdigest()[:32]
    return f"products:list:{generation}:{digest}"


def keys_for(aggregate: AggregateRoot) -> list[str]:
    """Every cache key whose content depends on the aggregate.

    Args:
        aggregate: A written or deleted aggregate.

    Returns:
        Keys to evict, in a stable order.
    """
    if isinstance(aggregate, Order):
        # The previous status is not known here, so every status list goes.
        return [
            order_key(str(aggregate.id)),
            customer_orders_key(str(aggregate.customer_id)),
            *(orders_by_status_key(status) for status in OrderStatus),
        ]
    if isinstance(aggregate, Product):
        return [
            product_key(str(aggregate.id)),
            product_sku_key(aggregate.sku),
            LOW_STOCK_PRODUCTS_KEY,
            PRODUCT_LIST_GENERATION_KEY,
        ]
    if isinstance(aggregate, Customer):
        return [customer_key(str(aggregate.id)), customer_orders_key(str(aggregate.id))]
    return []


class CacheInvalidator:
    """Evicts cache entries derived from changed aggregates."""

    def __init__(self, cache: Cache) -> None:
        self.cache = cache

    async def invalidate(self, aggregates: list[AggregateRoot]) -> list[str]:
        """Evict every key derived from the given aggregates.

        Eviction failures are logged; the cache is advisory and entries
        expire through their TTL.

        Returns:
            Keys that were evicted.
        """
        keys: list[str] = []
        for aggregate in aggregates:
            for key in keys_for(aggregate):
                if key not in keys:
                    keys.append(key)

        evicted: list[str] = []
        for key in keys:
            try:
                await self.cache.remove(key)
            except Exception as e:
                logger.warning("Cache eviction failed", key=key, error=str(e))
                continue
            evicted.append(key)

        if evicted:
            logger.debug("Cache keys evicted", keys=evicted)
        return evicted
