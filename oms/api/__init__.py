"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from oms.api.customers import router as customers_router
from oms.api.health import router as health_router
from oms.api.orders import router as orders_router
from oms.api.products import router as products_router

__all__ = [
    "customers_router",
    "health_router",
    "orders_router",
    "products_router",
]
