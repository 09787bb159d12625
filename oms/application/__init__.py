"""Application layer module.

Contains application services (use cases) that run every command in its
own unit of work, the cache-aside read side, and event consumers.
"""

from oms.application.customer_service import CustomerService
from oms.application.notifications import LowStockAlertConsumer, OrderNotificationConsumer
from oms.application.order_service import OrderService
from oms.application.product_service import ProductService
from oms.application.queries import QueryResult, QueryService
from oms.application.runner import UnitOfWorkRunner
from oms.application.unit_of_work import AbstractUnitOfWork

__all__ = [
    "AbstractUnitOfWork",
    "CustomerService",
    "LowStockAlertConsumer",
    "OrderNotificationConsumer",
    "OrderService",
    "ProductService",
    "QueryResult",
    "QueryService",
    "UnitOfWorkRunner",
]
