"""Read models that cross the application boundary.

Aggregates are flattened to JSON-compatible dicts: these are what the
read cache stores and what the HTTP layer renders. Decimals travel as
strings so no precision is lost in JSON.
"""

from datetime import datetime
from typing import Any

from oms.domain.entities import Customer, Order, OrderItem, Product
from oms.domain.value_objects import Money


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def money_to_dict(money: Money) -> dict[str, str]:
    return money.to_dict()


def order_item_to_dict(item: OrderItem) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "product_id": str(item.product_id),
        "product_name": item.product_name,
        "quantity": item.quantity,
        "unit_price": money_to_dict(item.unit_price),
        "total_price": money_to_dict(item.total_price),
    }


def order_to_dict(order: Order) -> dict[str, Any]:
    """Flatten an order (with items) into its read model."""
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "customer_id": str(order.customer_id),
        "status": order.status.value,
        "payment_status": order.payment_status.value,
        "total_amount": money_to_dict(order.total),
        "item_count": order.item_count,
        "items": [order_item_to_dict(item) for item in order.items],
        "shipping_address": order.shipping_address,
        "notes": order.notes,
        "payment_method": order.payment_method,
        "tracking_number": order.tracking_number,
        "version": order.version,
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
        "created_by": order.created_by,
        "updated_by": order.updated_by,
        "paid_at": _iso(order.paid_at),
        "shipped_at": _iso(order.shipped_at),
        "delivered_at": _iso(order.delivered_at),
        "cancelled_at": _iso(order.cancelled_at),
    }


def product_to_dict(product: Product) -> dict[str, Any]:
    """Flatten a product into its read model."""
    return {
        "id": str(product.id),
        "name": product.name,
        "description": product.description,
        "sku": product.sku,
        "category": product.category,
        "price": money_to_dict(product.price),
        "stock_quantity": product.stock_quantity,
        "min_stock_threshold": product.min_stock_threshold,
        "is_active": product.is_active,
        "is_low_stock": product.is_low_stock,
        "version": product.version,
        "created_at": _iso(product.created_at),
        "updated_at": _iso(product.updated_at),
        "created_by": product.created_by,
        "updated_by": product.updated_by,
    }


def customer_to_dict(customer: Customer) -> dict[str, Any]:
    """Flatten a customer into its read model."""
    return {
        "id": str(customer.id),
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "full_name": customer.full_name,
        "email": customer.email,
        "phone": customer.phone,
        "address": customer.address,
        "is_active": customer.is_active,
        "created_at": _iso(customer.created_at),
        "updated_at": _iso(customer.updated_at),
    }


def product_alternative_to_dict(product: Product) -> dict[str, Any]:
    """Short form of a product offered instead of one that cannot be deleted."""
    return {
        "product_id": str(product.id),
        "name": product.name,
        "sku": product.sku,
        "price": money_to_dict(product.price),
        "stock_quantity": product.stock_quantity,
        "category": product.category,
    }
