"""SQLAlchemy models for database tables.

Provides ORM models for products, customers, orders and order items.
Money is persisted as an (amount, currency) pair. Products, orders and
customers carry a version column used for optimistic concurrency.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from oms.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Product Model
# ============================================================================


class ProductModel(Base):
    """Product model for database persistence."""

    __tablename__ = "products"

    id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    sku = Column(String(50), nullable=False, unique=True, index=True)
    category = Column(String(100), nullable=False, default="")
    price_amount = Column(Numeric(18, 2), nullable=False)
    price_currency = Column(String(3), nullable=False, default="USD")
    stock_quantity = Column(Integer, nullable=False, default=0)
    min_stock_threshold = Column(Integer, nullable=False, default=10)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    version = Column(Integer, nullable=False)

    # Audit
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(100), nullable=False, default="system")
    updated_by = Column(String(100), nullable=True)

    __mapper_args__ = {"version_id_col": version}


# ============================================================================
# Customer Model
# ============================================================================


class CustomerModel(Base):
    """Customer model for database persistence."""

    __tablename__ = "customers"

    id = Column(String(36), primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(50), nullable=False, default="")
    address = Column(String(500), nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(100), nullable=False, default="system")
    updated_by = Column(String(100), nullable=True)

    __mapper_args__ = {"version_id_col": version}


# ============================================================================
# Order Models
# ============================================================================


class OrderModel(Base):
    """Order model for database persistence.

    Tracks the full order lifecycle from creation to delivery, refund or
    cancellation. Items are owned by the order and deleted with it.
    """

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    order_number = Column(String(30), nullable=False, unique=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_status = Column(String(20), nullable=False, default="pending")

    # Totals
    total_amount = Column(Numeric(18, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")

    shipping_address = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    payment_method = Column(String(50), nullable=True)
    tracking_number = Column(String(100), nullable=True)

    version = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(100), nullable=False, default="system")
    updated_by = Column(String(100), nullable=True)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.position",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}


class OrderItemModel(Base):
    """Order line item.

    ``product_id`` is a plain reference, not a foreign key: items keep
    their product snapshot after the product is hard-deleted.
    """

    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True)
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(String(36), nullable=False, index=True)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(18, 2), nullable=False)

    order = relationship("OrderModel", back_populates="items")
