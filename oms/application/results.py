"""Service result types.

Services never raise domain errors to their callers: every outcome is
a result with ``success`` plus, on failure, a stable ``error_code`` and
an ``error_kind`` the caller can branch on.
"""

from dataclasses import dataclass, field
from typing import Any, Self

from oms.domain.entities import Customer, Order, Product
from oms.domain.exceptions import DomainError, ErrorKind


@dataclass
class ServiceResult:
    """Common success/failure fields."""

    success: bool = True
    error: str | None = None
    error_code: str | None = None
    error_kind: ErrorKind | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: DomainError) -> Self:
        """Build a failed result from a domain error."""
        return cls(
            success=False,
            error=error.message,
            error_code=error.error_code,
            error_kind=error.kind,
            details=error.details,
        )


@dataclass
class OrderResult(ServiceResult):
    """Result of an order command."""

    order: Order | None = None


@dataclass
class ProductResult(ServiceResult):
    """Result of a product command."""

    product: Product | None = None


@dataclass
class CustomerResult(ServiceResult):
    """Result of a customer command."""

    customer: Customer | None = None


@dataclass
class DeletionCheckResult(ServiceResult):
    """Whether a product may be deleted right now."""

    product_id: str | None = None
    product_name: str | None = None
    active_order_count: int = 0
    can_delete: bool = False
    alternatives: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class DeleteProductResult(ServiceResult):
    """Result of deleting a product."""

    product_id: str | None = None
    hard_delete: bool = False
