"""Domain exceptions.

All domain-level errors that represent business rule violations,
missing aggregates, malformed input, and store conflicts. Each error
carries a stable ``error_code`` and an ``ErrorKind`` so callers can
branch on the outcome (not-found vs. rejected vs. invalid vs.
retry-later) without inspecting messages.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar


class ErrorKind(str, Enum):
    """Stable outcome categories for domain errors."""

    NOT_FOUND = "not_found"
    BUSINESS_RULE = "business_rule"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    TRANSIENT = "transient"

    @property
    def retryable(self) -> bool:
        """Whether the whole unit of work may be retried."""
        return self in {ErrorKind.CONFLICT, ErrorKind.TRANSIENT}


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.BUSINESS_RULE
    error_code: ClassVar[str] = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Error Kinds
# ============================================================================


class NotFoundError(DomainError):
    """A referenced aggregate or entity does not exist."""

    kind = ErrorKind.NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str) -> None:
        super().__init__(
            f"{entity_type} with ID {entity_id} not found",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )


class BusinessRuleViolation(DomainError):
    """A business rule rejected the requested change."""

    kind = ErrorKind.BUSINESS_RULE
    error_code = "BUSINESS_RULE_VIOLATION"


class ValidationError(DomainError):
    """Malformed input reached the domain or orchestration boundary."""

    kind = ErrorKind.VALIDATION
    error_code = "VALIDATION_ERROR"


class ConflictError(DomainError):
    """A concurrent write to the same aggregate was detected."""

    kind = ErrorKind.CONFLICT
    error_code = "CONFLICT"

    def __init__(self, message: str = "Concurrent modification detected", details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details)


class TransientStoreError(DomainError):
    """The store failed for a reason that may succeed on retry."""

    kind = ErrorKind.TRANSIENT
    error_code = "STORE_UNAVAILABLE"


# ============================================================================
# Not Found
# ============================================================================


class OrderNotFoundError(NotFoundError):
    """Raised when an order does not exist."""

    error_code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str) -> None:
        super().__init__("Order", order_id)


class OrderItemNotFoundError(NotFoundError):
    """Raised when an order item is not part of the order."""

    error_code = "ORDER_ITEM_NOT_FOUND"

    def __init__(self, order_id: str, item_id: str) -> None:
        DomainError.__init__(
            self,
            f"Order item with ID {item_id} not found in order {order_id}",
            details={"order_id": order_id, "item_id": item_id},
        )


class ProductNotFoundError(NotFoundError):
    """Raised when a product does not exist."""

    error_code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str) -> None:
        super().__init__("Product", product_id)


class CustomerNotFoundError(NotFoundError):
    """Raised when a customer does not exist."""

    error_code = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id: str) -> None:
        super().__init__("Customer", customer_id)


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(BusinessRuleViolation):
    """Raised when an invalid state transition is attempted.

    This error indicates that the requested operation cannot be performed
    in the current state of the entity.
    """

    error_code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "Order").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Order Errors
# ============================================================================


class OrderNotEditableError(BusinessRuleViolation):
    """Raised when trying to change items of an order that is past processing."""

    error_code = "ORDER_NOT_EDITABLE"

    def __init__(self, order_id: str, current_status: str) -> None:
        """Initialize order not editable error.

        Args:
            order_id: ID of the order.
            current_status: Current status of the order.
        """
        super().__init__(
            f"Cannot modify items of order {order_id} with status '{current_status}'",
            details={"order_id": order_id, "current_status": current_status},
        )


class OrderNotCancellableError(BusinessRuleViolation):
    """Raised when trying to cancel an order that cannot be cancelled."""

    error_code = "ORDER_NOT_CANCELLABLE"

    def __init__(self, order_id: str, current_status: str) -> None:
        """Initialize order not cancellable error.

        Args:
            order_id: ID of the order.
            current_status: Current status of the order.
        """
        super().__init__(
            f"Order {order_id} cannot be cancelled in status '{current_status}'",
            details={"order_id": order_id, "current_status": current_status},
        )


class PaymentAmountMismatchError(ValidationError):
    """Raised when the paid amount differs from the order total."""

    error_code = "PAYMENT_AMOUNT_MISMATCH"

    def __init__(self, order_id: str, amount_paid: Decimal, order_total: Decimal) -> None:
        super().__init__(
            f"Payment amount {amount_paid} doesn't match order total {order_total}",
            details={
                "order_id": order_id,
                "amount_paid": str(amount_paid),
                "order_total": str(order_total),
            },
        )


# ============================================================================
# Product Errors
# ============================================================================


class InsufficientStockError(BusinessRuleViolation):
    """Raised when a stock reduction exceeds the available quantity."""

    error_code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}",
            details={
                "product_id": product_id,
                "available": available,
                "requested": requested,
            },
        )


class ProductInactiveError(BusinessRuleViolation):
    """Raised when an inactive product is added to an order."""

    error_code = "PRODUCT_INACTIVE"

    def __init__(self, product_id: str, name: str) -> None:
        super().__init__(
            f"Product {name} is not active",
            details={"product_id": product_id, "name": name},
        )


class ProductInUseError(BusinessRuleViolation):
    """Raised when deleting a product that non-terminal orders reference."""

    error_code = "PRODUCT_IN_USE"

    def __init__(self, product_id: str, name: str, active_order_count: int) -> None:
        super().__init__(
            f"Cannot delete product '{name}' because it has {active_order_count} "
            "active order(s). Consider deactivating the product instead or wait "
            "until all orders are completed.",
            details={
                "product_id": product_id,
                "active_order_count": active_order_count,
            },
        )


class DuplicateSkuError(ValidationError):
    """Raised when a product SKU is already taken."""

    error_code = "DUPLICATE_SKU"

    def __init__(self, sku: str) -> None:
        super().__init__(
            f"Product with SKU '{sku}' already exists",
            details={"sku": sku},
        )


class DuplicateEmailError(ValidationError):
    """Raised when a customer email is already registered."""

    error_code = "DUPLICATE_EMAIL"

    def __init__(self, email: str) -> None:
        super().__init__(
            f"Customer with email '{email}' already exists",
            details={"email": email},
        )


class InvalidQuantityError(ValidationError):
    """Raised when an invalid quantity is provided."""

    error_code = "INVALID_QUANTITY"

    def __init__(self, quantity: int, reason: str = "Quantity must be greater than zero") -> None:
        """Initialize invalid quantity error.

        Args:
            quantity: The invalid quantity value.
            reason: Explanation of why the quantity is invalid.
        """
        super().__init__(
            f"Invalid quantity {quantity}: {reason}",
            details={"quantity": quantity, "reason": reason},
        )


# ============================================================================
# Money Errors
# ============================================================================


class MoneyError(ValidationError):
    """Base class for money-related errors."""

    error_code = "INVALID_MONEY"


class CurrencyMismatchError(MoneyError):
    """Raised when attempting to combine money with different currencies."""

    error_code = "CURRENCY_MISMATCH"

    def __init__(self, currency1: str, currency2: str) -> None:
        """Initialize currency mismatch error.

        Args:
            currency1: First currency code.
            currency2: Second currency code.
        """
        super().__init__(
            f"Cannot combine money with different currencies: {currency1} and {currency2}",
            details={"currency1": currency1, "currency2": currency2},
        )


class NegativeMoneyError(MoneyError):
    """Raised when an amount would be negative."""

    error_code = "NEGATIVE_MONEY"

    def __init__(self, amount: Decimal) -> None:
        super().__init__(
            f"Money amount cannot be negative: {amount}",
            details={"amount": str(amount)},
        )
