"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Self
from uuid import UUID, uuid4

from oms.domain.base import ValueObject
from oms.domain.exceptions import CurrencyMismatchError, MoneyError, NegativeMoneyError


# ============================================================================
# Typed Identifiers
# ============================================================================


@dataclass(frozen=True)
class Identifier(ValueObject):
    """Strongly-typed UUID identifier.

    Using typed IDs prevents accidentally mixing up different entity IDs,
    e.g. passing an order ID where a product ID is expected.
    """

    value: UUID

    @classmethod
    def generate(cls) -> Self:
        """Generate a new random identifier.

        Returns:
            New identifier with random UUID.
        """
        return cls(value=uuid4())

    @classmethod
    def from_string(cls, value: "str | UUID | Identifier") -> Self:
        """Create identifier from its string representation.

        Args:
            value: String UUID representation (a UUID or identifier is
                accepted as-is).

        Returns:
            Identifier instance.

        Raises:
            ValueError: If value is not a valid UUID.
        """
        if isinstance(value, Identifier):
            return cls(value=value.value)
        if isinstance(value, UUID):
            return cls(value=value)
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        """Return string representation.

        Returns:
            UUID as string.
        """
        return str(self.value)


@dataclass(frozen=True)
class ProductId(Identifier):
    """Strongly-typed product identifier."""


@dataclass(frozen=True)
class OrderId(Identifier):
    """Strongly-typed order identifier."""


@dataclass(frozen=True)
class OrderItemId(Identifier):
    """Strongly-typed order item identifier."""


@dataclass(frozen=True)
class CustomerId(Identifier):
    """Strongly-typed customer identifier."""


# ============================================================================
# Money Value Object
# ============================================================================


_CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


def to_decimal(value: Any) -> Decimal:
    """Coerce an int, str, float or Decimal into a finite Decimal.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1").

    Raises:
        MoneyError: If the value is not a finite number.
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise MoneyError(f"Invalid monetary amount: {value!r}") from e
    if not result.is_finite():
        raise MoneyError(f"Invalid monetary amount: {value!r}")
    return result


@dataclass(frozen=True)
class Money(ValueObject):
    """Represents a non-negative monetary value with currency.

    Amounts are exact decimals. Arithmetic is only defined between equal
    currencies, and every operation returns a new instance.

    Attributes:
        amount: Non-negative decimal amount in major units.
        currency: ISO 4217 currency code (e.g., 'USD', 'EUR').
    """

    amount: Decimal
    currency: str = "USD"

    def __post_init__(self) -> None:
        """Validate money constraints."""
        amount = to_decimal(self.amount)
        if amount < 0:
            raise NegativeMoneyError(amount)
        currency = (self.currency or "").strip().upper()
        if not _CURRENCY_PATTERN.match(currency):
            raise MoneyError(
                f"Currency must be a 3-letter code, got {self.currency!r}",
                details={"currency": self.currency},
            )
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "currency", currency)

    @classmethod
    def zero(cls, currency: str = "USD") -> Self:
        """Create zero amount money.

        Args:
            currency: Currency code.

        Returns:
            Money with zero amount.
        """
        return cls(amount=Decimal("0"), currency=currency)

    def __add__(self, other: "Money") -> "Money":
        """Add two money amounts.

        Raises:
            CurrencyMismatchError: If currencies don't match.
        """
        self._check_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        """Subtract money amounts.

        Raises:
            CurrencyMismatchError: If currencies don't match.
            NegativeMoneyError: If result would be negative.
        """
        self._check_currency(other)
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __mul__(self, multiplier: int | Decimal) -> "Money":
        """Multiply money by a non-negative quantity.

        Raises:
            MoneyError: If the multiplier is negative.
        """
        factor = to_decimal(multiplier)
        if factor < 0:
            raise MoneyError("Multiplier cannot be negative", details={"multiplier": str(factor)})
        return Money(amount=self.amount * factor, currency=self.currency)

    def __rmul__(self, multiplier: int | Decimal) -> "Money":
        return self.__mul__(multiplier)

    def __str__(self) -> str:
        """Return formatted string representation, e.g. '100.00 USD'."""
        return f"{self.amount:,.2f} {self.currency}"

    def _check_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def is_zero(self) -> bool:
        """Check if amount is zero."""
        return self.amount == 0

    def to_dict(self) -> dict[str, str]:
        """Serialize as an (amount, currency) pair."""
        return {"amount": str(self.amount), "currency": self.currency}


# ============================================================================
# Order Number
# ============================================================================


def generate_order_number(now: datetime | None = None) -> str:
    """Generate a human-readable order number.

    Format is ``ORD-YYYYMMDD-XXXXXXXX`` with eight upper-case hex chars
    taken from a fresh UUID.

    Args:
        now: Timestamp for the date part (defaults to current UTC time).

    Returns:
        New order number.
    """
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now:%Y%m%d}-{uuid4().hex[:8].upper()}"


# ============================================================================
# Item Snapshots
# ============================================================================


@dataclass(frozen=True)
class ShippedItem(ValueObject):
    """Snapshot of an order line at shipping time."""

    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
        }


@dataclass(frozen=True)
class CancelledItem(ValueObject):
    """Snapshot of an order line at cancellation time.

    Attributes:
        stock_restored: Whether the orchestrator returned the quantity
            to the product's stock within the cancelling unit of work.
    """

    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    stock_restored: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "stock_restored": self.stock_restored,
        }
