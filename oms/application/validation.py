"""Input checks applied before a unit of work touches the store."""

from decimal import Decimal
from typing import Any, TypeVar

from oms.domain.exceptions import InvalidQuantityError, MoneyError, ValidationError
from oms.domain.value_objects import Identifier, to_decimal

I = TypeVar("I", bound=Identifier)


def parse_id(id_type: type[I], value: Any, field_name: str) -> I:
    """Parse a typed identifier.

    Raises:
        ValidationError: If value is not a UUID.
    """
    try:
        return id_type.from_string(value)
    except (TypeError, ValueError, AttributeError) as e:
        raise ValidationError(
            f"Invalid {field_name}: {value!r}",
            details={"field": field_name, "value": str(value)},
        ) from e


def require_positive(quantity: int, field_name: str = "quantity") -> int:
    """Reject non-integer and non-positive quantities."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(
            f"{field_name} must be an integer",
            details={"field": field_name, "value": str(quantity)},
        )
    if quantity <= 0:
        raise InvalidQuantityError(quantity)
    return quantity


def require_text(value: str | None, field_name: str, max_length: int | None = None) -> str:
    """Trim and require a non-blank string, optionally bounded in length."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field_name} is required", details={"field": field_name})
    check_length(cleaned, field_name, max_length)
    return cleaned


def check_length(value: str | None, field_name: str, max_length: int | None) -> None:
    """Reject strings longer than ``max_length``."""
    if value is not None and max_length is not None and len(value) > max_length:
        raise ValidationError(
            f"{field_name} cannot exceed {max_length} characters",
            details={"field": field_name, "max_length": max_length},
        )


def parse_amount(value: Any, field_name: str = "amount") -> Decimal:
    """Parse a non-negative decimal amount.

    Raises:
        ValidationError: If value is not a finite, non-negative number.
    """
    try:
        amount = to_decimal(value)
    except MoneyError as e:
        raise ValidationError(
            f"Invalid {field_name}: {value!r}",
            details={"field": field_name, "value": str(value)},
        ) from e
    if amount < 0:
        raise ValidationError(
            f"{field_name} cannot be negative",
            details={"field": field_name, "value": str(amount)},
        )
    return amount
