"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from cardshop.domain.exceptions import ValidationError


@dataclass(frozen=True)
class Money:
    """Monetary amount.

    Uses Decimal to avoid floating-point rounding errors that would be
    unacceptable when comparing what was paid against what was owed.
    """

    amount: Decimal
    currency: str = "USD"

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < Decimal("0"):
            raise ValidationError(
                f"Money amount cannot be negative, got {self.amount}"
            )

    # --- Comparison -----------------------------------------------------------

    def matches(self, paid: Decimal, tolerance: Decimal) -> bool:
        """True if *paid* is within *tolerance* of this amount (inclusive)."""
        return abs(paid - self.amount) <= tolerance

    # --- Display --------------------------------------------------------------

    def __str__(self) -> str:
        return f"${self.amount:.2f}"

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def of(amount: str | float | int | Decimal) -> Money:
        """Convenient factory that coerces to Decimal safely."""
        return Money(to_decimal(amount))


def to_decimal(value: str | float | int | Decimal) -> Decimal:
    """Coerce a number or numeric string to Decimal.

    Floats go through ``str()`` so 9.9 becomes Decimal("9.9") rather than
    its binary expansion.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid money amount: {value!r}")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid money amount: {value!r}") from exc
    if not result.is_finite():
        raise ValidationError(f"Invalid money amount: {value!r}")
    return result


@dataclass(frozen=True)
class Quantity:
    """A positive integer quantity.

    Enforces the invariant that an order cannot ask for zero or
    negative cards.
    """

    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value <= 0:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)
