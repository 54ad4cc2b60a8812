"""Order aggregate — the record a payment settles and a delivery fills.

Orders are created ``pending`` by the checkout flow (outside this
package).  Fulfillment moves them to ``paid`` or ``delivered``; both are
terminal as far as payment callbacks are concerned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from cardshop.domain.exceptions import ValidationError
from cardshop.domain.model.value_objects import Money, Quantity

KEY_SEPARATOR = "\n"


class OrderStatus(Enum):
    PENDING = "pending"
    CANCELLED = "cancelled"
    PAID = "paid"
    DELIVERED = "delivered"


# Statuses a payment callback may still act on.
AWAITING_PAYMENT = (OrderStatus.PENDING, OrderStatus.CANCELLED)


@dataclass
class Order:
    """Aggregate root for card orders.

    The ``__init__`` is intentionally simple so repositories can
    reconstitute persisted orders without re-validating; state changes go
    through ``mark_paid()`` and ``mark_delivered()``.
    """

    order_id: str
    product_id: str
    amount: Money
    quantity: Quantity = field(default_factory=lambda: Quantity(1))
    status: OrderStatus = OrderStatus.PENDING
    paid_at: datetime | None = None
    delivered_at: datetime | None = None
    trade_no: str | None = None
    card_key: str | None = None
    current_payment_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # --- State transitions ----------------------------------------------------

    def mark_paid(self, trade_no: str | None, at: datetime) -> None:
        """Transition pending|cancelled -> paid (no cards delivered yet)."""
        if not self.is_awaiting_payment:
            raise ValidationError(
                f"Cannot mark order {self.order_id} paid — current status is "
                f"{self.status.value}"
            )
        self.status = OrderStatus.PAID
        self.paid_at = at
        self.trade_no = trade_no

    def mark_delivered(
        self,
        keys: list[str],
        trade_no: str | None,
        at: datetime,
        clear_payment: bool = False,
    ) -> None:
        """Transition pending|cancelled|paid -> delivered.

        ``paid`` is accepted so a manual resync can deliver an order that
        was paid while out of stock; in that case the original payment
        time and trade number are kept.  The delivered payload is written
        once.
        """
        if self.status == OrderStatus.DELIVERED:
            raise ValidationError(f"Order {self.order_id} already delivered")
        if not keys:
            raise ValidationError("Delivery must contain at least one card key")

        if self.is_awaiting_payment or self.paid_at is None:
            self.paid_at = at
            self.trade_no = trade_no
        self.status = OrderStatus.DELIVERED
        self.card_key = KEY_SEPARATOR.join(keys)
        self.delivered_at = at
        if clear_payment:
            self.current_payment_id = None

    # --- Computed properties --------------------------------------------------

    @property
    def is_awaiting_payment(self) -> bool:
        return self.status in AWAITING_PAYMENT

    @property
    def is_terminal(self) -> bool:
        return not self.is_awaiting_payment

    @property
    def delivered_keys(self) -> list[str]:
        if not self.card_key:
            return []
        return self.card_key.split(KEY_SEPARATOR)
