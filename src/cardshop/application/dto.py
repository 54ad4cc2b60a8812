"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the callers (payment callbacks, CLI) and the
application layer without exposing domain internals.
"""

from __future__ import annotations

from dataclasses import dataclass

PROCESSED = "processed"
ALREADY_PROCESSED = "already_processed"


@dataclass(frozen=True)
class FulfillmentResult:
    """Output of a fulfillment call.

    ``status`` is ``processed`` when this call made the decision for the
    order and ``already_processed`` when an earlier call had.
    """

    status: str
    success: bool = True

    @property
    def was_processed(self) -> bool:
        return self.status == PROCESSED


@dataclass(frozen=True)
class OrderDTO:
    """Output: an order as displayed to the user."""

    order_id: str
    product_id: str
    status: str
    amount: str  # formatted, e.g. "$9.99"
    quantity: int
    trade_no: str | None
    card_keys: list[str]
    created_at: str
    paid_at: str | None
    delivered_at: str | None
