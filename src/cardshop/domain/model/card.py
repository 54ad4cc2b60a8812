"""Card aggregate — one allocatable unit of stock.

A card carries a secret key that is delivered to a buyer.  Cards of
exhaustible products are claimed exactly once; cards of shared products
are read and never claimed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Card:
    """Inventory unit.

    Invariants:
    - once ``is_used`` is True it is never reset by this package
    - ``reserved_order_id`` and ``reserved_at`` are set and cleared together
    """

    id: int | None
    product_id: str
    card_key: str
    is_used: bool = False
    used_at: datetime | None = None
    reserved_order_id: str | None = None
    reserved_at: datetime | None = None

    @property
    def is_reserved(self) -> bool:
        return self.reserved_order_id is not None

    def is_held_at(self, stale_before: datetime) -> bool:
        """True if a reservation newer than *stale_before* still guards it."""
        return self.reserved_at is not None and self.reserved_at >= stale_before

    def is_claimable(self, stale_before: datetime | None) -> bool:
        """True if pool allocation may take this card.

        ``stale_before`` of None means reservations are not tracked, so
        only the used flag matters.
        """
        if self.is_used:
            return False
        if stale_before is None:
            return True
        return not self.is_held_at(stale_before)
