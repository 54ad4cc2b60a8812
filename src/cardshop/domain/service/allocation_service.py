"""Domain service: Card Allocation.

Picks the cards that fill an order.  It lives in the domain layer
because the claim rules are the core business rule of the shop, not
orchestration.

Exhaustible products are filled in two phases:
  Phase 1 — reserved claim: cards the checkout soft-reserved for this
            very order.
  Phase 2 — pool claim: any unused card of the product whose
            reservation (if any) has gone stale.

There is no transaction around either phase.  A card belongs to an order
only once ``CardRepository.claim`` reports that the conditional update
won it; candidates lost to a concurrent order are skipped and the phase
asks the store again.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from cardshop.domain.model.card import Card
from cardshop.domain.model.order import Order
from cardshop.domain.model.product import Product
from cardshop.domain.repository.card_repository import CardRepository

logger = logging.getLogger(__name__)

DEFAULT_STALE_WINDOW = timedelta(seconds=60)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AllocationOutcome:
    """Keys allocated to one order, in claim order."""

    delivered_keys: tuple[str, ...]
    requested: int

    @property
    def claimed(self) -> int:
        return len(self.delivered_keys)

    @property
    def shortfall(self) -> int:
        return max(self.requested - self.claimed, 0)

    @property
    def is_empty(self) -> bool:
        return not self.delivered_keys


class AllocationService:

    def __init__(
        self,
        card_repo: CardRepository,
        stale_window: timedelta = DEFAULT_STALE_WINDOW,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._card_repo = card_repo
        self._stale_window = stale_window
        self._clock = clock

    def allocate(
        self,
        order: Order,
        product: Product | None,
        rng: random.Random | None = None,
    ) -> AllocationOutcome:
        """Select cards for *order*.

        Does not touch the order itself; the caller records the outcome.
        *rng* is only consulted for shared products and should be created
        per request.
        """
        quantity = order.quantity.value

        if product is not None and product.is_shared:
            return self._allocate_shared(order, rng or random.Random())

        keys = self._claim_reserved(order, quantity)
        if len(keys) < quantity:
            logger.debug(
                "Order %s: %d reserved card(s), need %d more",
                order.order_id, len(keys), quantity - len(keys),
            )
            keys += self._claim_from_pool(order, quantity - len(keys))

        outcome = AllocationOutcome(delivered_keys=tuple(keys), requested=quantity)
        logger.info(
            "Order %s: cards claimed %d/%d", order.order_id, outcome.claimed, quantity
        )
        if outcome.claimed and outcome.shortfall:
            logger.warning(
                "Order %s partially allocated: %d card(s) short",
                order.order_id, outcome.shortfall,
            )
        return outcome

    # --- Shared products ------------------------------------------------------

    def _allocate_shared(self, order: Order, rng: random.Random) -> AllocationOutcome:
        quantity = order.quantity.value
        card = self._card_repo.pick_available(order.product_id, rng)
        if card is None:
            return AllocationOutcome(delivered_keys=(), requested=quantity)
        return AllocationOutcome(
            delivered_keys=(card.card_key,) * quantity, requested=quantity
        )

    # --- Exhaustible products -------------------------------------------------

    def _claim_reserved(self, order: Order, quantity: int) -> list[str]:
        if not self._card_repo.supports_reservations:
            logger.warning(
                "Order %s: reservation tracking unavailable, skipping reserved claim",
                order.order_id,
            )
            return []
        return self._claim_until_satisfied(
            lambda needed: self._card_repo.find_reserved(order.order_id, needed),
            quantity,
            release_reservation=True,
        )

    def _claim_from_pool(self, order: Order, needed: int) -> list[str]:
        stale_before = None
        if self._card_repo.supports_reservations:
            stale_before = self._clock() - self._stale_window
        return self._claim_until_satisfied(
            lambda n: self._card_repo.find_available(order.product_id, n, stale_before),
            needed,
            release_reservation=False,
        )

    def _claim_until_satisfied(
        self,
        find: Callable[[int], list[Card]],
        needed: int,
        release_reservation: bool,
    ) -> list[str]:
        """Claim cards returned by *find* until *needed* are won.

        Stops when the store offers no more candidates.  Every round in
        which a candidate is lost means another order won it, so the pool
        shrinks each round and the loop terminates.
        """
        keys: list[str] = []
        while len(keys) < needed:
            candidates = find(needed - len(keys))
            if not candidates:
                break
            for card in candidates:
                if self._card_repo.claim(card.id, self._clock(), release_reservation):
                    keys.append(card.card_key)
                else:
                    logger.debug("Card %s was claimed concurrently, skipping", card.id)
        return keys
