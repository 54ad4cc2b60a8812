"""Abstract repository for Card aggregate.

The store behind it is assumed to be atomic per row and nothing more:
there is no transaction spanning two cards, or a card and an order.
Every mutation here therefore targets one card by primary key and is
conditional on the card still being unused.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from datetime import datetime

from cardshop.domain.model.card import Card


class CardRepository(ABC):

    @property
    @abstractmethod
    def supports_reservations(self) -> bool:
        """Whether the store has the soft-reservation fields.

        Resolved once when the repository is built; the reservation-aware
        methods below raise ``ReservationTrackingUnavailable`` when False.
        """

    @abstractmethod
    def get_by_id(self, card_id: int) -> Card | None:
        """Return a card by its ID, or None if not found."""

    @abstractmethod
    def list_by_product(self, product_id: str) -> list[Card]:
        """Return every card of a product, used or not."""

    @abstractmethod
    def add(self, card: Card) -> Card:
        """Insert a new card and return it with its ID assigned."""

    @abstractmethod
    def find_reserved(self, order_id: str, limit: int) -> list[Card]:
        """Return up to *limit* unused cards soft-reserved for *order_id*."""

    @abstractmethod
    def find_available(
        self, product_id: str, limit: int, stale_before: datetime | None
    ) -> list[Card]:
        """Return up to *limit* unused cards of a product.

        Cards whose reservation is newer than *stale_before* are excluded.
        Pass None to ignore reservations entirely.
        """

    @abstractmethod
    def pick_available(self, product_id: str, rng: random.Random) -> Card | None:
        """Return one unused card of a product chosen uniformly with *rng*."""

    @abstractmethod
    def claim(self, card_id: int, used_at: datetime, release_reservation: bool) -> bool:
        """Mark a card used if, and only if, it is still unused.

        Returns True when this call won the card.  With
        *release_reservation* the reservation fields are cleared in the
        same update.
        """

    @abstractmethod
    def reserve(self, card_id: int, order_id: str, reserved_at: datetime) -> bool:
        """Soft-reserve an unused card for an order.

        Returns False if the card is used or missing.
        """
