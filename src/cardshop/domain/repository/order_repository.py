"""Abstract repository for Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from cardshop.domain.model.order import Order


class OrderRepository(ABC):

    @abstractmethod
    def get_by_order_id(self, order_id: str) -> Order | None:
        """Return an order by its external ID, or None if not found."""

    @abstractmethod
    def save(self, order: Order) -> None:
        """Persist a new or updated order as a single-row write."""
