"""Application service: Add Cards use case (stock loading)."""

from __future__ import annotations

from cardshop.domain.exceptions import EntityNotFoundError, ValidationError
from cardshop.domain.model.card import Card
from cardshop.domain.repository.card_repository import CardRepository
from cardshop.domain.repository.product_repository import ProductRepository


class AddCardsHandler:

    def __init__(
        self,
        card_repo: CardRepository,
        product_repo: ProductRepository,
    ) -> None:
        self._card_repo = card_repo
        self._product_repo = product_repo

    def handle(self, product_id: str, keys: list[str]) -> list[Card]:
        """Append unused cards for a product.

        Blank keys are ignored; surrounding whitespace is stripped.
        """
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product '{product_id}' not found")

        cleaned = [key.strip() for key in keys if key and key.strip()]
        if not cleaned:
            raise ValidationError("At least one non-empty card key is required")

        return [
            self._card_repo.add(Card(id=None, product_id=product.id, card_key=key))
            for key in cleaned
        ]
