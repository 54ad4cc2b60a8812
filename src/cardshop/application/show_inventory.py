"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from dataclasses import dataclass

from cardshop.domain.repository.card_repository import CardRepository
from cardshop.domain.repository.product_repository import ProductRepository


@dataclass(frozen=True)
class InventoryLineDTO:
    product_id: str
    product_name: str
    shared: bool
    total: int
    used: int
    available: int
    reserved: int


class ShowInventoryHandler:

    def __init__(
        self,
        card_repo: CardRepository,
        product_repo: ProductRepository,
    ) -> None:
        self._card_repo = card_repo
        self._product_repo = product_repo

    def handle(self) -> list[InventoryLineDTO]:
        lines: list[InventoryLineDTO] = []
        for product in self._product_repo.list_all():
            cards = self._card_repo.list_by_product(product.id)
            unused = [c for c in cards if not c.is_used]
            lines.append(
                InventoryLineDTO(
                    product_id=product.id,
                    product_name=product.name,
                    shared=product.is_shared,
                    total=len(cards),
                    used=len(cards) - len(unused),
                    available=len(unused),
                    reserved=sum(1 for c in unused if c.is_reserved),
                )
            )
        return lines
