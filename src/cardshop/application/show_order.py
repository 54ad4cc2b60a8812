"""Application service: Show Order use case (query)."""

from __future__ import annotations

from datetime import datetime

from cardshop.application.dto import OrderDTO
from cardshop.domain.exceptions import EntityNotFoundError
from cardshop.domain.model.order import Order
from cardshop.domain.repository.order_repository import OrderRepository


def _fmt(value: datetime | None) -> str | None:
    return value.strftime("%Y-%m-%d %H:%M UTC") if value else None


class ShowOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_id: str) -> OrderDTO:
        order = self._order_repo.get_by_order_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order {order_id} not found")
        return self._to_dto(order)

    @staticmethod
    def _to_dto(order: Order) -> OrderDTO:
        return OrderDTO(
            order_id=order.order_id,
            product_id=order.product_id,
            status=order.status.value,
            amount=str(order.amount),
            quantity=order.quantity.value,
            trade_no=order.trade_no,
            card_keys=order.delivered_keys,
            created_at=_fmt(order.created_at),  # type: ignore[arg-type]
            paid_at=_fmt(order.paid_at),
            delivered_at=_fmt(order.delivered_at),
        )
