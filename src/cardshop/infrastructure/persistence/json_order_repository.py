"""JSON-file-backed implementation of OrderRepository."""

from __future__ import annotations

import json
import threading
from decimal import Decimal
from pathlib import Path

from cardshop.domain.model.order import Order, OrderStatus
from cardshop.domain.model.value_objects import Money, Quantity
from cardshop.domain.repository.order_repository import OrderRepository
from cardshop.infrastructure.persistence.json_timestamps import (
    format_timestamp,
    parse_timestamp,
)


class JsonOrderRepository(OrderRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._lock = threading.Lock()
        self._ensure_file()

    # --- OrderRepository interface --------------------------------------------

    def get_by_order_id(self, order_id: str) -> Order | None:
        with self._lock:
            records = self._load_raw()
        for raw in records:
            if raw["order_id"] == order_id:
                return self._to_domain(raw)
        return None

    def save(self, order: Order) -> None:
        with self._lock:
            orders = self._load_raw()

            # Upsert: replace if exists, otherwise append
            replaced = False
            for i, raw in enumerate(orders):
                if raw["order_id"] == order.order_id:
                    orders[i] = self._to_raw(order)
                    replaced = True
                    break
            if not replaced:
                orders.append(self._to_raw(order))

            self._persist_raw(orders)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(order: Order) -> dict:
        return {
            "order_id": order.order_id,
            "product_id": order.product_id,
            "amount": str(order.amount.amount),
            "quantity": order.quantity.value,
            "status": order.status.value,
            "paid_at": format_timestamp(order.paid_at),
            "delivered_at": format_timestamp(order.delivered_at),
            "trade_no": order.trade_no,
            "card_key": order.card_key,
            "current_payment_id": order.current_payment_id,
            "created_at": format_timestamp(order.created_at),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Order:
        return Order(
            order_id=raw["order_id"],
            product_id=raw["product_id"],
            amount=Money(Decimal(raw["amount"])),
            quantity=Quantity(raw.get("quantity") or 1),
            status=OrderStatus(raw.get("status", "pending")),
            paid_at=parse_timestamp(raw.get("paid_at")),
            delivered_at=parse_timestamp(raw.get("delivered_at")),
            trade_no=raw.get("trade_no"),
            card_key=raw.get("card_key"),
            current_payment_id=raw.get("current_payment_id"),
            created_at=parse_timestamp(raw["created_at"]),
        )

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, orders: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(orders, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
