"""SQL implementation of OrderRepository (SQLAlchemy)."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine

from cardshop.domain.model.order import Order, OrderStatus
from cardshop.domain.model.value_objects import Money, Quantity
from cardshop.domain.repository.order_repository import OrderRepository
from cardshop.infrastructure.persistence.sql_schema import from_db, orders, to_db


class SqlOrderRepository(OrderRepository):

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get_by_order_id(self, order_id: str) -> Order | None:
        stmt = select(orders).where(orders.c.order_id == order_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return self._to_domain(row) if row is not None else None

    def save(self, order: Order) -> None:
        values = self._to_row(order)
        with self._engine.begin() as conn:
            result = conn.execute(
                update(orders)
                .where(orders.c.order_id == order.order_id)
                .values(**values)
            )
            if result.rowcount == 0:
                conn.execute(insert(orders).values(order_id=order.order_id, **values))

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_row(order: Order) -> dict:
        return {
            "product_id": order.product_id,
            "amount": str(order.amount.amount),
            "quantity": order.quantity.value,
            "status": order.status.value,
            "paid_at": to_db(order.paid_at),
            "delivered_at": to_db(order.delivered_at),
            "trade_no": order.trade_no,
            "card_key": order.card_key,
            "current_payment_id": order.current_payment_id,
            "created_at": to_db(order.created_at),
        }

    @staticmethod
    def _to_domain(row) -> Order:
        return Order(
            order_id=row["order_id"],
            product_id=row["product_id"],
            amount=Money(Decimal(row["amount"])),
            quantity=Quantity(row["quantity"] or 1),
            status=OrderStatus(row["status"]),
            paid_at=from_db(row["paid_at"]),
            delivered_at=from_db(row["delivered_at"]),
            trade_no=row["trade_no"],
            card_key=row["card_key"],
            current_payment_id=row["current_payment_id"],
            created_at=from_db(row["created_at"]),
        )
