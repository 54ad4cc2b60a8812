"""SQL implementation of CardRepository (SQLAlchemy).

``claim`` is a single ``UPDATE ... WHERE id = :id AND coalesce(is_used, 0)
= 0`` whose row count tells the caller whether it won the card, so two
allocations racing for the same candidate can never both succeed.

Databases created before reservations existed have no
``reserved_order_id``/``reserved_at`` columns.  The repository inspects
the table once on construction and never touches those columns when
they are absent.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime

from sqlalchemy import false, func, insert, inspect, or_, select, update
from sqlalchemy.engine import Engine

from cardshop.domain.exceptions import ReservationTrackingUnavailable
from cardshop.domain.model.card import Card
from cardshop.domain.repository.card_repository import CardRepository
from cardshop.infrastructure.persistence.sql_schema import (
    RESERVATION_COLUMNS,
    cards,
    from_db,
    to_db,
)

logger = logging.getLogger(__name__)


def _unused():
    return func.coalesce(cards.c.is_used, false()) == false()


class SqlCardRepository(CardRepository):

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        present = {col["name"] for col in inspect(engine).get_columns(cards.name)}
        self._supports_reservations = RESERVATION_COLUMNS <= present
        if not self._supports_reservations:
            logger.warning(
                "Table %r has no reservation columns; soft reservations disabled",
                cards.name,
            )

    # --- CardRepository interface ---------------------------------------------

    @property
    def supports_reservations(self) -> bool:
        return self._supports_reservations

    def get_by_id(self, card_id: int) -> Card | None:
        stmt = select(*self._columns()).where(cards.c.id == card_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return self._to_domain(row) if row is not None else None

    def list_by_product(self, product_id: str) -> list[Card]:
        stmt = (
            select(*self._columns())
            .where(cards.c.product_id == product_id)
            .order_by(cards.c.id)
        )
        return self._fetch(stmt)

    def add(self, card: Card) -> Card:
        values = {
            "product_id": card.product_id,
            "card_key": card.card_key,
            "is_used": card.is_used,
            "used_at": to_db(card.used_at),
        }
        if self._supports_reservations:
            values["reserved_order_id"] = card.reserved_order_id
            values["reserved_at"] = to_db(card.reserved_at)
        with self._engine.begin() as conn:
            result = conn.execute(insert(cards).values(**values))
            card.id = result.inserted_primary_key[0]
        return card

    def find_reserved(self, order_id: str, limit: int) -> list[Card]:
        self._require_reservations()
        stmt = (
            select(*self._columns())
            .where(cards.c.reserved_order_id == order_id, _unused())
            .order_by(cards.c.id)
            .limit(limit)
        )
        return self._fetch(stmt)

    def find_available(
        self, product_id: str, limit: int, stale_before: datetime | None
    ) -> list[Card]:
        stmt = select(*self._columns()).where(cards.c.product_id == product_id, _unused())
        if stale_before is not None:
            self._require_reservations()
            stmt = stmt.where(
                or_(cards.c.reserved_at.is_(None), cards.c.reserved_at < to_db(stale_before))
            )
        return self._fetch(stmt.order_by(cards.c.id).limit(limit))

    def pick_available(self, product_id: str, rng: random.Random) -> Card | None:
        condition = (cards.c.product_id == product_id, _unused())
        with self._engine.connect() as conn:
            count = conn.execute(
                select(func.count()).select_from(cards).where(*condition)
            ).scalar_one()
            if not count:
                return None
            stmt = (
                select(*self._columns())
                .where(*condition)
                .order_by(cards.c.id)
                .offset(rng.randrange(count))
                .limit(1)
            )
            row = conn.execute(stmt).mappings().first()
        # The pool can shrink between the two reads.
        return self._to_domain(row) if row is not None else None

    def claim(self, card_id: int, used_at: datetime, release_reservation: bool) -> bool:
        values = {"is_used": True, "used_at": to_db(used_at)}
        if release_reservation:
            self._require_reservations()
            values["reserved_order_id"] = None
            values["reserved_at"] = None
        stmt = update(cards).where(cards.c.id == card_id, _unused()).values(**values)
        with self._engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount == 1

    def reserve(self, card_id: int, order_id: str, reserved_at: datetime) -> bool:
        self._require_reservations()
        stmt = (
            update(cards)
            .where(cards.c.id == card_id, _unused())
            .values(reserved_order_id=order_id, reserved_at=to_db(reserved_at))
        )
        with self._engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount == 1

    # --- Helpers --------------------------------------------------------------

    def _columns(self) -> list:
        columns = [
            cards.c.id,
            cards.c.product_id,
            cards.c.card_key,
            cards.c.is_used,
            cards.c.used_at,
        ]
        if self._supports_reservations:
            columns += [cards.c.reserved_order_id, cards.c.reserved_at]
        return columns

    def _fetch(self, stmt) -> list[Card]:
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [self._to_domain(row) for row in rows]

    def _require_reservations(self) -> None:
        if not self._supports_reservations:
            raise ReservationTrackingUnavailable(
                f"Table '{cards.name}' has no reservation columns"
            )

    @staticmethod
    def _to_domain(row) -> Card:
        return Card(
            id=row["id"],
            product_id=row["product_id"],
            card_key=row["card_key"],
            is_used=bool(row["is_used"]),
            used_at=from_db(row["used_at"]),
            reserved_order_id=row.get("reserved_order_id"),
            reserved_at=from_db(row.get("reserved_at")),
        )
