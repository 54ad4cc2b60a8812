"""JSON-file-backed implementation of CardRepository.

Conditional claims are made atomic with a per-repository lock around the
read-compare-write of the file, so all concurrent callers must share one
repository instance.  Use the SQL store when several processes allocate
from the same stock.
"""

from __future__ import annotations

import json
import random
import threading
from datetime import datetime
from pathlib import Path

from cardshop.domain.model.card import Card
from cardshop.domain.repository.card_repository import CardRepository
from cardshop.infrastructure.persistence.json_timestamps import (
    format_timestamp,
    parse_timestamp,
)


class JsonCardRepository(CardRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._lock = threading.Lock()
        self._ensure_file()

    # --- CardRepository interface ---------------------------------------------

    @property
    def supports_reservations(self) -> bool:
        return True

    def get_by_id(self, card_id: int) -> Card | None:
        for raw in self._snapshot():
            if raw["id"] == card_id:
                return self._to_domain(raw)
        return None

    def list_by_product(self, product_id: str) -> list[Card]:
        return [
            self._to_domain(raw)
            for raw in self._snapshot()
            if raw["product_id"] == product_id
        ]

    def add(self, card: Card) -> Card:
        with self._lock:
            records = self._load_raw()
            card.id = max((r["id"] for r in records), default=0) + 1
            records.append(self._to_raw(card))
            self._persist_raw(records)
        return card

    def find_reserved(self, order_id: str, limit: int) -> list[Card]:
        found = [
            card
            for card in map(self._to_domain, self._snapshot())
            if card.reserved_order_id == order_id and not card.is_used
        ]
        return found[:limit]

    def find_available(
        self, product_id: str, limit: int, stale_before: datetime | None
    ) -> list[Card]:
        found = [
            card
            for card in map(self._to_domain, self._snapshot())
            if card.product_id == product_id and card.is_claimable(stale_before)
        ]
        return found[:limit]

    def pick_available(self, product_id: str, rng: random.Random) -> Card | None:
        unused = [
            card
            for card in map(self._to_domain, self._snapshot())
            if card.product_id == product_id and not card.is_used
        ]
        return rng.choice(unused) if unused else None

    def claim(self, card_id: int, used_at: datetime, release_reservation: bool) -> bool:
        with self._lock:
            records = self._load_raw()
            raw = self._find_raw(records, card_id)
            if raw is None or raw.get("is_used"):
                return False
            raw["is_used"] = True
            raw["used_at"] = used_at.isoformat()
            if release_reservation:
                raw["reserved_order_id"] = None
                raw["reserved_at"] = None
            self._persist_raw(records)
        return True

    def reserve(self, card_id: int, order_id: str, reserved_at: datetime) -> bool:
        with self._lock:
            records = self._load_raw()
            raw = self._find_raw(records, card_id)
            if raw is None or raw.get("is_used"):
                return False
            raw["reserved_order_id"] = order_id
            raw["reserved_at"] = reserved_at.isoformat()
            self._persist_raw(records)
        return True

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(card: Card) -> dict:
        return {
            "id": card.id,
            "product_id": card.product_id,
            "card_key": card.card_key,
            "is_used": card.is_used,
            "used_at": format_timestamp(card.used_at),
            "reserved_order_id": card.reserved_order_id,
            "reserved_at": format_timestamp(card.reserved_at),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Card:
        return Card(
            id=raw["id"],
            product_id=raw["product_id"],
            card_key=raw["card_key"],
            is_used=bool(raw.get("is_used")),
            used_at=parse_timestamp(raw.get("used_at")),
            reserved_order_id=raw.get("reserved_order_id"),
            reserved_at=parse_timestamp(raw.get("reserved_at")),
        )

    @staticmethod
    def _find_raw(records: list[dict], card_id: int) -> dict | None:
        for raw in records:
            if raw["id"] == card_id:
                return raw
        return None

    # --- File helpers ---------------------------------------------------------

    def _snapshot(self) -> list[dict]:
        with self._lock:
            return self._load_raw()

    def _load_raw(self) -> list[dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, records: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(records, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
