"""Tests for the SQLAlchemy-backed repositories on a temporary SQLite file."""

import random
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, text

from cardshop.application.fulfill_order import FulfillOrderHandler
from cardshop.domain.exceptions import ReservationTrackingUnavailable
from cardshop.domain.model.card import Card
from cardshop.domain.model.order import Order, OrderStatus
from cardshop.domain.model.product import Product
from cardshop.domain.model.value_objects import Money, Quantity
from cardshop.domain.service.allocation_service import AllocationService
from cardshop.infrastructure.persistence.sql_card_repository import SqlCardRepository
from cardshop.infrastructure.persistence.sql_order_repository import SqlOrderRepository
from cardshop.infrastructure.persistence.sql_product_repository import (
    SqlProductRepository,
)
from cardshop.infrastructure.persistence.sql_schema import create_schema

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
CODES = Product(id="steam-10", name="Steam $10")
SHARED = Product(id="vpn", name="VPN account", is_shared=True)


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'shop.db'}")
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def legacy_engine(tmp_path):
    """A cards table from before soft reservations existed."""
    eng = create_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    with eng.begin() as conn:
        conn.execute(text(
            "CREATE TABLE cards ("
            " id INTEGER PRIMARY KEY AUTOINCREMENT,"
            " product_id VARCHAR(64) NOT NULL,"
            " card_key TEXT NOT NULL,"
            " is_used BOOLEAN,"
            " used_at DATETIME)"
        ))
        conn.execute(text(
            "INSERT INTO cards (product_id, card_key, is_used) VALUES "
            "('steam-10', 'OLD-1', NULL), ('steam-10', 'OLD-2', 1)"
        ))
    create_schema(eng)
    yield eng
    eng.dispose()


def _add(repo: SqlCardRepository, *keys: str, product: Product = CODES) -> list[Card]:
    return [repo.add(Card(id=None, product_id=product.id, card_key=k)) for k in keys]


class TestSqlCardRepository:

    def test_add_assigns_ids(self, engine):
        repo = SqlCardRepository(engine)
        a, b = _add(repo, "A", "B")
        assert (a.id, b.id) == (1, 2)
        assert repo.get_by_id(2).card_key == "B"
        assert repo.get_by_id(99) is None

    def test_claim_is_conditional(self, engine):
        repo = SqlCardRepository(engine)
        _add(repo, "A")

        assert repo.claim(1, NOW, release_reservation=False) is True
        assert repo.claim(1, NOW, release_reservation=False) is False

        card = repo.get_by_id(1)
        assert card.is_used is True
        assert card.used_at == NOW

    def test_claim_releases_reservation(self, engine):
        repo = SqlCardRepository(engine)
        _add(repo, "A")
        assert repo.reserve(1, "ORD-1", NOW) is True

        repo.claim(1, NOW, release_reservation=True)

        card = repo.get_by_id(1)
        assert card.reserved_order_id is None
        assert card.reserved_at is None

    def test_reserve_refuses_used_card(self, engine):
        repo = SqlCardRepository(engine)
        _add(repo, "A")
        repo.claim(1, NOW, release_reservation=False)
        assert repo.reserve(1, "ORD-1", NOW) is False

    def test_find_reserved(self, engine):
        repo = SqlCardRepository(engine)
        _add(repo, "A", "B", "C")
        repo.reserve(2, "ORD-1", NOW)
        repo.reserve(3, "ORD-2", NOW)

        assert [c.card_key for c in repo.find_reserved("ORD-1", 5)] == ["B"]

    def test_find_available_honours_stale_window(self, engine):
        repo = SqlCardRepository(engine)
        _add(repo, "A", "B", "C")
        repo.reserve(1, "ORD-A", NOW - timedelta(seconds=10))
        repo.reserve(2, "ORD-B", NOW - timedelta(seconds=120))
        stale_before = NOW - timedelta(seconds=60)

        found = repo.find_available(CODES.id, 10, stale_before)

        assert [c.card_key for c in found] == ["B", "C"]
        assert [c.card_key for c in repo.find_available(CODES.id, 1, stale_before)] == ["B"]
        assert len(repo.find_available(CODES.id, 10, None)) == 3

    def test_pick_available_uses_rng(self, engine):
        repo = SqlCardRepository(engine)
        _add(repo, "K1", "K2", "K3", product=SHARED)
        rng = random.Random(3)

        seen = {repo.pick_available(SHARED.id, rng).card_key for _ in range(60)}

        assert seen == {"K1", "K2", "K3"}
        assert repo.pick_available(CODES.id, rng) is None

    def test_null_used_flag_counts_as_unused(self, legacy_engine):
        repo = SqlCardRepository(legacy_engine)
        found = repo.find_available(CODES.id, 10, None)
        assert [c.card_key for c in found] == ["OLD-1"]


class TestLegacySchema:

    def test_reservation_capability_detected(self, engine, legacy_engine):
        assert SqlCardRepository(engine).supports_reservations is True
        assert SqlCardRepository(legacy_engine).supports_reservations is False

    def test_reservation_methods_raise(self, legacy_engine):
        repo = SqlCardRepository(legacy_engine)
        with pytest.raises(ReservationTrackingUnavailable):
            repo.find_reserved("ORD-1", 1)
        with pytest.raises(ReservationTrackingUnavailable):
            repo.reserve(1, "ORD-1", NOW)

    def test_allocation_degrades_to_pool(self, legacy_engine):
        repo = SqlCardRepository(legacy_engine)
        repo.add(Card(id=None, product_id=CODES.id, card_key="NEW-1"))
        order = Order(
            order_id="ORD-1",
            product_id=CODES.id,
            amount=Money.of("1"),
            quantity=Quantity(3),
        )

        outcome = AllocationService(repo, clock=lambda: NOW).allocate(order, CODES)

        assert outcome.delivered_keys == ("OLD-1", "NEW-1")


class TestSqlOrderAndProductRepositories:

    def test_order_round_trip_and_update(self, engine):
        repo = SqlOrderRepository(engine)
        order = Order(
            order_id="ORD-1",
            product_id=CODES.id,
            amount=Money.of("9.99"),
            quantity=Quantity(2),
            current_payment_id="pay-1",
            created_at=NOW,
        )
        repo.save(order)
        order.mark_delivered(["A", "B"], "T-1", NOW, clear_payment=True)
        repo.save(order)

        loaded = repo.get_by_order_id("ORD-1")
        assert loaded.status == OrderStatus.DELIVERED
        assert loaded.amount == Money.of("9.99")
        assert loaded.quantity == Quantity(2)
        assert loaded.delivered_keys == ["A", "B"]
        assert loaded.current_payment_id is None
        assert loaded.paid_at == NOW
        assert loaded.created_at == NOW
        assert repo.get_by_order_id("NOPE") is None

    def test_product_upsert(self, engine):
        repo = SqlProductRepository(engine)
        repo.save(Product(id="vpn", name="VPN"))
        repo.save(Product(id="vpn", name="VPN account", is_shared=True))

        assert repo.get_by_id("vpn") == Product(id="vpn", name="VPN account", is_shared=True)
        assert len(repo.list_all()) == 1
        assert repo.get_by_id("nope") is None


class TestSqlFulfillment:

    def _handler(self, engine):
        products = SqlProductRepository(engine)
        products.save(CODES)
        products.save(SHARED)
        orders = SqlOrderRepository(engine)
        cards = SqlCardRepository(engine)
        handler = FulfillOrderHandler(
            order_repo=orders,
            product_repo=products,
            allocation=AllocationService(cards, clock=lambda: NOW),
            clock=lambda: NOW,
        )
        return handler, orders, cards

    def test_end_to_end_delivery(self, engine):
        handler, orders, cards = self._handler(engine)
        _add(cards, "A", "B")
        orders.save(Order(
            order_id="ORD-1", product_id=CODES.id,
            amount=Money.of("9.99"), quantity=Quantity(2),
        ))

        assert handler.handle("ORD-1", "9.99", "T-1").status == "processed"
        assert handler.handle("ORD-1", "9.99", "T-1").status == "already_processed"

        order = orders.get_by_order_id("ORD-1")
        assert order.card_key == "A\nB"
        assert all(c.is_used for c in cards.list_by_product(CODES.id))

    def test_two_orders_from_same_snapshot_get_distinct_cards(self, engine):
        handler, orders, cards = self._handler(engine)
        _add(cards, "A", "B")
        for oid in ("ORD-1", "ORD-2"):
            orders.save(Order(order_id=oid, product_id=CODES.id, amount=Money.of("1")))

        # Both allocations would pick card A first; the second must fall through to B.
        snapshot = cards.find_available(CODES.id, 1, None)
        assert cards.claim(snapshot[0].id, NOW, False) is True
        assert cards.claim(snapshot[0].id, NOW, False) is False

        handler.handle("ORD-2", "1", "T-2")
        assert orders.get_by_order_id("ORD-2").card_key == "B"

    def test_concurrent_fulfillments_get_distinct_cards(self, engine):
        handler, orders, cards = self._handler(engine)
        n = 10
        _add(cards, *(f"K{i}" for i in range(n)))
        for i in range(n):
            orders.save(Order(order_id=f"ORD-{i}", product_id=CODES.id, amount=Money.of("1")))

        with ThreadPoolExecutor(max_workers=n) as pool:
            futures = [
                pool.submit(handler.handle, f"ORD-{i}", "1", f"T-{i}") for i in range(n)
            ]
            results = [f.result(timeout=60) for f in futures]

        assert all(r.status == "processed" for r in results)
        delivered = [orders.get_by_order_id(f"ORD-{i}") for i in range(n)]
        assert all(o.status == OrderStatus.DELIVERED for o in delivered)
        keys = [o.card_key for o in delivered]
        assert sorted(keys) == sorted(f"K{i}" for i in range(n))
        assert all(c.is_used for c in cards.list_by_product(CODES.id))
