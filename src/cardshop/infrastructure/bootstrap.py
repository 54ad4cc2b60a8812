"""Composition root — wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.

The store is chosen by settings: ``CARDSHOP_DATABASE_URL`` selects the
SQL store, otherwise JSON files under ``CARDSHOP_DATA_DIR`` are used.
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from cardshop.application.fulfill_order import FulfillOrderHandler
from cardshop.application.resync_order import ResyncOrderHandler
from cardshop.domain.exceptions import ReservationTrackingUnavailable
from cardshop.domain.repository.card_repository import CardRepository
from cardshop.domain.repository.order_repository import OrderRepository
from cardshop.domain.repository.product_repository import ProductRepository
from cardshop.domain.service.allocation_service import AllocationService
from cardshop.infrastructure.config import Settings
from cardshop.infrastructure.persistence.json_card_repository import (
    JsonCardRepository,
)
from cardshop.infrastructure.persistence.json_order_repository import (
    JsonOrderRepository,
)
from cardshop.infrastructure.persistence.json_product_repository import (
    JsonProductRepository,
)
from cardshop.infrastructure.persistence.sql_card_repository import SqlCardRepository
from cardshop.infrastructure.persistence.sql_order_repository import (
    SqlOrderRepository,
)
from cardshop.infrastructure.persistence.sql_product_repository import (
    SqlProductRepository,
)
from cardshop.infrastructure.persistence.sql_schema import create_schema


def settings() -> Settings:
    return Settings.from_env()


@lru_cache(maxsize=None)
def engine(database_url: str) -> Engine:
    eng = create_engine(database_url)
    create_schema(eng)
    return eng


def product_repository(cfg: Settings | None = None) -> ProductRepository:
    cfg = cfg or settings()
    if cfg.database_url:
        return SqlProductRepository(engine(cfg.database_url))
    return JsonProductRepository(cfg.data_dir / "products.json")


def order_repository(cfg: Settings | None = None) -> OrderRepository:
    cfg = cfg or settings()
    if cfg.database_url:
        return SqlOrderRepository(engine(cfg.database_url))
    return JsonOrderRepository(cfg.data_dir / "orders.json")


def card_repository(cfg: Settings | None = None) -> CardRepository:
    """Build the card store and settle the reservation capability once."""
    cfg = cfg or settings()
    repo: CardRepository
    if cfg.database_url:
        repo = SqlCardRepository(engine(cfg.database_url))
    else:
        repo = JsonCardRepository(cfg.data_dir / "cards.json")

    if not repo.supports_reservations and cfg.require_reservations:
        raise ReservationTrackingUnavailable(
            "Card store has no reservation tracking and "
            "CARDSHOP_REQUIRE_RESERVATIONS is set"
        )
    return repo


def allocation_service(
    card_repo: CardRepository, cfg: Settings | None = None
) -> AllocationService:
    cfg = cfg or settings()
    return AllocationService(card_repo, stale_window=cfg.stale_window)


def fulfill_order_handler(cfg: Settings | None = None) -> FulfillOrderHandler:
    cfg = cfg or settings()
    return FulfillOrderHandler(
        order_repo=order_repository(cfg),
        product_repo=product_repository(cfg),
        allocation=allocation_service(card_repository(cfg), cfg),
    )


def resync_order_handler(cfg: Settings | None = None) -> ResyncOrderHandler:
    cfg = cfg or settings()
    return ResyncOrderHandler(
        order_repo=order_repository(cfg),
        product_repo=product_repository(cfg),
        allocation=allocation_service(card_repository(cfg), cfg),
    )
