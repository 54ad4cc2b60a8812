"""Application service: Resync Order use case.

Orders that were paid while out of stock stay ``paid`` with no keys.
Once stock is loaded an operator resyncs them: allocation runs again
and, if cards are found, the order is delivered.  The payment was
already verified when the order became ``paid``, so no amount is
checked here.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import Callable

from cardshop.application.dto import ALREADY_PROCESSED, PROCESSED, FulfillmentResult
from cardshop.application.fulfill_order import record_outcome
from cardshop.domain.exceptions import EntityNotFoundError
from cardshop.domain.model.order import OrderStatus
from cardshop.domain.model.product import is_payment_product
from cardshop.domain.repository.order_repository import OrderRepository
from cardshop.domain.repository.product_repository import ProductRepository
from cardshop.domain.service.allocation_service import AllocationService, utc_now


class ResyncOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        allocation: AllocationService,
        clock: Callable[[], datetime] = utc_now,
        rng_factory: Callable[[], random.Random] = random.Random,
    ) -> None:
        self._order_repo = order_repo
        self._product_repo = product_repo
        self._allocation = allocation
        self._clock = clock
        self._rng_factory = rng_factory

    def handle(self, order_id: str) -> FulfillmentResult:
        order = self._order_repo.get_by_order_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order {order_id} not found")

        # Only paid-but-undelivered card orders are waiting on stock.
        if (
            order.status != OrderStatus.PAID
            or order.card_key
            or is_payment_product(order.product_id)
        ):
            return FulfillmentResult(status=ALREADY_PROCESSED)

        product = self._product_repo.get_by_id(order.product_id)
        outcome = self._allocation.allocate(order, product, self._rng_factory())
        if outcome.is_empty:
            # Still no stock: the order stays paid, nothing to write.
            return FulfillmentResult(status=PROCESSED)

        record_outcome(order, product, outcome, None, self._clock())
        self._order_repo.save(order)
        return FulfillmentResult(status=PROCESSED)
