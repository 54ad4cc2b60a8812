"""Application service: Fulfill Order use case.

The single entry point a payment callback calls once the provider
reports money received.  Verifies the amount, then either records the
payment (payment-only products, out-of-stock orders) or delivers cards
via the allocation domain service.

Every call ends in at most one order write.  Re-delivered callbacks are
absorbed by the status check: an order that is already ``paid`` or
``delivered`` is reported as ``already_processed`` and left untouched.

The status check and the final write are not one atomic step, and
``OrderRepository.save`` overwrites unconditionally.  Two callbacks for
the same order that both read it before either saves will each allocate,
and the later write replaces the earlier ``card_key``.  The cards claimed
by the earlier call stay used.  Duplicates are only absorbed once the
first call has saved; there is no order-level lock.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from decimal import Decimal
from typing import Callable

from cardshop.application.dto import ALREADY_PROCESSED, PROCESSED, FulfillmentResult
from cardshop.domain.exceptions import AmountMismatchError, EntityNotFoundError
from cardshop.domain.model.order import Order
from cardshop.domain.model.product import Product, is_payment_product
from cardshop.domain.model.value_objects import to_decimal
from cardshop.domain.repository.order_repository import OrderRepository
from cardshop.domain.repository.product_repository import ProductRepository
from cardshop.domain.service.allocation_service import (
    AllocationOutcome,
    AllocationService,
    utc_now,
)

logger = logging.getLogger(__name__)

# Absolute tolerance between paid and expected amount.
AMOUNT_TOLERANCE = Decimal("0.01")


class FulfillOrderHandler:

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

    def handle(
        self,
        order_id: str,
        paid_amount: str | float | int | Decimal,
        trade_no: str,
    ) -> FulfillmentResult:
        """Settle a payment for an order.

        Raises:
            EntityNotFoundError: no order with this ID.
            AmountMismatchError: paid amount differs by more than 0.01.
        """
        order = self._order_repo.get_by_order_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order {order_id} not found")

        paid = to_decimal(paid_amount)
        if not order.amount.matches(paid, AMOUNT_TOLERANCE):
            raise AmountMismatchError(
                f"Amount mismatch for order {order_id}: "
                f"expected {order.amount.amount}, paid {paid}"
            )

        if is_payment_product(order.product_id):
            if order.is_awaiting_payment:
                order.mark_paid(trade_no, self._clock())
                self._order_repo.save(order)
                logger.info("Payment order %s marked as paid", order_id)
            return FulfillmentResult(status=PROCESSED)

        if order.is_terminal:
            logger.info(
                "Order %s already %s, ignoring callback", order_id, order.status.value
            )
            return FulfillmentResult(status=ALREADY_PROCESSED)

        product = self._product_repo.get_by_id(order.product_id)
        outcome = self._allocation.allocate(order, product, self._rng_factory())
        record_outcome(order, product, outcome, trade_no, self._clock())
        self._order_repo.save(order)
        return FulfillmentResult(status=PROCESSED)


def record_outcome(
    order: Order,
    product: Product | None,
    outcome: AllocationOutcome,
    trade_no: str | None,
    at: datetime,
) -> None:
    """Apply an allocation outcome to the order (in memory only)."""
    if outcome.is_empty:
        if order.is_awaiting_payment:
            order.mark_paid(trade_no, at)
        logger.warning("Order %s marked as paid (no stock)", order.order_id)
        return

    shared = product is not None and product.is_shared
    order.mark_delivered(list(outcome.delivered_keys), trade_no, at, clear_payment=shared)
    logger.info(
        "Order %s delivered with %d card key(s)", order.order_id, outcome.claimed
    )
