"""Product aggregate.

A product is what an order buys.  For fulfillment only two facts matter:
whether its stock is shared (one card serves any number of orders) and
whether it is a payment-only record with nothing to deliver.
"""

from __future__ import annotations

from dataclasses import dataclass

# Orders for these product ids are pure payment records (top-ups, invoices).
PAYMENT_PRODUCT_ID = "payment"
PAYMENT_PRODUCT_PREFIX = PAYMENT_PRODUCT_ID + ":"


def is_payment_product(product_id: str) -> bool:
    return product_id == PAYMENT_PRODUCT_ID or product_id.startswith(
        PAYMENT_PRODUCT_PREFIX
    )


@dataclass
class Product:
    """A product in the catalog.

    ``is_shared`` products never exhaust: the same card key is handed out
    to every buyer.
    """

    id: str
    name: str
    is_shared: bool = False

    @property
    def is_payment_only(self) -> bool:
        return is_payment_product(self.id)
