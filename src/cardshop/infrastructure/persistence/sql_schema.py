"""SQLAlchemy table definitions for the SQL store.

Timestamps are stored as naive UTC; ``to_db``/``from_db`` convert at the
repository boundary.  Amounts are stored as text to keep Decimal
precision on every backend.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("is_shared", Boolean, nullable=False, default=False),
)

orders = Table(
    "orders",
    metadata,
    Column("order_id", String(64), primary_key=True),
    Column("product_id", String(64), nullable=False, index=True),
    Column("amount", String(32), nullable=False),
    Column("quantity", Integer, nullable=False, default=1),
    Column("status", String(16), nullable=False, default="pending"),
    Column("paid_at", DateTime, nullable=True),
    Column("delivered_at", DateTime, nullable=True),
    Column("trade_no", String(128), nullable=True),
    Column("card_key", Text, nullable=True),
    Column("current_payment_id", String(128), nullable=True),
    Column("created_at", DateTime, nullable=False),
)

cards = Table(
    "cards",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("product_id", String(64), nullable=False, index=True),
    Column("card_key", Text, nullable=False),
    # NULL is read as "not used" for rows loaded by older tooling.
    Column("is_used", Boolean, nullable=True, default=False),
    Column("used_at", DateTime, nullable=True),
    Column("reserved_order_id", String(64), nullable=True, index=True),
    Column("reserved_at", DateTime, nullable=True),
)

RESERVATION_COLUMNS = frozenset({"reserved_order_id", "reserved_at"})


def create_schema(engine: Engine) -> None:
    """Create missing tables.  Existing tables are left as they are."""
    metadata.create_all(engine)


def to_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def from_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value
