"""SQL implementation of ProductRepository (SQLAlchemy)."""

from __future__ import annotations

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine

from cardshop.domain.model.product import Product
from cardshop.domain.repository.product_repository import ProductRepository
from cardshop.infrastructure.persistence.sql_schema import products


class SqlProductRepository(ProductRepository):

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get_by_id(self, product_id: str) -> Product | None:
        stmt = select(products).where(products.c.id == product_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return self._to_domain(row) if row is not None else None

    def list_all(self) -> list[Product]:
        with self._engine.connect() as conn:
            rows = conn.execute(select(products).order_by(products.c.id)).mappings().all()
        return [self._to_domain(row) for row in rows]

    def save(self, product: Product) -> None:
        values = {"name": product.name, "is_shared": product.is_shared}
        with self._engine.begin() as conn:
            result = conn.execute(
                update(products).where(products.c.id == product.id).values(**values)
            )
            if result.rowcount == 0:
                conn.execute(insert(products).values(id=product.id, **values))

    @staticmethod
    def _to_domain(row) -> Product:
        return Product(
            id=row["id"],
            name=row["name"],
            is_shared=bool(row["is_shared"]),
        )
