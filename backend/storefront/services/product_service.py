from __future__ import annotations

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..db import commit
from ..errors import BadRequest, NotFound
from ..models import Product
from ..observability.logging import get_logger
from ..repositories.query_builder import query_builder
from ..schemas.product import ProductCreate, ProductQuery, ProductUpdate

log = get_logger("products")

SEARCH_FIELDS = ("name", "description", "category", "brand")


def adjust_stock(db: Session, product_id: int, delta: int) -> bool:
    """Apply a signed stock change as one relative UPDATE.

    Returns False, leaving the row untouched, when the change would take the
    stock below zero. Concurrent callers cannot overwrite each other's change.
    """
    result = db.execute(
        update(Product)
        .where(Product.product_id == product_id, Product.stock_quantity + delta >= 0)
        .values(stock_quantity=Product.stock_quantity + delta)
        .execution_options(synchronize_session=False)
    )
    return bool(result.rowcount)


def current_stock(db: Session, product_id: int) -> int | None:
    return db.scalar(select(Product.stock_quantity).where(Product.product_id == product_id))


class ProductService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, data: ProductCreate) -> Product:
        product = Product(**data.model_dump())
        self.db.add(product)
        commit(self.db, entity="Product")
        log.info("product_created", product_id=product.product_id, category=product.category)
        return product

    def find_all(self, query: ProductQuery) -> dict[str, Any]:
        qb = query_builder
        stmt = select(Product)
        stmt = qb.apply_search(stmt, query.search, SEARCH_FIELDS, Product)
        stmt = qb.apply_string_filters(
            stmt, Product, query.model_dump(include={"name", "category", "brand", "is_active"})
        )
        stmt = qb.apply_numeric_filters(stmt, Product, "price", query.min_price, query.max_price)
        stmt = qb.apply_numeric_filters(stmt, Product, "stock_quantity", query.min_stock, None)
        stmt = qb.apply_date_filters(stmt, Product, query.created_after, query.created_before)
        stmt = qb.apply_includes(stmt, query.include, Product)
        stmt = qb.apply_sorting(stmt, query, Product)
        return qb.paginate(self.db, stmt, query)

    def find_by_category(self, category: str) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.category == category, Product.is_active.is_(True))
            .order_by(Product.name, Product.product_id)
        )
        return list(self.db.scalars(stmt).all())

    def find_one(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if product is None:
            raise NotFound(
                message=f"Product with ID {product_id} not found",
                entity="Product",
                key={"product_id": product_id},
            )
        return product

    def update(self, product_id: int, data: ProductUpdate) -> Product:
        product = self.find_one(product_id)
        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            if value is None and key in ("name", "price", "category", "stock_quantity", "is_active"):
                continue
            setattr(product, key, value)
        commit(self.db, entity="Product")
        log.info("product_updated", product_id=product_id, fields=sorted(changes))
        return product

    def update_stock(self, product_id: int, quantity: int) -> Product:
        product = self.find_one(product_id)
        if not adjust_stock(self.db, product_id, quantity):
            self.db.rollback()
            raise BadRequest(
                message=(
                    f"Insufficient stock. Available: {current_stock(self.db, product_id)}, "
                    f"Requested change: {quantity}"
                ),
                entity="Product",
                key={"product_id": product_id},
            )
        commit(self.db, entity="Product")
        self.db.refresh(product)
        log.info(
            "product_stock_changed",
            product_id=product_id,
            delta=quantity,
            stock=product.stock_quantity,
        )
        return product

    def remove(self, product_id: int) -> None:
        product = self.find_one(product_id)
        self.db.delete(product)
        commit(
            self.db,
            conflict_message="Product is referenced by existing orders and cannot be deleted",
            entity="Product",
        )
        log.info("product_deleted", product_id=product_id)
