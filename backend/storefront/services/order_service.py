from __future__ import annotations

from collections import OrderedDict
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..db import commit
from ..errors import BadRequest, NotFound
from ..models import Order, OrderItem, Product, User
from ..models.order import ORDER_CANCELLED, ORDER_PENDING
from ..observability.logging import get_logger
from ..repositories.query_builder import query_builder
from ..schemas.order import OrderCreate, OrderQuery, OrderUpdate
from .product_service import adjust_stock, current_stock

log = get_logger("orders")

SEARCH_FIELDS = ("status", "shipping_address", "payment_method", "notes")

_CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Round half-up to cents."""
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


def _not_enough_stock(product_id: int, name: str, available: int, requested: int) -> BadRequest:
    return BadRequest(
        message=f"Not enough stock for product {name}. Available: {available}, Requested: {requested}",
        entity="Product",
        key={"product_id": product_id},
    )


def _with_details(stmt):
    return stmt.options(
        selectinload(Order.user),
        selectinload(Order.order_items).selectinload(OrderItem.product),
    ).execution_options(populate_existing=True)


class OrderService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, data: OrderCreate, *, user_id: int) -> Order:
        if self.db.get(User, user_id) is None:
            raise BadRequest(message=f"User with ID {user_id} does not exist", entity="User")

        # Same product on several lines counts once against stock.
        requested: OrderedDict[int, int] = OrderedDict()
        for line in data.order_items:
            requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

        products = {
            p.product_id: p
            for p in self.db.scalars(select(Product).where(Product.product_id.in_(list(requested))))
        }
        for product_id in requested:
            if product_id not in products:
                raise BadRequest(
                    message=f"Product with ID {product_id} does not exist",
                    entity="Product",
                    key={"product_id": product_id},
                )
        for product_id, quantity in requested.items():
            product = products[product_id]
            if product.stock_quantity < quantity:
                raise _not_enough_stock(product_id, product.name, product.stock_quantity, quantity)

        # The check above can be stale by now; each decrement re-checks in the database.
        for product_id, quantity in requested.items():
            if not adjust_stock(self.db, product_id, -quantity):
                name = products[product_id].name
                self.db.rollback()
                available = current_stock(self.db, product_id) or 0
                raise _not_enough_stock(product_id, name, available, quantity)

        order = Order(
            user_id=user_id,
            status=ORDER_PENDING,
            shipping_address=data.shipping_address,
            payment_method=data.payment_method,
            notes=data.notes,
        )
        total = Decimal("0")
        for line in data.order_items:
            product = products[line.product_id]
            unit_price = to_money(product.price)
            line_total = to_money(unit_price * line.quantity)
            total += line_total
            order.order_items.append(
                OrderItem(
                    product=product,
                    quantity=line.quantity,
                    unit_price=float(unit_price),
                    total_price=float(line_total),
                )
            )
        order.total_amount = float(to_money(total))

        self.db.add(order)
        commit(self.db, entity="Order")
        log.info(
            "order_created",
            order_id=order.order_id,
            user_id=user_id,
            items=len(order.order_items),
            total_amount=order.total_amount,
        )
        return self.find_one(order.order_id)

    def find_all(self, query: OrderQuery, *, scope_user_id: int | None = None) -> dict[str, Any]:
        qb = query_builder
        filters = query.model_dump(include={"user_id", "status", "payment_method", "tracking_number"})
        if scope_user_id is not None:
            filters["user_id"] = scope_user_id

        stmt = select(Order)
        stmt = qb.apply_search(stmt, query.search, SEARCH_FIELDS, Order)
        stmt = qb.apply_string_filters(stmt, Order, filters)
        stmt = qb.apply_numeric_filters(stmt, Order, "total_amount", query.min_total, query.max_total)
        stmt = qb.apply_date_filters(stmt, Order, query.created_after, query.created_before)
        stmt = qb.apply_includes(stmt, query.include, Order)
        stmt = qb.apply_sorting(stmt, query, Order)
        return qb.paginate(self.db, stmt, query)

    def find_one(self, order_id: int) -> Order:
        order = self.db.scalar(_with_details(select(Order).where(Order.order_id == order_id)))
        if order is None:
            raise NotFound(
                message=f"Order with ID {order_id} not found",
                entity="Order",
                key={"order_id": order_id},
            )
        return order

    def find_by_user(self, user_id: int) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .options(selectinload(Order.order_items).selectinload(OrderItem.product))
            .order_by(Order.order_date.desc(), Order.order_id.desc())
        )
        return list(self.db.scalars(stmt).all())

    def _set_status(self, order: Order, status: str) -> None:
        if status == order.status:
            return
        if order.status == ORDER_CANCELLED:
            raise BadRequest(
                message="Cannot change the status of a cancelled order",
                entity="Order",
                key={"order_id": order.order_id},
            )
        if status == ORDER_CANCELLED:
            self._restore_stock(order)
        log.info("order_status_changed", order_id=order.order_id, old=order.status, new=status)
        order.status = status

    def _restore_stock(self, order: Order) -> None:
        for item in order.order_items:
            adjust_stock(self.db, item.product_id, item.quantity)

    def update(self, order_id: int, data: OrderUpdate) -> Order:
        order = self.find_one(order_id)
        changes = data.model_dump(exclude_unset=True)

        status = changes.pop("status", None)
        if status is not None:
            self._set_status(order, status)

        for key, value in changes.items():
            if value is None and key in ("shipping_address", "payment_method"):
                continue
            setattr(order, key, value)

        commit(self.db, entity="Order")
        return self.find_one(order_id)

    def update_status(self, order_id: int, status: str) -> Order:
        order = self.find_one(order_id)
        self._set_status(order, status)
        commit(self.db, entity="Order")
        return self.find_one(order_id)

    def remove(self, order_id: int) -> None:
        order = self.find_one(order_id)
        if order.status != ORDER_CANCELLED:
            self._restore_stock(order)
        self.db.delete(order)
        commit(self.db, entity="Order")
        log.info("order_deleted", order_id=order_id)
