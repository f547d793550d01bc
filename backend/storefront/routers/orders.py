from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..auth.dependencies import AdminUser, CurrentUser, StaffUser
from ..db import serialize, serialize_many
from ..models import Order, User
from ..schemas.order import OrderCreate, OrderQuery, OrderStatusUpdate, OrderUpdate
from ..services.order_service import OrderService
from .deps import DbSession

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_service(db: DbSession) -> OrderService:
    return OrderService(db)


Orders = Annotated[OrderService, Depends(get_order_service)]


def _ensure_can_access(order: Order, user: User) -> None:
    if order.user_id != user.user_id and not user.is_staff:
        raise HTTPException(status_code=403, detail="You can only access your own orders")


@router.post("", status_code=201)
def create_order(body: OrderCreate, current: CurrentUser, orders: Orders):
    user_id = body.user_id or current.user_id
    if user_id != current.user_id and not current.is_staff:
        raise HTTPException(status_code=403, detail="You can only create orders for yourself")
    return serialize(orders.create(body, user_id=user_id))


@router.get("")
def list_orders(current: CurrentUser, query: Annotated[OrderQuery, Query()], orders: Orders):
    scope = None if current.is_staff else current.user_id
    return orders.find_all(query, scope_user_id=scope)


@router.get("/user/{user_id}")
def list_orders_for_user(user_id: int, current: CurrentUser, orders: Orders):
    if current.user_id != user_id and not current.is_staff:
        raise HTTPException(status_code=403, detail="You can only access your own orders")
    return serialize_many(orders.find_by_user(user_id))


@router.get("/{order_id}")
def get_order(order_id: int, current: CurrentUser, orders: Orders):
    order = orders.find_one(order_id)
    _ensure_can_access(order, current)
    return serialize(order)


@router.patch("/{order_id}")
def update_order(order_id: int, body: OrderUpdate, current: CurrentUser, orders: Orders):
    order = orders.find_one(order_id)
    _ensure_can_access(order, current)
    if not current.is_staff and body.model_fields_set & {"status", "tracking_number"}:
        raise HTTPException(
            status_code=403, detail="Only staff can change order status or tracking number"
        )
    return serialize(orders.update(order_id, body))


@router.patch("/{order_id}/status")
def update_order_status(order_id: int, body: OrderStatusUpdate, _: StaffUser, orders: Orders):
    return serialize(orders.update_status(order_id, body.status))


@router.delete("/{order_id}", status_code=204)
def delete_order(order_id: int, _: AdminUser, orders: Orders):
    orders.remove(order_id)
    return Response(status_code=204)
