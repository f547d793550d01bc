from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .query import DateRangeQuery

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]


class OrderItemCreate(BaseModel):
    product_id: int = Field(ge=1)
    quantity: int = Field(ge=1)


class OrderCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: int | None = Field(default=None, ge=1)
    shipping_address: str = Field(min_length=1)
    payment_method: str = Field(min_length=1, max_length=50)
    notes: str | None = None
    order_items: list[OrderItemCreate] = Field(min_length=1)


class OrderUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: OrderStatus | None = None
    shipping_address: str | None = Field(default=None, min_length=1)
    payment_method: str | None = Field(default=None, min_length=1, max_length=50)
    tracking_number: str | None = Field(default=None, max_length=100)
    notes: str | None = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderQuery(DateRangeQuery):
    user_id: int | None = None
    status: OrderStatus | None = None
    payment_method: str | None = None
    tracking_number: str | None = None
    min_total: float | None = None
    max_total: float | None = None
