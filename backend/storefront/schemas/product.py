from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .query import DateRangeQuery


class ProductCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    price: float = Field(ge=0, le=99_999_999.99)
    category: str = Field(min_length=1, max_length=100)
    brand: str | None = Field(default=None, max_length=100)
    stock_quantity: int = Field(default=0, ge=0)
    image_url: str | None = Field(default=None, max_length=500)
    is_active: bool = True


class ProductUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    price: float | None = Field(default=None, ge=0, le=99_999_999.99)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    brand: str | None = Field(default=None, max_length=100)
    stock_quantity: int | None = Field(default=None, ge=0)
    image_url: str | None = Field(default=None, max_length=500)
    is_active: bool | None = None


class StockUpdate(BaseModel):
    # Signed delta applied to the current stock.
    quantity: int


class ProductQuery(DateRangeQuery):
    name: str | None = None
    category: str | None = None
    brand: str | None = None
    is_active: bool | None = None
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    min_stock: int | None = Field(default=None, ge=0)
