from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .query import DateRangeQuery


class ReviewCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: int | None = Field(default=None, ge=1)
    product_id: int = Field(ge=1)
    rating: int = Field(ge=1, le=5)
    title: str | None = Field(default=None, max_length=255)
    comment: str | None = None
    is_verified_purchase: bool = False


class ReviewUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    rating: int | None = Field(default=None, ge=1, le=5)
    title: str | None = Field(default=None, max_length=255)
    comment: str | None = None
    is_verified_purchase: bool | None = None


class ReviewQuery(DateRangeQuery):
    user_id: int | None = None
    product_id: int | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    min_rating: int | None = Field(default=None, ge=1, le=5)
    max_rating: int | None = Field(default=None, ge=1, le=5)
    is_verified_purchase: bool | None = None
