from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BaseQuery(BaseModel):
    """Query parameters shared by every list endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    offset: int | None = Field(default=None, ge=0)
    sort_by: str | None = Field(default=None, alias="sortBy")
    sort_order: Literal["ASC", "DESC"] = Field(default="ASC", alias="sortOrder")
    search: str | None = None
    include: list[str] | None = None

    @field_validator("sort_order", mode="before")
    @classmethod
    def upper_sort_order(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator("include", mode="before")
    @classmethod
    def split_include(cls, v):
        # Accept `include=a,b` as well as repeated `include=a&include=b`.
        if v is None:
            return None
        items = [v] if isinstance(v, str) else list(v)
        out: list[str] = []
        for item in items:
            for part in str(item).split(","):
                part = part.strip()
                if part:
                    out.append(part)
        return out or None


class DateRangeQuery(BaseQuery):
    created_after: str | None = None
    created_before: str | None = None
