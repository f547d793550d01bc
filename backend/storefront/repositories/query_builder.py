"""
Generic list-query building over SQLAlchemy `Select` statements.

Every list endpoint runs the same pipeline: search, filters, includes, sorting,
then `paginate()` which counts the filtered rows and fetches one page.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, and_, asc, desc, func, inspect, or_, select
from sqlalchemy.orm import Session, aliased, selectinload

from ..db.serialize import serialize_many
from ..errors import BadRequest
from ..observability.logging import get_logger
from ..schemas.query import BaseQuery

log = get_logger("query_builder")

DATE_FILTER_KEYS = frozenset({"created_after", "created_before"})


def parse_datetime(value: str, *, param: str = "date") -> datetime:
    """Parse an ISO-8601 date or datetime into naive UTC."""
    try:
        dt = datetime.fromisoformat(str(value).strip())
    except ValueError as e:
        raise BadRequest(message=f"Invalid {param}: expected an ISO-8601 date") from e
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _column(model: type, field: str):
    mapper = inspect(model)
    if field not in mapper.column_attrs:
        return None
    return getattr(model, field)


class QueryBuilder:
    def apply_pagination(self, stmt: Select, query: BaseQuery) -> Select:
        page = query.page or 1
        limit = query.limit or 10
        offset = query.offset if query.offset is not None else (page - 1) * limit
        return stmt.offset(offset).limit(limit)

    def apply_sorting(
        self, stmt: Select, query: BaseQuery, model: type, default: str = "created_at"
    ) -> Select:
        field = (query.sort_by or default).strip()
        direction = desc if query.sort_order == "DESC" else asc

        if "." in field:
            rel_name, _, col_name = field.partition(".")
            relationships = inspect(model).relationships
            if rel_name not in relationships or relationships[rel_name].uselist:
                raise BadRequest(message=f"Cannot sort by '{field}'")
            target = aliased(relationships[rel_name].mapper.class_)
            if "." in col_name or col_name not in inspect(target).mapper.column_attrs:
                raise BadRequest(message=f"Cannot sort by '{field}'")
            stmt = stmt.outerjoin(target, getattr(model, rel_name))
            column = getattr(target, col_name)
        else:
            column = _column(model, field)
            if column is None:
                raise BadRequest(message=f"Cannot sort by '{field}'")

        # Primary key as tie-breaker keeps pages stable.
        pk = [getattr(model, c.key) for c in inspect(model).primary_key]
        return stmt.order_by(direction(column), *pk)

    def apply_search(
        self, stmt: Select, search: str | None, fields: Iterable[str], model: type
    ) -> Select:
        term = (search or "").strip()
        fields = list(fields)
        if not term or not fields:
            return stmt
        clauses = [getattr(model, f).icontains(term, autoescape=True) for f in fields]
        return stmt.where(or_(*clauses))

    def apply_date_filters(
        self,
        stmt: Select,
        model: type,
        created_after: str | None = None,
        created_before: str | None = None,
        field: str = "created_at",
    ) -> Select:
        column = getattr(model, field)
        if created_after:
            stmt = stmt.where(column >= parse_datetime(created_after, param="created_after"))
        if created_before:
            stmt = stmt.where(column <= parse_datetime(created_before, param="created_before"))
        return stmt

    def apply_includes(
        self, stmt: Select, includes: str | Iterable[str] | None, model: type
    ) -> Select:
        if not includes:
            return stmt
        if isinstance(includes, str):
            includes = includes.split(",")

        seen: set[str] = set()
        for raw in includes:
            path = str(raw).strip()
            if not path or path in seen:
                continue
            seen.add(path)

            current = model
            loader = None
            for segment in path.split("."):
                relationships = inspect(current).relationships
                if segment not in relationships:
                    log.warning("include_skipped", model=model.__name__, include=path, segment=segment)
                    break
                attr = getattr(current, segment)
                loader = selectinload(attr) if loader is None else loader.selectinload(attr)
                current = relationships[segment].mapper.class_
            if loader is not None:
                stmt = stmt.options(loader)
        return stmt

    def apply_numeric_filters(
        self,
        stmt: Select,
        model: type,
        field: str,
        min_value: float | None = None,
        max_value: float | None = None,
    ) -> Select:
        column = getattr(model, field)
        if min_value is not None:
            stmt = stmt.where(column >= min_value)
        if max_value is not None:
            stmt = stmt.where(column <= max_value)
        return stmt

    def apply_string_filters(
        self, stmt: Select, model: type, filters: Mapping[str, Any]
    ) -> Select:
        clauses = []
        for key, value in filters.items():
            if value is None or value == "" or key in DATE_FILTER_KEYS:
                continue
            column = _column(model, key)
            if column is None:
                continue
            if isinstance(value, str):
                clauses.append(column.icontains(value, autoescape=True))
            else:
                clauses.append(column == value)
        if clauses:
            stmt = stmt.where(and_(*clauses))
        return stmt

    def paginate(self, session: Session, stmt: Select, query: BaseQuery) -> dict[str, Any]:
        page = query.page or 1
        limit = query.limit or 10

        total = session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
        rows = session.scalars(self.apply_pagination(stmt, query)).all()

        total_pages = math.ceil(total / limit) if limit else 0
        return {
            "data": serialize_many(rows),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": total_pages,
                "hasNext": page < total_pages,
                "hasPrev": page > 1,
            },
        }


query_builder = QueryBuilder()
