from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import inspect

from .base import Base


def _value(v: Any) -> Any:
    if isinstance(v, datetime):
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v.isoformat() + "Z"
    if isinstance(v, date):
        return v.isoformat()
    if isinstance(v, Decimal):
        return float(v)
    return v


def serialize(obj: Base | None, *, _seen: tuple[Base, ...] = ()) -> dict[str, Any] | None:
    """
    Render an ORM object as a JSON-ready dict.

    Columns listed in the model's `__private_fields__` are omitted. Relationships
    are rendered only when already loaded (eager includes, or set in this
    session), so serializing never triggers a lazy load. Back-references to an
    object already on the current path are skipped.
    """
    if obj is None:
        return None

    state = inspect(obj)
    mapper = state.mapper
    unloaded = state.unloaded
    private = getattr(obj, "__private_fields__", frozenset())

    out: dict[str, Any] = {}
    for attr in mapper.column_attrs:
        key = attr.key
        if key in private or key in unloaded:
            continue
        out[key] = _value(getattr(obj, key))

    path = _seen + (obj,)
    for rel in mapper.relationships:
        key = rel.key
        if key in unloaded:
            continue
        value = state.attrs[key].loaded_value
        if rel.uselist:
            out[key] = [
                serialize(child, _seen=path)
                for child in (value or [])
                if not any(child is p for p in path)
            ]
        elif value is None:
            out[key] = None
        elif not any(value is p for p in path):
            out[key] = serialize(value, _seen=path)
    return out


def serialize_many(objs) -> list[dict[str, Any]]:
    return [serialize(o) for o in objs]
