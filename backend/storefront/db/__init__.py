from __future__ import annotations

from .base import Base, utc_now
from .serialize import serialize, serialize_many
from .session import Database, commit, get_database, get_db

__all__ = [
    "Base",
    "Database",
    "commit",
    "get_database",
    "get_db",
    "serialize",
    "serialize_many",
    "utc_now",
]
