from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import Conflict
from ..observability.logging import get_logger
from .base import Base

log = get_logger("db")


def _is_sqlite(url: str) -> bool:
    return str(url or "").startswith("sqlite")


def _is_memory_sqlite(url: str) -> bool:
    u = str(url or "").strip()
    return u in ("sqlite://", "sqlite:///:memory:", "sqlite+pysqlite://", "sqlite+pysqlite:///:memory:")


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    # SQLite ships with FK enforcement off.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and session factory for one application instance."""

    def __init__(self, url: str, *, echo: bool = False):
        self.url = str(url)
        kwargs: dict[str, Any] = {}
        if _is_sqlite(self.url):
            # Sync endpoints run in a threadpool.
            kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_sqlite(self.url):
                # One shared connection, otherwise every checkout sees an empty database.
                kwargs["poolclass"] = StaticPool

        self.engine: Engine = create_engine(self.url, echo=echo, **kwargs)
        if _is_sqlite(self.url):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_all(self) -> None:
        from .. import models  # noqa: F401  (registers mappers on Base.metadata)

        Base.metadata.create_all(self.engine)
        log.info("db_schema_ready", tables=sorted(Base.metadata.tables))

    def drop_all(self) -> None:
        from .. import models  # noqa: F401

        Base.metadata.drop_all(self.engine)

    def truncate_all(self) -> None:
        """Delete every row, children before parents."""
        from .. import models  # noqa: F401

        with self.engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            log.warning("db_ping_failed", error=str(e))
            return False

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency: one session per request."""
    session = get_database(request).session()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def commit(session: Session, *, conflict_message: str | None = None, entity: str | None = None) -> None:
    """
    Commit the unit of work, mapping constraint violations to a 409.
    """
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        log.info("db_integrity_error", entity=entity, error=str(e.orig) if e.orig else str(e))
        raise Conflict(
            message=conflict_message or "Operation violates a database constraint",
            entity=entity,
            cause=e,
        ) from e
