"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, declarative_base, sessionmaker

from .core.config import settings

logger = logging.getLogger(__name__)


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"echo": settings.database_echo, "future": True}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(
            {
                "pool_size": 5,
                "max_overflow": 5,
                "pool_timeout": 5,
                "pool_recycle": 300,
                "pool_pre_ping": True,
            }
        )
    return kwargs


def create_db_engine(db_url: str | None = None, **overrides: Any) -> Engine:
    url = db_url or settings.database_url
    kwargs = _build_engine_kwargs(url)
    kwargs.update(overrides)
    db_engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(db_engine, "connect", _on_sqlite_connect)
        event.listen(db_engine, "begin", _on_sqlite_begin)
    return db_engine


def _on_sqlite_connect(dbapi_connection: Any, connection_record: Any) -> None:
    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; SQLAlchemy emits it instead
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_sqlite_begin(conn: Any) -> None:
    conn.exec_driver_sql("BEGIN")


engine: Engine = create_db_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


__all__ = [
    "Base",
    "SessionLocal",
    "create_db_engine",
    "engine",
]
