"""SQLAlchemy engine construction and the FastAPI engine dependency.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. No declarative models are defined here; this module only
manages connection lifecycle. The engine is built once per application in
`create_app` and handed to repositories explicitly.
"""

from __future__ import annotations

import logging

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str) -> Engine:
    """Return a SQLAlchemy Engine for the given URL.

    For SQLite in-memory URLs, use a StaticPool to keep a single connection
    alive across sessions and threads so the schema survives between
    requests. SQLite connections get foreign-key enforcement switched on.
    """
    kwargs: dict = {"future": True, "pool_pre_ping": True}
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    if is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    logger.info("engine_built dialect=%s", engine.dialect.name)
    return engine


def engine_dependency(request: Request) -> Engine:
    """FastAPI dependency yielding the application's Engine."""
    return request.app.state.engine


__all__ = ["build_engine", "engine_dependency"]
