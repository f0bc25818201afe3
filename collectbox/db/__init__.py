"""Database bootstrap utilities for collectbox.

Exposes engine construction, the request-scoped engine dependency and the
SQL migrations runner. The DB layer stays minimal and does not leak ORM
models into route handlers; repositories in `collectbox/logic/` issue SQL
through SQLAlchemy Core.
"""

from collectbox.db.base import build_engine, engine_dependency
from collectbox.db.migrations_runner import apply_migrations

__all__ = [
    "build_engine",
    "engine_dependency",
    "apply_migrations",
]
