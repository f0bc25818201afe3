"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from the packaged `migrations/`
directory. Applied filenames are journaled in a `schema_migration` table so
the same migration is never applied twice against a database. Intended for
local development, CI and small deployments; larger installations should use
Alembic or the platform's migration mechanism.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"

_JOURNAL_DDL = (
    "CREATE TABLE IF NOT EXISTS schema_migration ("
    "filename VARCHAR(255) PRIMARY KEY, "
    "applied_at VARCHAR(32) NOT NULL)"
)


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        # Skip rollback scripts in forward runs
        if "rollback" in p.name.lower():
            continue
        yield p


def _exec_sql_compat(conn: Connection, sql: str) -> None:
    """Execute SQL text, tolerating multi-statement files on SQLite.

    SQLite's DB-API (pysqlite) does not allow multiple statements in a single
    execute() call, so statements are split on ';' for SQLite only, skipping
    comment-only and empty segments. Other dialects receive the full script.
    """
    name = (getattr(conn.dialect, "name", "") or "").lower()
    if "sqlite" not in name:
        conn.exec_driver_sql(sql)
        return
    for stmt in sql.split(";"):
        lines = [ln for ln in stmt.splitlines() if ln.strip() and not ln.strip().startswith("--")]
        s = "\n".join(lines).strip()
        if not s or s.upper() in {"BEGIN", "COMMIT", "END"}:
            continue
        conn.exec_driver_sql(s)


def _applied_filenames(conn: Connection) -> set[str]:
    rows = conn.execute(sql_text("SELECT filename FROM schema_migration")).fetchall()
    return {str(r[0]) for r in rows}


def apply_migrations(engine: Engine, migrations_dir: str | os.PathLike[str] | None = None) -> list[str]:
    """Apply pending migrations and return the filenames applied in this run."""
    root = Path(migrations_dir) if migrations_dir is not None else MIGRATIONS_DIR
    if not root.exists():
        logger.warning("migrations_dir_missing path=%s", str(root))
        return []

    newly_applied: list[str] = []
    with engine.begin() as conn:
        conn.exec_driver_sql(_JOURNAL_DDL)
        applied = _applied_filenames(conn)
        for sql_path in _iter_sql_files(root):
            fname = sql_path.name
            if fname in applied:
                continue
            sql = sql_path.read_text(encoding="utf-8")
            if not sql.strip():
                continue
            try:
                _exec_sql_compat(conn, sql)
            except Exception:
                logger.error("migration_failed file=%s", fname, exc_info=True)
                raise
            conn.execute(
                sql_text("INSERT INTO schema_migration (filename, applied_at) VALUES (:f, :at)"),
                {
                    "f": fname,
                    # ISO-8601 UTC without fractional seconds (e.g. 2024-01-01T00:00:00Z)
                    "at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
                },
            )
            newly_applied.append(fname)
            logger.info("migration_applied file=%s", fname)
    return newly_applied


__all__ = ["MIGRATIONS_DIR", "apply_migrations"]
