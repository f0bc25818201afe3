"""Submitter roster data access helpers."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from collectbox.logic.errors import Conflict
from collectbox.logic.timestamps import format_timestamp

logger = logging.getLogger(__name__)


def submitter_exists(conn: Connection, collection_id: str, name: str) -> bool:
    row = conn.execute(
        sql_text("SELECT 1 FROM submitter WHERE collection_id = :cid AND name = :name"),
        {"cid": str(collection_id), "name": name},
    ).fetchone()
    return row is not None


def add_submitter(conn: Connection, collection_id: str, name: str) -> str:
    """Insert a submitter and return its id.

    Duplicate names (exact, case-sensitive) raise Conflict. The lookup gives a
    clean error in the common case; the unique index covers the race between
    lookup and insert.
    """
    if submitter_exists(conn, collection_id, name):
        logger.info("submitter_duplicate collection_id=%s", collection_id)
        raise Conflict(f"submitter already exists: {name}", code="SUBMITTER_DUPLICATE")
    submitter_id = str(uuid.uuid4())
    try:
        conn.execute(
            sql_text(
                "INSERT INTO submitter (submitter_id, collection_id, name, created_at) "
                "VALUES (:sid, :cid, :name, :created_at)"
            ),
            {"sid": submitter_id, "cid": str(collection_id), "name": name, "created_at": format_timestamp()},
        )
    except IntegrityError as e:
        logger.info("submitter_duplicate_race collection_id=%s", collection_id)
        raise Conflict(f"submitter already exists: {name}", code="SUBMITTER_DUPLICATE") from e
    logger.info("submitter_added collection_id=%s submitter_id=%s", collection_id, submitter_id)
    return submitter_id


def list_submitters(conn: Connection, collection_id: str) -> List[Dict[str, Any]]:
    rows = conn.execute(
        sql_text(
            "SELECT submitter_id, collection_id, name FROM submitter "
            "WHERE collection_id = :cid ORDER BY created_at ASC, submitter_id ASC"
        ),
        {"cid": str(collection_id)},
    ).fetchall()
    return [
        {"submitter_id": str(r[0]), "collection_id": str(r[1]), "name": r[2]}
        for r in rows
    ]


__all__ = ["submitter_exists", "add_submitter", "list_submitters"]
