"""Collection data access helpers.

Encapsulates collection queries so the service and route layers stay free of
inline SQL. Callers own the transaction: every helper takes a Connection.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from collectbox.logic.timestamps import format_timestamp

logger = logging.getLogger(__name__)

_COLUMNS = (
    "collection_id, name, owner_principal, admin_token, submission_token, "
    "has_password, password_secret, created_at"
)


def _row_to_collection(row: Any) -> Dict[str, Any]:
    m = row._mapping
    return {
        "collection_id": str(m["collection_id"]),
        "name": m["name"],
        "owner_principal": m["owner_principal"],
        "admin_token": m["admin_token"],
        "submission_token": m["submission_token"],
        "has_password": bool(m["has_password"]),
        "password_secret": m["password_secret"],
        "created_at": m["created_at"],
    }


def insert_collection(
    conn: Connection,
    *,
    name: str,
    owner_principal: str,
    admin_token: str,
    submission_token: str,
    password_secret: Optional[str] = None,
) -> str:
    """Insert a collection row and return its id.

    Unique-index violations on either token surface as IntegrityError; the
    caller decides whether to re-mint.
    """
    collection_id = str(uuid.uuid4())
    conn.execute(
        sql_text(
            """
            INSERT INTO collection (collection_id, name, owner_principal, admin_token, submission_token,
                                    has_password, password_secret, created_at)
            VALUES (:cid, :name, :owner, :admin, :sub, :has_pw, :secret, :created_at)
            """
        ),
        {
            "cid": collection_id,
            "name": name,
            "owner": owner_principal,
            "admin": admin_token,
            "sub": submission_token,
            "has_pw": password_secret is not None,
            "secret": password_secret,
            "created_at": format_timestamp(),
        },
    )
    return collection_id


def get_collection(conn: Connection, collection_id: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        sql_text(f"SELECT {_COLUMNS} FROM collection WHERE collection_id = :cid"),
        {"cid": str(collection_id)},
    ).fetchone()
    return _row_to_collection(row) if row is not None else None


def get_by_admin_token(conn: Connection, admin_token: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        sql_text(f"SELECT {_COLUMNS} FROM collection WHERE admin_token = :t"),
        {"t": str(admin_token)},
    ).fetchone()
    return _row_to_collection(row) if row is not None else None


def get_by_submission_token(conn: Connection, submission_token: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        sql_text(f"SELECT {_COLUMNS} FROM collection WHERE submission_token = :t"),
        {"t": str(submission_token)},
    ).fetchone()
    return _row_to_collection(row) if row is not None else None


def list_by_owner(conn: Connection, owner_principal: str) -> List[Dict[str, Any]]:
    rows = conn.execute(
        sql_text(
            f"SELECT {_COLUMNS} FROM collection WHERE owner_principal = :owner "
            "ORDER BY created_at ASC, collection_id ASC"
        ),
        {"owner": str(owner_principal)},
    ).fetchall()
    return [_row_to_collection(r) for r in rows]


def set_password_secret(conn: Connection, collection_id: str, password_secret: Optional[str]) -> None:
    """Set or clear the admin password; the only mutable collection fields."""
    conn.execute(
        sql_text(
            "UPDATE collection SET has_password = :has_pw, password_secret = :secret WHERE collection_id = :cid"
        ),
        {"has_pw": password_secret is not None, "secret": password_secret, "cid": str(collection_id)},
    )
    logger.info("collection_password_updated collection_id=%s enabled=%s", collection_id, password_secret is not None)


__all__ = [
    "insert_collection",
    "get_collection",
    "get_by_admin_token",
    "get_by_submission_token",
    "list_by_owner",
    "set_password_secret",
]
