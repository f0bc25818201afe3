"""Field definition (schema) data access helpers.

A collection's schema is replaced as a unit: all rows are deleted and the
new list inserted with `order` reassigned from list position. The column is
named `position` because ORDER is reserved in SQL.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, Iterable, List, Mapping

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from collectbox.logic.field_keys import SELECTOR_LABEL

logger = logging.getLogger(__name__)


def assign_order(fields: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Return copies of `fields` with `order` set to their 0-based position."""
    ordered: List[Dict[str, Any]] = []
    for position, field in enumerate(fields):
        options = field.get("choice_options")
        ordered.append(
            {
                "label": str(field["label"]),
                "kind": str(field["kind"]),
                "required": bool(field.get("required", False)),
                "choice_options": list(options) if options is not None else None,
                "order": position,
            }
        )
    return ordered


def selector_field() -> Dict[str, Any]:
    """The submitter-selector field seeded into every new collection."""
    return {"label": SELECTOR_LABEL, "kind": "choice", "required": True, "choice_options": None}


def _row_to_field(row: Any) -> Dict[str, Any]:
    m = row._mapping
    options = m["choice_options"]
    return {
        "field_id": str(m["field_id"]),
        "collection_id": str(m["collection_id"]),
        "label": m["label"],
        "kind": m["kind"],
        "required": bool(m["required"]),
        "choice_options": json.loads(options) if options else None,
        "order": int(m["position"]),
    }


def insert_fields(conn: Connection, collection_id: str, fields: Iterable[Mapping[str, Any]]) -> int:
    """Insert `fields` after `assign_order`; returns the number inserted."""
    ordered = assign_order(fields)
    for field in ordered:
        conn.execute(
            sql_text(
                """
                INSERT INTO field_definition (field_id, collection_id, label, kind, required, choice_options, position)
                VALUES (:fid, :cid, :label, :kind, :required, :options, :position)
                """
            ),
            {
                "fid": str(uuid.uuid4()),
                "cid": str(collection_id),
                "label": field["label"],
                "kind": field["kind"],
                "required": field["required"],
                "options": (
                    json.dumps(field["choice_options"], ensure_ascii=False)
                    if field["choice_options"] is not None
                    else None
                ),
                "position": field["order"],
            },
        )
    return len(ordered)


def replace_fields(conn: Connection, collection_id: str, fields: Iterable[Mapping[str, Any]]) -> int:
    """Delete every field of the collection, then insert `fields` in order."""
    deleted = conn.execute(
        sql_text("DELETE FROM field_definition WHERE collection_id = :cid"),
        {"cid": str(collection_id)},
    ).rowcount
    inserted = insert_fields(conn, collection_id, fields)
    logger.info(
        "fields_replaced collection_id=%s deleted=%s inserted=%s", collection_id, deleted, inserted
    )
    return inserted


def list_fields(conn: Connection, collection_id: str) -> List[Dict[str, Any]]:
    rows = conn.execute(
        sql_text(
            """
            SELECT field_id, collection_id, label, kind, required, choice_options, position
            FROM field_definition
            WHERE collection_id = :cid
            ORDER BY position ASC
            """
        ),
        {"cid": str(collection_id)},
    ).fetchall()
    return [_row_to_field(r) for r in rows]


__all__ = ["assign_order", "selector_field", "insert_fields", "replace_fields", "list_fields"]
