"""Submission ledger data access helpers.

One row per (collection_id, submitter_name). Writes are a single
INSERT ... ON CONFLICT ... DO UPDATE statement against the unique index, so
concurrent submits for the same submitter commit as insert-or-overwrite and
never produce duplicate rows. A resubmit replaces the whole responses map
(last write wins, no version check). Values are not validated against the
collection's fields here: schema edits must never invalidate stored rows.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from collectbox.logic.timestamps import format_timestamp
from collectbox.models.response_values import (
    Attachment,
    Flag,
    Number,
    Text,
    dump_responses,
    load_responses,
)

logger = logging.getLogger(__name__)

_UPSERT_SQL = """
    INSERT INTO submission (submission_id, collection_id, submitter_name, responses, created_at, submitted_at)
    VALUES (:sid, :cid, :name, :responses, :now, :now)
    ON CONFLICT (collection_id, submitter_name)
    DO UPDATE SET responses = excluded.responses,
                  submitted_at = excluded.submitted_at
"""


def _row_to_submission(row: Any) -> Dict[str, Any]:
    m = row._mapping
    return {
        "submission_id": str(m["submission_id"]),
        "collection_id": str(m["collection_id"]),
        "submitter_name": m["submitter_name"],
        "responses": load_responses(m["responses"]),
        "created_at": m["created_at"],
        "submitted_at": m["submitted_at"],
    }


def upsert_submission(
    conn: Connection,
    collection_id: str,
    submitter_name: str,
    responses: Mapping[str, Text | Number | Flag | Attachment],
) -> str:
    """Insert or overwrite the submission for (collection, submitter).

    Returns the submission id; an overwrite keeps the id of the existing row.
    """
    conn.execute(
        sql_text(_UPSERT_SQL),
        {
            "sid": str(uuid.uuid4()),
            "cid": str(collection_id),
            "name": submitter_name,
            "responses": dump_responses(responses),
            "now": format_timestamp(),
        },
    )
    row = conn.execute(
        sql_text(
            "SELECT submission_id FROM submission WHERE collection_id = :cid AND submitter_name = :name"
        ),
        {"cid": str(collection_id), "name": submitter_name},
    ).fetchone()
    submission_id = str(row[0])
    logger.info(
        "submission_upserted collection_id=%s submission_id=%s keys=%s",
        collection_id,
        submission_id,
        len(responses),
    )
    return submission_id


def get_submission(conn: Connection, collection_id: str, submitter_name: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        sql_text(
            """
            SELECT submission_id, collection_id, submitter_name, responses, created_at, submitted_at
            FROM submission
            WHERE collection_id = :cid AND submitter_name = :name
            """
        ),
        {"cid": str(collection_id), "name": submitter_name},
    ).fetchone()
    return _row_to_submission(row) if row is not None else None


def list_submissions(conn: Connection, collection_id: str) -> List[Dict[str, Any]]:
    """All submissions of a collection in first-submitted order."""
    rows = conn.execute(
        sql_text(
            """
            SELECT submission_id, collection_id, submitter_name, responses, created_at, submitted_at
            FROM submission
            WHERE collection_id = :cid
            ORDER BY created_at ASC, submission_id ASC
            """
        ),
        {"cid": str(collection_id)},
    ).fetchall()
    return [_row_to_submission(r) for r in rows]


def count_submissions(conn: Connection, collection_id: str) -> int:
    row = conn.execute(
        sql_text("SELECT COUNT(*) FROM submission WHERE collection_id = :cid"),
        {"cid": str(collection_id)},
    ).fetchone()
    return int(row[0]) if row else 0


__all__ = ["upsert_submission", "get_submission", "list_submissions", "count_submissions"]
