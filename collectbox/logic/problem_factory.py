"""Centralised construction of problem+json payloads.

Provides helpers that return RFC7807 dicts with stable codes so route and
handler modules never embed status/title literals.
"""

from __future__ import annotations

from typing import Dict
import logging

from collectbox.http.error_mapping import status_for
from collectbox.logic.errors import CollectboxError


logger = logging.getLogger(__name__)


def problem(title: str, status: int, detail: str, code: str) -> Dict[str, object]:
    return {
        "title": title,
        "status": status,
        "detail": detail,
        "code": code,
    }


def problem_from_error(exc: CollectboxError) -> Dict[str, object]:
    """Return the problem body for a domain error."""
    body = problem(exc.title, status_for(exc.code), exc.detail, exc.code)
    logger.info("error_handler.handle code=%s status=%s", exc.code, body["status"])
    return body


def problem_collection_not_found() -> Dict[str, object]:
    """Return a 404 problem for a capability token that resolves to nothing."""
    return problem("Not found", status_for("COLLECTION_NOT_FOUND"), "collection not found", "COLLECTION_NOT_FOUND")


def problem_submission_not_found() -> Dict[str, object]:
    """Return a 404 problem for a submitter with no stored submission."""
    return problem("Not found", status_for("SUBMISSION_NOT_FOUND"), "submission not found", "SUBMISSION_NOT_FOUND")


def problem_upload_not_found() -> Dict[str, object]:
    return problem("Not found", status_for("UPLOAD_NOT_FOUND"), "upload not found", "UPLOAD_NOT_FOUND")


__all__ = [
    "problem",
    "problem_from_error",
    "problem_collection_not_found",
    "problem_submission_not_found",
    "problem_upload_not_found",
]
