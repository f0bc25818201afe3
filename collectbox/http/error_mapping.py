"""Central error mapping for domain errors.

Single source of truth for mapping error codes to HTTP statuses. Handlers
and routes import from here instead of hardcoding numbers.
"""

from __future__ import annotations

ERROR_STATUS_MAP: dict[str, int] = {
    "AUTH_PRINCIPAL_MISSING": 401,
    "ADMIN_PASSWORD_INVALID": 403,
    "COLLECTION_NOT_OWNER": 403,
    "COLLECTION_NOT_FOUND": 404,
    "SUBMISSION_NOT_FOUND": 404,
    "UPLOAD_NOT_FOUND": 404,
    "SUBMITTER_DUPLICATE": 409,
    "TOKEN_MINT_EXHAUSTED": 409,
    "CONFLICT": 409,
    "UPLOAD_TOO_LARGE": 413,
    "REQUEST_INVALID": 422,
}

DEFAULT_STATUS = 500


def status_for(code: str) -> int:
    return ERROR_STATUS_MAP.get(code, DEFAULT_STATUS)


__all__ = ["ERROR_STATUS_MAP", "DEFAULT_STATUS", "status_for"]
