"""Collection service: the operations exposed to the HTTP layer.

Each operation receives the SQLAlchemy Engine explicitly and owns its
transaction. Token lookups that miss return None; mutations raise the domain
errors from `collectbox.logic.errors`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from collectbox.config import SecurityConfig
from collectbox.logic import (
    repository_collections,
    repository_fields,
    repository_submissions,
    repository_submitters,
)
from collectbox.logic.attachments import resolve_responses
from collectbox.logic.blob_store import BlobStore
from collectbox.logic.csv_io import build_export_csv, export_filename
from collectbox.logic.errors import AccessDenied, Conflict, NotFound, Unauthenticated
from collectbox.logic.identity import mint_token
from collectbox.logic.passwords import derive_secret, verify_secret
from collectbox.logic.reconciliation import reconcile
from collectbox.logic.validation import validate_responses
from collectbox.models.response_values import coerce_responses, plain_value

logger = logging.getLogger(__name__)

_DEFAULT_SECURITY = SecurityConfig()


def _require_principal(principal: Optional[str]) -> str:
    if not principal:
        raise Unauthenticated("login required")
    return principal


def _as_dict(item: Any) -> Dict[str, Any]:
    return item.model_dump() if hasattr(item, "model_dump") else dict(item)


def admin_view(collection: Mapping[str, Any]) -> Dict[str, Any]:
    """Collection fields visible to admin-link holders (never the secret)."""
    return {
        "collection_id": collection["collection_id"],
        "name": collection["name"],
        "owner_principal": collection["owner_principal"],
        "admin_token": collection["admin_token"],
        "submission_token": collection["submission_token"],
        "has_password": collection["has_password"],
        "created_at": collection["created_at"],
    }


def submission_view(collection: Mapping[str, Any]) -> Dict[str, Any]:
    """Collection fields visible to submission-link holders."""
    return {
        "collection_id": collection["collection_id"],
        "name": collection["name"],
        "submission_token": collection["submission_token"],
    }


def check_access(collection: Mapping[str, Any], supplied_secret: Optional[str]) -> bool:
    """Grant when no password is set, else require a matching secret.

    Raises AccessDenied on mismatch. Stateless: nothing is issued on success.
    """
    if not collection.get("has_password") or not collection.get("password_secret"):
        return True
    if supplied_secret is not None and verify_secret(supplied_secret, collection["password_secret"]):
        return True
    logger.info("admin_access_denied collection_id=%s", collection.get("collection_id"))
    raise AccessDenied("password is incorrect")


def _collection_or_raise(conn: Connection, collection_id: str) -> Dict[str, Any]:
    collection = repository_collections.get_collection(conn, collection_id)
    if collection is None:
        raise NotFound(f"collection not found: {collection_id}")
    return collection


def _require_owner(collection: Mapping[str, Any], owner: str, action: str) -> None:
    if collection["owner_principal"] != owner:
        logger.info("collection_not_owner collection_id=%s action=%s", collection["collection_id"], action)
        raise AccessDenied(f"only the owner can {action}", code="COLLECTION_NOT_OWNER")


def create_collection(
    engine: Engine,
    principal: Optional[str],
    name: str,
    password: Optional[str] = None,
    *,
    security: SecurityConfig = _DEFAULT_SECURITY,
) -> Dict[str, str]:
    """Create a collection owned by `principal` with a seeded selector field.

    Tokens are re-minted when an insert trips a unique token index.
    """
    owner = _require_principal(principal)
    secret = derive_secret(password, security.password_iterations) if password else None
    for attempt in range(1, security.max_mint_attempts + 1):
        admin_token = mint_token(security.token_length)
        submission_token = mint_token(security.token_length)
        if admin_token == submission_token:
            continue
        try:
            with engine.begin() as conn:
                collection_id = repository_collections.insert_collection(
                    conn,
                    name=name,
                    owner_principal=owner,
                    admin_token=admin_token,
                    submission_token=submission_token,
                    password_secret=secret,
                )
                repository_fields.insert_fields(conn, collection_id, [repository_fields.selector_field()])
        except IntegrityError:
            logger.warning("collection_token_collision attempt=%s", attempt)
            continue
        logger.info("collection_created collection_id=%s password=%s", collection_id, secret is not None)
        return {
            "collection_id": collection_id,
            "admin_token": admin_token,
            "submission_token": submission_token,
        }
    logger.error("collection_token_mint_exhausted attempts=%s", security.max_mint_attempts)
    raise Conflict("could not mint unique collection tokens", code="TOKEN_MINT_EXHAUSTED")


def list_owned_collections(engine: Engine, principal: Optional[str]) -> List[Dict[str, Any]]:
    if not principal:
        return []
    with engine.connect() as conn:
        owned = repository_collections.list_by_owner(conn, principal)
        return [
            {**admin_view(c), "submission_count": repository_submissions.count_submissions(conn, c["collection_id"])}
            for c in owned
        ]


def _load_admin_data(
    conn: Connection, admin_token: str, password: Optional[str]
) -> Optional[Dict[str, Any]]:
    collection = repository_collections.get_by_admin_token(conn, admin_token)
    if collection is None:
        return None
    check_access(collection, password)
    cid = collection["collection_id"]
    return {
        "collection": collection,
        "fields": repository_fields.list_fields(conn, cid),
        "submissions": repository_submissions.list_submissions(conn, cid),
        "submitters": repository_submitters.list_submitters(conn, cid),
    }


def get_by_admin_token(
    engine: Engine,
    blob_store: BlobStore,
    admin_token: str,
    password: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """Full admin aggregate, or None when the token resolves to nothing.

    Attachment URLs are resolved after the DB connection is released.
    """
    with engine.connect() as conn:
        data = _load_admin_data(conn, admin_token, password)
    if data is None:
        return None
    roster = [s["name"] for s in data["submitters"]]
    result = reconcile(roster, data["submissions"])
    return {
        "collection": admin_view(data["collection"]),
        "fields": data["fields"],
        "submissions": [
            {
                "submission_id": s["submission_id"],
                "submitter_name": s["submitter_name"],
                "responses": resolve_responses(s["responses"], blob_store),
                "submitted_at": s["submitted_at"],
            }
            for s in data["submissions"]
        ],
        "submitters": data["submitters"],
        "respondents": result.respondents,
        "non_respondents": result.non_respondents,
        "orphans": result.orphans,
    }


def export_csv(
    engine: Engine,
    blob_store: BlobStore,
    admin_token: str,
    password: Optional[str] = None,
    *,
    include_header: bool = True,
) -> Optional[tuple[str, bytes]]:
    """Return (filename, csv bytes) for the admin token, or None when absent."""
    with engine.connect() as conn:
        data = _load_admin_data(conn, admin_token, password)
    if data is None:
        return None
    content = build_export_csv(data["fields"], data["submissions"], blob_store, include_header=include_header)
    logger.info(
        "collection_exported collection_id=%s rows=%s",
        data["collection"]["collection_id"],
        len(data["submissions"]),
    )
    return export_filename(data["collection"]["name"]), content


def get_by_submission_token(engine: Engine, submission_token: str) -> Optional[Dict[str, Any]]:
    with engine.connect() as conn:
        collection = repository_collections.get_by_submission_token(conn, submission_token)
        if collection is None:
            return None
        cid = collection["collection_id"]
        fields = repository_fields.list_fields(conn, cid)
        submitters = repository_submitters.list_submitters(conn, cid)
    return {
        "collection": submission_view(collection),
        "fields": fields,
        "submitters": [s["name"] for s in submitters],
    }


def add_submitter(engine: Engine, principal: Optional[str], collection_id: str, name: str) -> str:
    owner = _require_principal(principal)
    with engine.begin() as conn:
        _require_owner(_collection_or_raise(conn, collection_id), owner, "edit the roster")
        return repository_submitters.add_submitter(conn, collection_id, name)


def replace_fields(
    engine: Engine,
    principal: Optional[str],
    collection_id: str,
    fields: Iterable[Any],
) -> List[Dict[str, Any]]:
    """Replace the collection's schema; returns the stored fields in order."""
    owner = _require_principal(principal)
    items = [_as_dict(f) for f in fields]
    with engine.begin() as conn:
        _require_owner(_collection_or_raise(conn, collection_id), owner, "edit the fields")
        repository_fields.replace_fields(conn, collection_id, items)
        return repository_fields.list_fields(conn, collection_id)


def submit_response(
    engine: Engine,
    collection_id: str,
    submitter_name: str,
    responses: Mapping[str, Any] | None,
) -> str:
    """Upsert the submitter's responses; resubmission overwrites the whole map."""
    values = coerce_responses(responses)
    with engine.begin() as conn:
        _collection_or_raise(conn, collection_id)
        return repository_submissions.upsert_submission(conn, collection_id, submitter_name, values)


def get_submission(
    engine: Engine,
    collection_id: str,
    submitter_name: str,
    blob_store: Optional[BlobStore] = None,
) -> Optional[Dict[str, Any]]:
    """Existing submission for the submitter as JSON-ready values, or None.

    With a blob store, attachments are resolved the same way as the admin view.
    """
    with engine.connect() as conn:
        record = repository_submissions.get_submission(conn, collection_id, submitter_name)
    if record is None:
        return None
    if blob_store is not None:
        responses = resolve_responses(record["responses"], blob_store)
    else:
        responses = {k: plain_value(v) for k, v in record["responses"].items()}
    return {**record, "responses": responses}


def check_responses(
    engine: Engine,
    collection_id: str,
    submitter_name: Optional[str],
    responses: Mapping[str, Any] | None,
) -> Dict[str, str]:
    """Advisory validation against the current schema; never writes."""
    values = coerce_responses(responses)
    with engine.connect() as conn:
        _collection_or_raise(conn, collection_id)
        fields = repository_fields.list_fields(conn, collection_id)
    return validate_responses(fields, submitter_name, values)


def check_password_required(engine: Engine, admin_token: str) -> Dict[str, Any]:
    with engine.connect() as conn:
        collection = repository_collections.get_by_admin_token(conn, admin_token)
    if collection is None:
        return {"exists": False, "requires_password": False}
    return {
        "exists": True,
        "requires_password": bool(collection["has_password"]),
        "name": collection["name"],
    }


def verify_password(engine: Engine, admin_token: str, password: Optional[str]) -> bool:
    with engine.connect() as conn:
        collection = repository_collections.get_by_admin_token(conn, admin_token)
    if collection is None:
        raise NotFound("collection not found")
    return check_access(collection, password)


def set_password(
    engine: Engine,
    principal: Optional[str],
    admin_token: str,
    password: Optional[str],
    *,
    security: SecurityConfig = _DEFAULT_SECURITY,
) -> bool:
    """Set (or clear with None) the admin password; owner only."""
    owner = _require_principal(principal)
    with engine.begin() as conn:
        collection = repository_collections.get_by_admin_token(conn, admin_token)
        if collection is None:
            raise NotFound("collection not found")
        _require_owner(collection, owner, "change the password")
        secret = derive_secret(password, security.password_iterations) if password else None
        repository_collections.set_password_secret(conn, collection["collection_id"], secret)
    return secret is not None


__all__ = [
    "admin_view",
    "submission_view",
    "check_access",
    "create_collection",
    "list_owned_collections",
    "get_by_admin_token",
    "export_csv",
    "get_by_submission_token",
    "add_submitter",
    "replace_fields",
    "submit_response",
    "get_submission",
    "check_responses",
    "check_password_required",
    "verify_password",
    "set_password",
]
