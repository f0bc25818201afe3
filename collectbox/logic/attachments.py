"""Read-time resolution of attachment handles.

Handles are stored raw in the ledger; URLs depend on the storage backend and
may expire, so they are produced only when a submission is read.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from collectbox.logic.blob_store import BlobStore
from collectbox.models.response_values import Attachment, Flag, Number, Text, plain_value

logger = logging.getLogger(__name__)


def resolve_handle(blob_store: BlobStore, handle: str) -> Optional[str]:
    """Resolve a handle to a URL, treating storage errors as a missing object."""
    try:
        return blob_store.resolve(handle)
    except Exception:
        logger.error("attachment_resolve_failed handle=%s", handle, exc_info=True)
        return None


def resolve_value(value: Text | Number | Flag | Attachment, blob_store: BlobStore) -> Any:
    if isinstance(value, Attachment):
        url = resolve_handle(blob_store, value.value)
        if url is None:
            logger.info("attachment_unresolved handle=%s", value.value)
            return value.value
        return {"storage_id": value.value, "url": url}
    return plain_value(value)


def resolve_responses(
    responses: Mapping[str, Text | Number | Flag | Attachment],
    blob_store: BlobStore,
) -> Dict[str, Any]:
    """Return a JSON-ready copy of `responses` with attachments resolved.

    Resolved attachments become {"storage_id", "url"}; handles that no longer
    resolve fall back to the raw handle string. Other values pass through.
    """
    return {key: resolve_value(value, blob_store) for key, value in responses.items()}


__all__ = ["resolve_handle", "resolve_value", "resolve_responses"]
