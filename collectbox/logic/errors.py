"""Domain exceptions raised by the collectbox logic layer.

Each exception carries a stable machine-readable `code`; the HTTP layer maps
codes to statuses via `collectbox.http.error_mapping`. Read paths that miss a
token return None instead of raising `NotFound`.
"""

from __future__ import annotations


class CollectboxError(Exception):
    code = "COLLECTBOX_ERROR"
    title = "Error"

    def __init__(self, detail: str = "", *, code: str | None = None) -> None:
        super().__init__(detail or self.title)
        self.detail = detail or self.title
        if code:
            self.code = code


class Unauthenticated(CollectboxError):
    code = "AUTH_PRINCIPAL_MISSING"
    title = "Unauthenticated"


class Conflict(CollectboxError):
    code = "CONFLICT"
    title = "Conflict"


class AccessDenied(CollectboxError):
    code = "ADMIN_PASSWORD_INVALID"
    title = "Access denied"


class NotFound(CollectboxError):
    code = "COLLECTION_NOT_FOUND"
    title = "Not found"


class InvalidRequest(CollectboxError):
    code = "REQUEST_INVALID"
    title = "Invalid Request"


class PayloadTooLarge(CollectboxError):
    code = "UPLOAD_TOO_LARGE"
    title = "Payload Too Large"


__all__ = [
    "CollectboxError",
    "Unauthenticated",
    "Conflict",
    "AccessDenied",
    "NotFound",
    "InvalidRequest",
    "PayloadTooLarge",
]
