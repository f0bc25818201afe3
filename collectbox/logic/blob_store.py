"""Blob storage backends for response attachments.

The core only needs three capabilities: hand out an upload target, accept
bytes for a handle, and turn a handle back into a fetchable URL (or None when
the object is gone). `LocalBlobStore` keeps files on disk and serves them
through the API; `S3BlobStore` uses presigned S3 URLs.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, Tuple

import boto3
from botocore.exceptions import ClientError

from collectbox.config import StorageConfig
from collectbox.logic.errors import NotFound
from collectbox.logic.identity import mint_token

logger = logging.getLogger(__name__)

HANDLE_PREFIX = "k"
HANDLE_BODY_LENGTH = 31
_HANDLE_RE = re.compile(r"^[A-Za-z0-9]{1,64}$")
_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def mint_handle() -> str:
    return HANDLE_PREFIX + mint_token(HANDLE_BODY_LENGTH)


def is_valid_handle(handle: str) -> bool:
    return isinstance(handle, str) and bool(_HANDLE_RE.match(handle))


@dataclass(frozen=True)
class UploadTarget:
    storage_id: str
    upload_url: str
    method: str = "PUT"


class BlobStore(Protocol):
    def issue_upload_target(self) -> UploadTarget: ...

    def put(self, handle: str, data: bytes, content_type: str) -> None: ...

    def resolve(self, handle: str) -> Optional[str]: ...

    def open(self, handle: str) -> Optional[Tuple[bytes, str]]: ...


class LocalBlobStore:
    """Filesystem-backed store for development and single-node installs.

    Issued handles get a `.pending` marker holding the issue time; uploads are
    only accepted for handles that were issued, have not expired and are not
    yet written. Expired markers are swept each time a new target is issued.
    """

    def __init__(
        self,
        root: str | Path,
        public_base_url: str = "",
        pending_ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")
        self.pending_ttl_seconds = pending_ttl_seconds
        self._clock = clock

    def _path(self, handle: str) -> Path:
        return self.root / handle

    def _meta_path(self, handle: str) -> Path:
        return self.root / f"{handle}.meta.json"

    def _pending_path(self, handle: str) -> Path:
        return self.root / f"{handle}.pending"

    def _issued_at(self, pending: Path) -> Optional[float]:
        try:
            return float(pending.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except ValueError:
            return 0.0

    def _is_expired(self, issued_at: float) -> bool:
        return self._clock() - issued_at > self.pending_ttl_seconds

    def sweep_expired(self) -> int:
        """Delete pending markers older than the TTL; returns how many went."""
        removed = 0
        for pending in self.root.glob("*.pending"):
            issued_at = self._issued_at(pending)
            if issued_at is not None and self._is_expired(issued_at):
                pending.unlink(missing_ok=True)
                removed += 1
        if removed:
            logger.info("pending_uploads_swept count=%s", removed)
        return removed

    def issue_upload_target(self) -> UploadTarget:
        self.sweep_expired()
        handle = mint_handle()
        self._pending_path(handle).write_text(repr(self._clock()), encoding="utf-8")
        return UploadTarget(storage_id=handle, upload_url=f"{self.public_base_url}/api/v1/uploads/{handle}")

    def put(self, handle: str, data: bytes, content_type: str) -> None:
        pending = self._pending_path(handle) if is_valid_handle(handle) else None
        issued_at = self._issued_at(pending) if pending is not None else None
        if issued_at is None or self._is_expired(issued_at):
            raise NotFound(f"no upload pending for {handle}", code="UPLOAD_NOT_FOUND")
        self._path(handle).write_bytes(data)
        self._meta_path(handle).write_text(json.dumps({"content_type": content_type}), encoding="utf-8")
        pending.unlink(missing_ok=True)
        logger.info("blob_stored backend=local handle=%s size=%s", handle, len(data))

    def resolve(self, handle: str) -> Optional[str]:
        if not is_valid_handle(handle) or not self._path(handle).is_file():
            return None
        return f"{self.public_base_url}/api/v1/files/{handle}"

    def open(self, handle: str) -> Optional[Tuple[bytes, str]]:
        if not is_valid_handle(handle) or not self._path(handle).is_file():
            return None
        content_type = "application/octet-stream"
        meta = self._meta_path(handle)
        if meta.exists():
            content_type = json.loads(meta.read_text(encoding="utf-8")).get("content_type") or content_type
        return self._path(handle).read_bytes(), content_type


class S3BlobStore:
    """S3-backed store handing out presigned upload and download URLs."""

    def __init__(self, bucket: str, region: str = "us-east-1", url_expiry_seconds: int = 3600, client=None) -> None:  # type: ignore[no-untyped-def]
        self.bucket = bucket
        self.url_expiry_seconds = url_expiry_seconds
        self.client = client or boto3.client("s3", region_name=region)

    def issue_upload_target(self) -> UploadTarget:
        handle = mint_handle()
        url = self.client.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket, "Key": handle},
            ExpiresIn=self.url_expiry_seconds,
        )
        return UploadTarget(storage_id=handle, upload_url=url)

    def put(self, handle: str, data: bytes, content_type: str) -> None:
        if not is_valid_handle(handle):
            raise NotFound(f"invalid upload handle {handle}", code="UPLOAD_NOT_FOUND")
        self.client.put_object(Bucket=self.bucket, Key=handle, Body=data, ContentType=content_type)
        logger.info("blob_stored backend=s3 handle=%s size=%s", handle, len(data))

    def _exists(self, handle: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=handle)
            return True
        except ClientError as e:
            if str(e.response.get("Error", {}).get("Code")) in _MISSING_CODES:
                return False
            raise

    def resolve(self, handle: str) -> Optional[str]:
        if not is_valid_handle(handle) or not self._exists(handle):
            return None
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": handle},
            ExpiresIn=self.url_expiry_seconds,
        )

    def open(self, handle: str) -> Optional[Tuple[bytes, str]]:
        if not is_valid_handle(handle):
            return None
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=handle)
        except ClientError as e:
            if str(e.response.get("Error", {}).get("Code")) in _MISSING_CODES:
                return None
            raise
        return obj["Body"].read(), obj.get("ContentType") or "application/octet-stream"


def build_blob_store(config: StorageConfig) -> BlobStore:
    if config.backend == "s3":
        if not config.s3_bucket:
            raise ValueError("storage.s3_bucket is required for the s3 backend")
        return S3BlobStore(config.s3_bucket, config.s3_region, config.url_expiry_seconds)
    return LocalBlobStore(config.local_path, config.public_base_url, config.url_expiry_seconds)


__all__ = [
    "HANDLE_PREFIX",
    "UploadTarget",
    "BlobStore",
    "LocalBlobStore",
    "S3BlobStore",
    "build_blob_store",
    "mint_handle",
    "is_valid_handle",
]
