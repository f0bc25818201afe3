"""Attachment upload and download endpoints.

Clients first ask for an upload target, PUT the raw bytes to the returned URL
and then reference the storage id in a submission as
{"kind": "attachment", "storage_id": ...}. With the S3 backend the upload URL
is presigned and points at the bucket directly.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from starlette.concurrency import run_in_threadpool

from collectbox.config import AppConfig
from collectbox.http.problem import problem_response
from collectbox.logic.blob_store import BlobStore, is_valid_handle
from collectbox.logic.errors import PayloadTooLarge
from collectbox.logic.problem_factory import problem_upload_not_found
from collectbox.routes.deps import blob_store_dependency, config_dependency

router = APIRouter()
logger = logging.getLogger(__name__)

_DEFAULT_CONTENT_TYPE = "application/octet-stream"


@router.post(
    "/uploads",
    summary="Issue a storage handle and upload URL for one attachment",
    operation_id="createUploadTarget",
    status_code=201,
)
def create_upload_target(blob_store: BlobStore = Depends(blob_store_dependency)):
    target = blob_store.issue_upload_target()
    logger.info("upload_target_issued handle=%s", target.storage_id)
    return {"storage_id": target.storage_id, "upload_url": target.upload_url, "method": target.method}


@router.put(
    "/uploads/{handle}",
    summary="Upload the bytes for an issued storage handle",
    operation_id="putUpload",
    status_code=204,
)
async def put_upload(
    handle: str,
    request: Request,
    blob_store: BlobStore = Depends(blob_store_dependency),
    config: AppConfig = Depends(config_dependency),
):
    limit = config.storage.max_upload_bytes
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge(f"upload exceeds {limit} bytes")
    data = await request.body()
    if len(data) > limit:
        raise PayloadTooLarge(f"upload exceeds {limit} bytes")
    content_type = request.headers.get("content-type") or _DEFAULT_CONTENT_TYPE
    await run_in_threadpool(blob_store.put, handle, data, content_type)
    return Response(status_code=204)


@router.get(
    "/files/{handle}",
    summary="Download a stored attachment",
    operation_id="getFile",
)
def get_file(handle: str, blob_store: BlobStore = Depends(blob_store_dependency)):
    if not is_valid_handle(handle):
        return problem_response(problem_upload_not_found())
    opened = blob_store.open(handle)
    if opened is None:
        return problem_response(problem_upload_not_found())
    data, content_type = opened
    return Response(content=data, media_type=content_type)


__all__ = ["router"]
