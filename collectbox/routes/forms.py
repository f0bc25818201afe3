"""Submission-link endpoints used by submitters."""

from __future__ import annotations


from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from collectbox.db.base import engine_dependency
from collectbox.http.problem import problem_response
from collectbox.logic import collections_service
from collectbox.logic.blob_store import BlobStore
from collectbox.logic.problem_factory import (
    problem_collection_not_found,
    problem_submission_not_found,
)
from collectbox.models.collections import SubmitResponseRequest
from collectbox.routes.deps import blob_store_dependency

router = APIRouter()


@router.get(
    "/forms/{submission_token}",
    summary="Collection name, fields and submitter names for the submission form",
    operation_id="getBySubmissionToken",
)
def get_form(submission_token: str, engine: Engine = Depends(engine_dependency)):
    view = collections_service.get_by_submission_token(engine, submission_token)
    if view is None:
        return problem_response(problem_collection_not_found())
    return view


@router.post(
    "/forms/{submission_token}/responses",
    summary="Submit (or overwrite) a submitter's responses",
    operation_id="submitResponse",
)
def submit_response(
    submission_token: str,
    payload: SubmitResponseRequest,
    engine: Engine = Depends(engine_dependency),
):
    view = collections_service.get_by_submission_token(engine, submission_token)
    if view is None:
        return problem_response(problem_collection_not_found())
    collection_id = view["collection"]["collection_id"]
    existed = collections_service.get_submission(engine, collection_id, payload.submitter_name) is not None
    submission_id = collections_service.submit_response(
        engine, collection_id, payload.submitter_name, payload.responses
    )
    return JSONResponse(
        {"submission_id": submission_id, "overwritten": existed},
        status_code=200 if existed else 201,
    )


@router.get(
    "/forms/{submission_token}/responses/{submitter_name}",
    summary="Existing submission for a submitter (already-submitted warning)",
    operation_id="getSubmission",
)
def get_submission(
    submission_token: str,
    submitter_name: str,
    engine: Engine = Depends(engine_dependency),
    blob_store: BlobStore = Depends(blob_store_dependency),
):
    view = collections_service.get_by_submission_token(engine, submission_token)
    if view is None:
        return problem_response(problem_collection_not_found())
    collection_id = view["collection"]["collection_id"]
    record = collections_service.get_submission(engine, collection_id, submitter_name, blob_store)
    if record is None:
        return problem_response(problem_submission_not_found())
    return {
        "submission_id": record["submission_id"],
        "submitter_name": record["submitter_name"],
        "responses": record["responses"],
        "submitted_at": record["submitted_at"],
    }


@router.post(
    "/forms/{submission_token}/check",
    summary="Advisory validation of responses against the current fields",
    operation_id="checkResponses",
)
def check_responses(
    submission_token: str,
    payload: SubmitResponseRequest,
    engine: Engine = Depends(engine_dependency),
):
    view = collections_service.get_by_submission_token(engine, submission_token)
    if view is None:
        return problem_response(problem_collection_not_found())
    errors = collections_service.check_responses(
        engine, view["collection"]["collection_id"], payload.submitter_name, payload.responses
    )
    return {"valid": not errors, "errors": errors}


__all__ = ["router"]
