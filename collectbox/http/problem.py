"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that turn domain
errors, HTTP exceptions and request validation failures into
application/problem+json responses.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from collectbox.logic.errors import CollectboxError
from collectbox.logic.problem_factory import problem, problem_from_error

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_response(body: dict, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        body,
        status_code=int(body.get("status", 500)),
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers,
    )


async def handle_domain_error(request: Request, exc: CollectboxError) -> JSONResponse:  # noqa: D401
    return problem_response(problem_from_error(exc))


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status_code = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        body = {"status": status_code, **exc.detail}
    else:
        body = problem("Error", status_code, str(exc.detail or ""), f"HTTP_{status_code}")
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return problem_response(body, headers or None)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    body = problem("Invalid Request", 422, "Request validation failed", "REQUEST_INVALID")
    body["errors"] = jsonable_encoder(exc.errors())
    logger.info("request_validation_failed path=%s errors=%s", request.url.path, len(body["errors"]))
    return problem_response(body)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem_response(problem("Internal Server Error", 500, "unexpected error", "INTERNAL_ERROR"))


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_response",
    "handle_domain_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
