"""Admin-link endpoints: aggregate view, password gate and CSV export.

Every admin read re-presents the password in the `X-Admin-Password` header;
no session is issued on a successful check.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Header, Response
from sqlalchemy.engine import Engine

from collectbox.config import AppConfig
from collectbox.db.base import engine_dependency
from collectbox.http.problem import problem_response
from collectbox.logic import collections_service
from collectbox.logic.blob_store import BlobStore
from collectbox.logic.problem_factory import problem_collection_not_found
from collectbox.models.collections import VerifyPasswordRequest
from collectbox.routes.deps import blob_store_dependency, config_dependency, current_principal

router = APIRouter()


@router.get(
    "/admin/{admin_token}",
    summary="Collection aggregate with submissions, roster and non-respondents",
    operation_id="getByAdminToken",
)
def get_by_admin_token(
    admin_token: str,
    admin_password: Optional[str] = Header(None, alias="X-Admin-Password"),
    engine: Engine = Depends(engine_dependency),
    blob_store: BlobStore = Depends(blob_store_dependency),
):
    aggregate = collections_service.get_by_admin_token(engine, blob_store, admin_token, admin_password)
    if aggregate is None:
        return problem_response(problem_collection_not_found())
    return aggregate


@router.get(
    "/admin/{admin_token}/password-required",
    summary="Whether the admin link is password protected",
    operation_id="checkPasswordRequired",
)
def check_password_required(admin_token: str, engine: Engine = Depends(engine_dependency)):
    return collections_service.check_password_required(engine, admin_token)


@router.post(
    "/admin/{admin_token}/verify-password",
    summary="Verify the admin password",
    operation_id="verifyPassword",
)
def verify_password(
    admin_token: str,
    payload: VerifyPasswordRequest,
    engine: Engine = Depends(engine_dependency),
):
    collections_service.verify_password(engine, admin_token, payload.password)
    return {"granted": True}


@router.put(
    "/admin/{admin_token}/password",
    summary="Set or clear the admin password (owner only)",
    operation_id="setPassword",
)
def set_password(
    admin_token: str,
    payload: VerifyPasswordRequest,
    engine: Engine = Depends(engine_dependency),
    config: AppConfig = Depends(config_dependency),
    principal: Optional[str] = Depends(current_principal),
):
    enabled = collections_service.set_password(
        engine, principal, admin_token, payload.password or None, security=config.security
    )
    return {"requires_password": enabled}


@router.get(
    "/admin/{admin_token}/export.csv",
    summary="Export submissions as CSV",
    operation_id="exportCsv",
)
def export_csv(
    admin_token: str,
    admin_password: Optional[str] = Header(None, alias="X-Admin-Password"),
    engine: Engine = Depends(engine_dependency),
    blob_store: BlobStore = Depends(blob_store_dependency),
    config: AppConfig = Depends(config_dependency),
):
    exported = collections_service.export_csv(
        engine,
        blob_store,
        admin_token,
        admin_password,
        include_header=config.csv.export_include_header,
    )
    if exported is None:
        return problem_response(problem_collection_not_found())
    filename, content = exported
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


__all__ = ["router"]
