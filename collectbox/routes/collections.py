"""Organizer endpoints: create collections, edit schema, manage the roster."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from collectbox.config import AppConfig
from collectbox.db.base import engine_dependency
from collectbox.logic import collections_service
from collectbox.models.collections import (
    AddSubmitterRequest,
    CreateCollectionRequest,
    ReplaceFieldsRequest,
)
from collectbox.routes.deps import config_dependency, current_principal

router = APIRouter()


@router.post(
    "/collections",
    summary="Create a collection and mint its admin and submission tokens",
    operation_id="createCollection",
    status_code=201,
)
def create_collection(
    payload: CreateCollectionRequest,
    engine: Engine = Depends(engine_dependency),
    config: AppConfig = Depends(config_dependency),
    principal: Optional[str] = Depends(current_principal),
):
    created = collections_service.create_collection(
        engine,
        principal,
        payload.name,
        payload.password,
        security=config.security,
    )
    return JSONResponse(created, status_code=201)


@router.get(
    "/collections",
    summary="List collections owned by the current principal",
    operation_id="listCollections",
)
def list_collections(
    engine: Engine = Depends(engine_dependency),
    principal: Optional[str] = Depends(current_principal),
):
    return {"items": collections_service.list_owned_collections(engine, principal)}


@router.put(
    "/collections/{collection_id}/fields",
    summary="Replace the collection's field definitions",
    operation_id="replaceFields",
)
def replace_fields(
    collection_id: str,
    payload: ReplaceFieldsRequest,
    engine: Engine = Depends(engine_dependency),
    principal: Optional[str] = Depends(current_principal),
):
    fields = collections_service.replace_fields(engine, principal, collection_id, payload.fields)
    return {"fields": fields}


@router.post(
    "/collections/{collection_id}/submitters",
    summary="Register an expected submitter",
    operation_id="addSubmitter",
    status_code=201,
)
def add_submitter(
    collection_id: str,
    payload: AddSubmitterRequest,
    engine: Engine = Depends(engine_dependency),
    principal: Optional[str] = Depends(current_principal),
):
    submitter_id = collections_service.add_submitter(engine, principal, collection_id, payload.name)
    return JSONResponse({"submitter_id": submitter_id, "name": payload.name}, status_code=201)


__all__ = ["router"]
