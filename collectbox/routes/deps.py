"""Shared FastAPI dependencies for route modules."""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from collectbox.config import AppConfig
from collectbox.logic.blob_store import BlobStore


def config_dependency(request: Request) -> AppConfig:
    return request.app.state.config


def blob_store_dependency(request: Request) -> BlobStore:
    return request.app.state.blob_store


def current_principal(request: Request) -> Optional[str]:
    """Principal id asserted by the upstream authentication proxy.

    The header name is configurable; an absent or blank header means the
    request is anonymous.
    """
    header = request.app.state.config.security.principal_header
    value = (request.headers.get(header) or "").strip()
    return value or None


__all__ = ["config_dependency", "blob_store_dependency", "current_principal"]
