from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from collectbox.config import AppConfig, load_config
from collectbox.db.base import build_engine
from collectbox.db.migrations_runner import apply_migrations
from collectbox.http.problem import (
    handle_domain_error,
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from collectbox.http.request_id import RequestIdMiddleware
from collectbox.logging_setup import configure_logging
from collectbox.logic.blob_store import BlobStore, build_blob_store
from collectbox.logic.errors import CollectboxError
from collectbox.middleware.cors import apply_cors
from collectbox.routes import api_router

logger = logging.getLogger(__name__)


def _health_check(engine: Engine) -> Callable[[], dict]:
    def check() -> dict:
        try:
            with engine.connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return {"status": "ok", "db": True}
        except SQLAlchemyError as e:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False, "reason": str(e)}

    return check


def create_app(
    config: Optional[AppConfig] = None,
    engine: Optional[Engine] = None,
    blob_store: Optional[BlobStore] = None,
) -> FastAPI:
    """Build the application.

    Configuration, engine and blob store default to what `load_config()`
    describes; tests pass their own instances.
    """
    config = config or load_config()
    configure_logging(config.log_level)
    engine = engine or build_engine(config.database.dsn)
    blob_store = blob_store or build_blob_store(config.storage)

    if config.database.auto_apply_migrations:
        applied = apply_migrations(engine)
        if applied:
            logger.info("startup_migrations_applied count=%s", len(applied))

    app = FastAPI(title="collectbox")
    app.state.config = config
    app.state.engine = engine
    app.state.blob_store = blob_store

    app.add_exception_handler(CollectboxError, handle_domain_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.add_middleware(RequestIdMiddleware)
    apply_cors(app)

    app.include_router(api_router, prefix="/api/v1")

    health_check = _health_check(engine)

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    logger.info("app_created storage_backend=%s", config.storage.backend)
    return app


# Intentionally do not instantiate the app at import time to prevent side effects.


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
