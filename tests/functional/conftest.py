"""Functional test bootstrap.

Every test gets its own file-backed SQLite database under pytest's tmp_path
with the migrations applied explicitly, a local blob store in the same
directory, and an in-process TestClient built by the app factory. Startup
auto-migration is disabled so the schema is applied exactly once per test.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from collectbox.config import AppConfig, CsvConfig, DatabaseConfig, SecurityConfig, StorageConfig
from collectbox.db.base import build_engine
from collectbox.db.migrations_runner import apply_migrations
from collectbox.logic.blob_store import LocalBlobStore
from collectbox.main import create_app

OWNER = "organizer-1"
OTHER_OWNER = "organizer-2"


@pytest.fixture()
def config(tmp_path) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(
            dsn=f"sqlite+pysqlite:///{tmp_path / 'collectbox.db'}",
            auto_apply_migrations=False,
        ),
        storage=StorageConfig(local_path=str(tmp_path / "uploads"), max_upload_bytes=1024),
        # Minimum allowed iteration count keeps password tests fast
        security=SecurityConfig(password_iterations=100_000),
        csv=CsvConfig(),
        log_level="DEBUG",
    )


@pytest.fixture()
def engine(config):
    eng = build_engine(config.database.dsn)
    apply_migrations(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def blob_store(config) -> LocalBlobStore:
    return LocalBlobStore(config.storage.local_path, "http://testserver")


@pytest.fixture()
def client(config, engine, blob_store):
    app = create_app(config=config, engine=engine, blob_store=blob_store)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def owner_headers(config) -> dict[str, str]:
    return {config.security.principal_header: OWNER}


@pytest.fixture()
def other_owner_headers(config) -> dict[str, str]:
    return {config.security.principal_header: OTHER_OWNER}
