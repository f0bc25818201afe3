"""Configuration utilities for collectbox.

This module loads application configuration with the following rules:
- Primary source: `collectbox_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("collectbox_config.json")
logger = logging.getLogger(__name__)

_TRUE_WORDS = {"1", "true", "yes", "on"}


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        # Recoverable: log and ignore unreadable override
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_migrations: bool = Field(default=True)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class StorageConfig(BaseModel):
    backend: str = "local"  # one of: local, s3
    local_path: str = "var/uploads"
    public_base_url: str = ""
    s3_bucket: Optional[str] = None
    s3_region: str = "us-east-1"
    url_expiry_seconds: int = Field(default=3600, gt=0)
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)

    @field_validator("backend")
    @classmethod
    def backend_must_be_allowed(cls, v: str) -> str:
        allowed = {"local", "s3"}
        if v not in allowed:
            raise ValueError(f"storage.backend must be one of {sorted(allowed)}")
        return v


class SecurityConfig(BaseModel):
    token_length: int = Field(default=12, ge=8, le=64)
    max_mint_attempts: int = Field(default=5, ge=1)
    password_iterations: int = Field(default=310_000, ge=100_000)
    principal_header: str = "X-Principal-Id"


class CsvConfig(BaseModel):
    export_include_header: bool = Field(default=True)


class AppConfig(BaseModel):
    database: DatabaseConfig
    storage: StorageConfig
    security: SecurityConfig
    csv: CsvConfig
    log_level: str = "INFO"


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) collectbox_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    def _pick(env_key: str, file_key: str, base_key: str, default: Optional[str] = None) -> Optional[str]:
        return _env(env_key) or _read_config_file(file_key) or _base(base_key, default)

    # Database
    dsn = (
        _env("TEST_DATABASE_URL")
        or _pick("DATABASE_URL", "database.url", "database.dsn", "sqlite+pysqlite:///:memory:")
    )
    auto_migrate = _pick("AUTO_APPLY_MIGRATIONS", "database.auto_apply_migrations", "database.auto_apply_migrations", "true")

    # Storage
    storage_raw = {
        "backend": (_pick("STORAGE_BACKEND", "storage.backend", "storage.backend", "local") or "local").strip(),
        "local_path": _pick("LOCAL_STORAGE_PATH", "storage.local_path", "storage.local_path", "var/uploads"),
        "public_base_url": _pick("PUBLIC_BASE_URL", "storage.public_base_url", "storage.public_base_url", ""),
        "s3_bucket": _pick("S3_BUCKET", "storage.s3_bucket", "storage.s3_bucket"),
        "s3_region": _pick("S3_REGION", "storage.s3_region", "storage.s3_region", "us-east-1"),
        "url_expiry_seconds": _pick("STORAGE_URL_EXPIRY_SECONDS", "storage.url_expiry_seconds", "storage.url_expiry_seconds", "3600"),
        "max_upload_bytes": _pick("STORAGE_MAX_UPLOAD_BYTES", "storage.max_upload_bytes", "storage.max_upload_bytes", "10485760"),
    }

    # Security
    security_raw = {
        "token_length": _pick("TOKEN_LENGTH", "security.token_length", "security.token_length", "12"),
        "max_mint_attempts": _pick("TOKEN_MAX_MINT_ATTEMPTS", "security.max_mint_attempts", "security.max_mint_attempts", "5"),
        "password_iterations": _pick("PASSWORD_ITERATIONS", "security.password_iterations", "security.password_iterations", "310000"),
        "principal_header": _pick("PRINCIPAL_HEADER", "security.principal_header", "security.principal_header", "X-Principal-Id"),
    }

    include_header = _pick("CSV_EXPORT_INCLUDE_HEADER", "csv.export.include_header", "csv.export_include_header", "true")
    log_level = _pick("LOG_LEVEL", "log_level", "log_level", "INFO")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(
                dsn=dsn,
                auto_apply_migrations=str(auto_migrate).strip().lower() in _TRUE_WORDS,
            ),
            storage=StorageConfig(**storage_raw),
            security=SecurityConfig(**security_raw),
            csv=CsvConfig(export_include_header=str(include_header).strip().lower() in _TRUE_WORDS),
            log_level=str(log_level).strip().upper(),
        )
        return cfg
    except PydanticValidationError as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "StorageConfig",
    "SecurityConfig",
    "CsvConfig",
    "load_config",
]
