from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else str(v)


def _env_float(name: str, default: float) -> float:
    raw = _env(name, "")
    if not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = _env(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _split_csv(value: str) -> List[str]:
    return [x.strip() for x in (value or "").split(",") if x.strip()]


# ---------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------

# The SDK refuses presigned URLs valid for longer than seven days.
MAX_PRESIGN_TTL_SECONDS = 7 * 24 * 3600


@dataclass(frozen=True)
class StorageSettings:
    """
    Object storage driver configuration.

    driver:
      - "minio" -> MinioStorageDriver (minio SDK, default)
      - "s3"    -> S3StorageDriver (boto3)
    """
    driver: str
    default_region: str = "us-east-1"
    presign_ttl_seconds: int = 3600
    presign_max_ttl_seconds: int = MAX_PRESIGN_TTL_SECONDS
    timeout_seconds: float = 15.0


@dataclass(frozen=True)
class ServerSettings:
    host: str
    port: int
    api_prefix: str
    cors_origins: List[str]
    static_dir: Optional[str]
    log_level: str


@dataclass(frozen=True)
class ClientSettings:
    timeout_seconds: float


@dataclass(frozen=True)
class Settings:
    storage: StorageSettings
    server: ServerSettings
    client: ClientSettings


# ---------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------

def _normalize_storage_driver(raw: str) -> str:
    v = (raw or "").strip().lower()
    if v in ("s3", "aws", "boto3"):
        return "s3"
    if v in ("minio", "object_store", "objectstore"):
        return "minio"
    return "minio"


def _load_storage_settings() -> StorageSettings:
    """
    Driver precedence:
      1) STORAGE_MODE
      2) STORAGE_PROVIDER (legacy name)
      3) default minio
    """
    raw_mode = (_env("STORAGE_MODE", "") or "").strip()
    raw_provider = (_env("STORAGE_PROVIDER", "") or "").strip()
    driver = _normalize_storage_driver(raw_mode or raw_provider or "minio")

    region = (_env("CONSOLE_DEFAULT_REGION", "") or "us-east-1").strip()

    max_ttl = _env_int("PRESIGN_MAX_TTL_SECONDS", MAX_PRESIGN_TTL_SECONDS)
    max_ttl = max(1, min(max_ttl, MAX_PRESIGN_TTL_SECONDS))
    ttl = _env_int("PRESIGN_TTL_SECONDS", 3600)
    ttl = max(1, min(ttl, max_ttl))

    timeout = _env_float("STORAGE_TIMEOUT_SECONDS", 15.0)

    return StorageSettings(
        driver=driver,
        default_region=region,
        presign_ttl_seconds=ttl,
        presign_max_ttl_seconds=max_ttl,
        timeout_seconds=max(1.0, float(timeout)),
    )


def _normalize_prefix(raw: str) -> str:
    prefix = (raw or "").strip().rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix


def _load_server_settings() -> ServerSettings:
    host = (_env("CONSOLE_HOST", "") or "0.0.0.0").strip()
    port = _env_int("PORT", 3001)
    if port <= 0:
        port = 3001

    api_prefix = _normalize_prefix(_env("CONSOLE_API_PREFIX", "/api"))

    cors_origins = _split_csv(_env("CONSOLE_CORS_ORIGINS", "")) or ["*"]

    static_dir = (_env("CONSOLE_STATIC_DIR", "") or "").strip() or None
    log_level = (_env("LOG_LEVEL", "") or "INFO").strip().upper()

    return ServerSettings(
        host=host,
        port=port,
        api_prefix=api_prefix,
        cors_origins=cors_origins,
        static_dir=static_dir,
        log_level=log_level,
    )


def _load_client_settings() -> ClientSettings:
    timeout = _env_float("CONSOLE_CLIENT_TIMEOUT_SECONDS", 15.0)
    return ClientSettings(timeout_seconds=max(1.0, float(timeout)))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        storage=_load_storage_settings(),
        server=_load_server_settings(),
        client=_load_client_settings(),
    )
