from __future__ import annotations

from typing import Callable, Dict, Optional

from core.settings import get_settings
from providers.impl.storage_minio import MinioStorageDriver
from providers.impl.storage_s3 import S3StorageDriver
from providers.storage import ConnectionConfig, StorageDriver

_DRIVERS: Dict[str, Callable[[ConnectionConfig, float], StorageDriver]] = {
    "minio": MinioStorageDriver,
    "s3": S3StorageDriver,
}


def build_driver(config: ConnectionConfig, driver: Optional[str] = None) -> StorageDriver:
    """
    Canonical driver construction.

    driver defaults to settings.storage.driver (STORAGE_MODE).
    """
    settings = get_settings()
    name = (driver or settings.storage.driver or "minio").strip().lower()
    try:
        cls = _DRIVERS[name]
    except KeyError:
        raise ValueError(f"Unknown storage driver: {name!r}") from None
    return cls(config, settings.storage.timeout_seconds)
