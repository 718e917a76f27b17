from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from core.errors import AuthError, ConsoleError, NetworkError, NotConnectedError, ValidationError, is_auth_code
from providers.storage import ConnectionConfig, StorageDriver

log = logging.getLogger(__name__)

DriverFactory = Callable[[ConnectionConfig], StorageDriver]

# 3-63 chars, lowercase letters/digits/dots/hyphens, alphanumeric at both ends
_BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9.\-]{1,61}[a-z0-9]$")
_IPV4_RE = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")


def validate_bucket_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Bucket name is required")
    if not _BUCKET_NAME_RE.match(name) or ".." in name or _IPV4_RE.match(name):
        raise ValidationError(f"Invalid bucket name: {name!r}")
    return name


@dataclass(frozen=True)
class Connection:
    config: ConnectionConfig
    driver: StorageDriver


def _default_factory(config: ConnectionConfig) -> StorageDriver:
    from providers.factory import build_driver

    return build_driver(config)


class ConsoleSession:
    """
    Holder of the single active storage connection.

    One instance lives on app.state for the lifetime of the server process.
    No locking: concurrent connects race and the last successful one wins.
    """

    def __init__(self, driver_factory: Optional[DriverFactory] = None) -> None:
        self._factory: DriverFactory = driver_factory or _default_factory
        self._connection: Optional[Connection] = None

    @property
    def connected(self) -> bool:
        return self._connection is not None

    def connect(self, config: ConnectionConfig) -> None:
        """
        Build a driver and prove the credentials by listing buckets.

        The stored connection is replaced only on success.
        """
        if not config.host:
            raise ValidationError("endpoint is required")
        if not config.access_key or not config.secret_key:
            raise ValidationError("accessKey and secretKey are required")

        try:
            driver = self._factory(config)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        try:
            driver.list_buckets()
        except NetworkError:
            log.warning("Connect failed: %s unreachable", config.netloc)
            raise
        except ConsoleError as e:
            log.warning("Connect failed: %s rejected credentials (%s)", config.netloc, e.storage_code or e.code)
            if is_auth_code(e.storage_code) or isinstance(e, AuthError):
                raise AuthError(e.message, storage_code=e.storage_code) from e
            raise AuthError(f"Connection check failed: {e.message}", storage_code=e.storage_code) from e

        self._connection = Connection(config=config, driver=driver)
        log.info("Connected to %s (tls=%s)", config.netloc, config.use_tls)

    def disconnect(self) -> None:
        if self._connection is not None:
            log.info("Disconnected from %s", self._connection.config.netloc)
        self._connection = None

    def status(self) -> Dict[str, Any]:
        conn = self._connection
        return {
            "connected": conn is not None,
            "config": conn.config.redacted() if conn is not None else None,
        }

    def require(self) -> StorageDriver:
        conn = self._connection
        if conn is None:
            raise NotConnectedError()
        return conn.driver
