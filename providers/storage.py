from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional, Protocol, runtime_checkable


def _strip_http(endpoint: str) -> str:
    # Bare host: no scheme, no trailing slash
    endpoint = (endpoint or "").strip()
    endpoint = endpoint.replace("http://", "").replace("https://", "")
    endpoint = endpoint.rstrip("/")
    return endpoint


@dataclass(frozen=True)
class ConnectionConfig:
    """Everything needed to reach one storage server."""

    endpoint: str
    port: int
    access_key: str
    secret_key: str
    use_tls: bool = False
    region: Optional[str] = None

    @property
    def host(self) -> str:
        return _strip_http(self.endpoint)

    @property
    def netloc(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        scheme = "https" if self.use_tls else "http"
        return f"{scheme}://{self.netloc}"

    def redacted(self) -> Dict[str, object]:
        # Never include credentials
        return {"endpoint": self.endpoint, "port": self.port, "useTLS": self.use_tls}


@dataclass(frozen=True)
class BucketInfo:
    name: str
    creation_date: Optional[datetime] = None


@dataclass(frozen=True)
class ObjectEntry:
    """
    One row of a listing: a file object, or a common-prefix marker when the
    listing was not recursive and the key continues past the prefix.
    """

    name: Optional[str] = None
    prefix: Optional[str] = None
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None

    @property
    def is_prefix(self) -> bool:
        return self.prefix is not None

    @property
    def key(self) -> str:
        return self.prefix if self.prefix is not None else (self.name or "")


@dataclass(frozen=True)
class ObjectStat:
    key: str
    size: int
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    content_type: str = "application/octet-stream"
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class ObjectStream:
    """An open object body. The caller must call close() when done."""

    stat: ObjectStat
    chunks: Iterator[bytes]
    _close: Callable[[], None]

    def close(self) -> None:
        self._close()


@runtime_checkable
class StorageDriver(Protocol):
    """
    Object storage SDK abstraction.

    Implementations translate SDK failures into core.errors.ConsoleError
    subclasses; nothing SDK-specific crosses this boundary.
    """

    def list_buckets(self) -> List[BucketInfo]: ...

    def make_bucket(self, name: str, region: str) -> None: ...

    def remove_bucket(self, name: str) -> None: ...

    def get_bucket_policy(self, name: str) -> str:
        """Return the policy document, or "" when the bucket has none."""
        ...

    def set_bucket_policy(self, name: str, policy: str) -> None:
        """Replace the policy; an empty string removes it."""
        ...

    def list_objects(self, bucket: str, prefix: str = "", recursive: bool = False) -> List[ObjectEntry]: ...

    def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        length: int,
        content_type: str = "application/octet-stream",
    ) -> Optional[str]: ...

    def get_object(self, bucket: str, key: str) -> ObjectStream: ...

    def remove_object(self, bucket: str, key: str) -> None: ...

    def remove_objects(self, bucket: str, keys: List[str]) -> Dict[str, str]:
        """Delete many keys; return {key: error message} for the ones that failed."""
        ...

    def stat_object(self, bucket: str, key: str) -> ObjectStat: ...

    def presign_get(self, bucket: str, key: str, ttl_seconds: int = 3600) -> str: ...
