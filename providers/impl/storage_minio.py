from __future__ import annotations

import io
import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Dict, Iterator, List, Optional

import urllib3
from minio import Minio
from minio.deleteobjects import DeleteObject
from minio.error import InvalidResponseError, S3Error, ServerError

from core.errors import (
    ConsoleError,
    NetworkError,
    PassthroughError,
    ValidationError,
    error_from_storage_code,
)
from providers.storage import (
    BucketInfo,
    ConnectionConfig,
    ObjectEntry,
    ObjectStat,
    ObjectStream,
    StorageDriver,
)

log = logging.getLogger(__name__)

_CHUNK_SIZE = 32 * 1024


@contextmanager
def _sdk_errors() -> Iterator[None]:
    """Re-raise minio/urllib3 failures as console errors."""
    try:
        yield
    except ConsoleError:
        raise
    except S3Error as e:
        raise error_from_storage_code(e.code, e.message or str(e)) from e
    except (InvalidResponseError, ServerError) as e:
        raise PassthroughError(str(e)) from e
    except urllib3.exceptions.HTTPError as e:
        raise NetworkError(f"Storage server unreachable: {e}") from e
    except ValueError as e:
        # argument checks done client-side by the SDK (bucket/object names)
        raise ValidationError(str(e)) from e


class MinioStorageDriver(StorageDriver):
    """
    MinIO SDK implementation of StorageDriver.

    The SDK's internal urllib3 retries are disabled; every call is a single
    attempt.
    """

    def __init__(self, config: ConnectionConfig, timeout_seconds: float = 15.0) -> None:
        if not config.host:
            raise ValueError("endpoint is empty or invalid")

        http_client = urllib3.PoolManager(
            timeout=urllib3.Timeout(connect=timeout_seconds, read=timeout_seconds),
            retries=urllib3.Retry(total=0, connect=0, read=0, redirect=0),
        )
        self._client = Minio(
            config.netloc,
            access_key=config.access_key,
            secret_key=config.secret_key,
            secure=bool(config.use_tls),
            region=config.region or None,
            http_client=http_client,
        )

    # -----------------------------------------------------------------
    # Buckets
    # -----------------------------------------------------------------

    def list_buckets(self) -> List[BucketInfo]:
        with _sdk_errors():
            buckets = self._client.list_buckets()
        return [BucketInfo(name=b.name, creation_date=b.creation_date) for b in buckets]

    def make_bucket(self, name: str, region: str) -> None:
        with _sdk_errors():
            self._client.make_bucket(name, location=region or None)

    def remove_bucket(self, name: str) -> None:
        with _sdk_errors():
            self._client.remove_bucket(name)

    def get_bucket_policy(self, name: str) -> str:
        try:
            with _sdk_errors():
                return self._client.get_bucket_policy(name) or ""
        except ConsoleError as e:
            if e.storage_code == "NoSuchBucketPolicy":
                return ""
            raise

    def set_bucket_policy(self, name: str, policy: str) -> None:
        with _sdk_errors():
            if policy:
                self._client.set_bucket_policy(name, policy)
            else:
                self._client.delete_bucket_policy(name)

    # -----------------------------------------------------------------
    # Objects
    # -----------------------------------------------------------------

    def list_objects(self, bucket: str, prefix: str = "", recursive: bool = False) -> List[ObjectEntry]:
        out: List[ObjectEntry] = []
        with _sdk_errors():
            # The iterator is lazy: failures surface while consuming it.
            for obj in self._client.list_objects(bucket, prefix=prefix or None, recursive=recursive):
                if obj.is_dir and not recursive:
                    out.append(ObjectEntry(prefix=obj.object_name))
                    continue
                out.append(
                    ObjectEntry(
                        name=obj.object_name,
                        size=int(obj.size or 0),
                        last_modified=obj.last_modified,
                        etag=obj.etag,
                    )
                )
        return out

    def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        length: int,
        content_type: str = "application/octet-stream",
    ) -> Optional[str]:
        # put_object requires a stream and a length
        stream = io.BytesIO(data or b"")
        with _sdk_errors():
            result = self._client.put_object(
                bucket,
                key,
                stream,
                length,
                content_type=content_type or "application/octet-stream",
            )
        return getattr(result, "etag", None)

    def get_object(self, bucket: str, key: str) -> ObjectStream:
        stat = self.stat_object(bucket, key)
        with _sdk_errors():
            resp = self._client.get_object(bucket, key)

        def _close() -> None:
            resp.close()
            resp.release_conn()

        return ObjectStream(stat=stat, chunks=resp.stream(_CHUNK_SIZE), _close=_close)

    def remove_object(self, bucket: str, key: str) -> None:
        with _sdk_errors():
            self._client.remove_object(bucket, key)

    def remove_objects(self, bucket: str, keys: List[str]) -> Dict[str, str]:
        failed: Dict[str, str] = {}
        if not keys:
            return failed
        with _sdk_errors():
            # Errors are yielded lazily; nothing is deleted until iterated.
            for err in self._client.remove_objects(bucket, [DeleteObject(k) for k in keys]):
                failed[err.name] = err.message or err.code or "delete failed"
        return failed

    def stat_object(self, bucket: str, key: str) -> ObjectStat:
        with _sdk_errors():
            obj = self._client.stat_object(bucket, key)
        metadata = {str(k): str(v) for k, v in (obj.metadata or {}).items()}
        return ObjectStat(
            key=key,
            size=int(obj.size or 0),
            last_modified=obj.last_modified,
            etag=obj.etag,
            content_type=obj.content_type or "application/octet-stream",
            metadata=metadata,
        )

    def presign_get(self, bucket: str, key: str, ttl_seconds: int = 3600) -> str:
        with _sdk_errors():
            return self._client.presigned_get_object(
                bucket,
                key,
                expires=timedelta(seconds=max(1, int(ttl_seconds))),
            )
