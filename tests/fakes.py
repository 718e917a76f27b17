from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from core.errors import ConflictError, NotFoundError
from providers.storage import BucketInfo, ObjectEntry, ObjectStat, ObjectStream


@dataclass
class _StoredObject:
    data: bytes
    content_type: str
    last_modified: datetime


class FakeDriver:
    """In-memory StorageDriver with S3 delimiter-listing semantics."""

    def __init__(self) -> None:
        self.buckets: Dict[str, datetime] = {}
        self.objects: Dict[str, Dict[str, _StoredObject]] = {}
        self.policies: Dict[str, str] = {}
        self.undeletable: Set[str] = set()
        self.list_calls = 0
        self.regions: Dict[str, str] = {}

    # helpers for tests
    def put(
        self,
        bucket: str,
        key: str,
        data: bytes = b"x",
        content_type: str = "application/octet-stream",
        last_modified: Optional[datetime] = None,
    ) -> None:
        self.buckets.setdefault(bucket, datetime(2024, 1, 1, tzinfo=timezone.utc))
        self.objects.setdefault(bucket, {})[key] = _StoredObject(
            data=data,
            content_type=content_type,
            last_modified=last_modified or datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

    def _bucket(self, name: str) -> Dict[str, _StoredObject]:
        if name not in self.buckets:
            raise NotFoundError(f"Bucket {name} does not exist", storage_code="NoSuchBucket")
        return self.objects.setdefault(name, {})

    # StorageDriver
    def list_buckets(self) -> List[BucketInfo]:
        return [BucketInfo(name=n, creation_date=d) for n, d in sorted(self.buckets.items())]

    def make_bucket(self, name: str, region: str) -> None:
        if name in self.buckets:
            raise ConflictError("Bucket already owned by you", storage_code="BucketAlreadyOwnedByYou")
        self.buckets[name] = datetime.now(timezone.utc)
        self.objects[name] = {}
        self.regions[name] = region

    def remove_bucket(self, name: str) -> None:
        if self._bucket(name):
            raise ConflictError("The bucket you tried to delete is not empty", storage_code="BucketNotEmpty")
        del self.buckets[name]
        self.objects.pop(name, None)
        self.policies.pop(name, None)

    def get_bucket_policy(self, name: str) -> str:
        self._bucket(name)
        return self.policies.get(name, "")

    def set_bucket_policy(self, name: str, policy: str) -> None:
        self._bucket(name)
        if policy:
            self.policies[name] = policy
        else:
            self.policies.pop(name, None)

    def list_objects(self, bucket: str, prefix: str = "", recursive: bool = False) -> List[ObjectEntry]:
        self.list_calls += 1
        prefix = prefix or ""
        out: List[ObjectEntry] = []
        seen_prefixes: Set[str] = set()
        for key in sorted(self._bucket(bucket)):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if not recursive and "/" in rest:
                marker = prefix + rest.split("/", 1)[0] + "/"
                if marker not in seen_prefixes:
                    seen_prefixes.add(marker)
                    out.append(ObjectEntry(prefix=marker))
                continue
            obj = self.objects[bucket][key]
            out.append(ObjectEntry(name=key, size=len(obj.data), last_modified=obj.last_modified, etag="etag-" + key))
        return out

    def put_object(self, bucket, key, data, length, content_type="application/octet-stream"):
        self._bucket(bucket)
        self.put(bucket, key, data[:length], content_type, datetime.now(timezone.utc))
        return "etag-" + key

    def get_object(self, bucket: str, key: str) -> ObjectStream:
        stat = self.stat_object(bucket, key)
        data = self.objects[bucket][key].data
        return ObjectStream(stat=stat, chunks=iter([data]), _close=lambda: None)

    def remove_object(self, bucket: str, key: str) -> None:
        self._bucket(bucket).pop(key, None)

    def remove_objects(self, bucket: str, keys: List[str]) -> Dict[str, str]:
        objects = self._bucket(bucket)
        failed: Dict[str, str] = {}
        for key in keys:
            if key in self.undeletable:
                failed[key] = "Access Denied"
                continue
            objects.pop(key, None)
        return failed

    def stat_object(self, bucket: str, key: str) -> ObjectStat:
        obj = self._bucket(bucket).get(key)
        if obj is None:
            raise NotFoundError("The specified key does not exist.", storage_code="NoSuchKey")
        return ObjectStat(
            key=key,
            size=len(obj.data),
            last_modified=obj.last_modified,
            etag="etag-" + key,
            content_type=obj.content_type,
        )

    def presign_get(self, bucket: str, key: str, ttl_seconds: int = 3600) -> str:
        return f"http://fake-s3/{bucket}/{key}?X-Amz-Expires={ttl_seconds}"


CONNECT_BODY = {
    "endpoint": "minio.local",
    "port": 9000,
    "accessKey": "minioadmin",
    "secretKey": "super-secret",
    "useTLS": False,
}
