from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError

from core.errors import (
    ConsoleError,
    NetworkError,
    PassthroughError,
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

# delete_objects accepts at most this many keys per request
_DELETE_BATCH = 1000


@contextmanager
def _sdk_errors() -> Iterator[None]:
    """Re-raise botocore failures as console errors."""
    try:
        yield
    except ConsoleError:
        raise
    except ClientError as e:
        err = e.response.get("Error", {}) if hasattr(e, "response") else {}
        code = str(err.get("Code") or "")
        message = str(err.get("Message") or e)
        raise error_from_storage_code(code, message) from e
    except EndpointConnectionError as e:
        raise NetworkError(f"Storage server unreachable: {e}") from e
    except BotoCoreError as e:
        raise PassthroughError(str(e)) from e


class S3StorageDriver(StorageDriver):
    """
    boto3 implementation of StorageDriver for AWS S3 or any server that
    speaks the S3 API at endpoint:port.

    Path-style addressing keeps bucket names out of DNS, which is what
    self-hosted servers expect. Retries are disabled (max_attempts=1).
    """

    def __init__(self, config: ConnectionConfig, timeout_seconds: float = 15.0) -> None:
        if not config.host:
            raise ValueError("endpoint is empty or invalid")
        cfg = Config(
            retries={"max_attempts": 1, "mode": "standard"},
            region_name=config.region or "us-east-1",
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            connect_timeout=timeout_seconds,
            read_timeout=timeout_seconds,
        )
        self.region = config.region or "us-east-1"
        self.s3 = boto3.client(
            "s3",
            endpoint_url=config.url,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            config=cfg,
        )

    # -----------------------------------------------------------------
    # Buckets
    # -----------------------------------------------------------------

    def list_buckets(self) -> List[BucketInfo]:
        with _sdk_errors():
            resp = self.s3.list_buckets()
        return [
            BucketInfo(name=b["Name"], creation_date=b.get("CreationDate"))
            for b in resp.get("Buckets", [])
        ]

    def make_bucket(self, name: str, region: str) -> None:
        kwargs: Dict[str, Any] = {"Bucket": name}
        # us-east-1 must not be sent as a location constraint
        if region and region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
        with _sdk_errors():
            self.s3.create_bucket(**kwargs)

    def remove_bucket(self, name: str) -> None:
        with _sdk_errors():
            self.s3.delete_bucket(Bucket=name)

    def get_bucket_policy(self, name: str) -> str:
        try:
            with _sdk_errors():
                resp = self.s3.get_bucket_policy(Bucket=name)
        except ConsoleError as e:
            if e.storage_code == "NoSuchBucketPolicy":
                return ""
            raise
        return resp.get("Policy") or ""

    def set_bucket_policy(self, name: str, policy: str) -> None:
        with _sdk_errors():
            if policy:
                self.s3.put_bucket_policy(Bucket=name, Policy=policy)
            else:
                self.s3.delete_bucket_policy(Bucket=name)

    # -----------------------------------------------------------------
    # Objects
    # -----------------------------------------------------------------

    def list_objects(self, bucket: str, prefix: str = "", recursive: bool = False) -> List[ObjectEntry]:
        kwargs: Dict[str, Any] = {"Bucket": bucket, "Prefix": prefix or ""}
        if not recursive:
            kwargs["Delimiter"] = "/"

        out: List[ObjectEntry] = []
        with _sdk_errors():
            paginator = self.s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(**kwargs):
                for cp in page.get("CommonPrefixes", []) or []:
                    out.append(ObjectEntry(prefix=cp["Prefix"]))
                for obj in page.get("Contents", []) or []:
                    out.append(
                        ObjectEntry(
                            name=obj["Key"],
                            size=int(obj.get("Size") or 0),
                            last_modified=obj.get("LastModified"),
                            etag=(obj.get("ETag") or "").strip('"') or None,
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
        with _sdk_errors():
            resp = self.s3.put_object(
                Bucket=bucket,
                Key=key,
                Body=data or b"",
                ContentLength=length,
                ContentType=content_type or "application/octet-stream",
            )
        return (resp.get("ETag") or "").strip('"') or None

    def get_object(self, bucket: str, key: str) -> ObjectStream:
        with _sdk_errors():
            resp = self.s3.get_object(Bucket=bucket, Key=key)
        body = resp["Body"]
        stat = ObjectStat(
            key=key,
            size=int(resp.get("ContentLength") or 0),
            last_modified=resp.get("LastModified"),
            etag=(resp.get("ETag") or "").strip('"') or None,
            content_type=resp.get("ContentType") or "application/octet-stream",
            metadata=dict(resp.get("Metadata") or {}),
        )
        return ObjectStream(stat=stat, chunks=body.iter_chunks(_CHUNK_SIZE), _close=body.close)

    def remove_object(self, bucket: str, key: str) -> None:
        with _sdk_errors():
            self.s3.delete_object(Bucket=bucket, Key=key)

    def remove_objects(self, bucket: str, keys: List[str]) -> Dict[str, str]:
        failed: Dict[str, str] = {}
        for start in range(0, len(keys), _DELETE_BATCH):
            chunk = keys[start:start + _DELETE_BATCH]
            with _sdk_errors():
                resp = self.s3.delete_objects(
                    Bucket=bucket,
                    Delete={"Objects": [{"Key": k} for k in chunk], "Quiet": True},
                )
            for err in resp.get("Errors", []) or []:
                failed[err.get("Key", "")] = err.get("Message") or err.get("Code") or "delete failed"
        return failed

    def stat_object(self, bucket: str, key: str) -> ObjectStat:
        with _sdk_errors():
            resp = self.s3.head_object(Bucket=bucket, Key=key)
        return ObjectStat(
            key=key,
            size=int(resp.get("ContentLength") or 0),
            last_modified=resp.get("LastModified"),
            etag=(resp.get("ETag") or "").strip('"') or None,
            content_type=resp.get("ContentType") or "application/octet-stream",
            metadata=dict(resp.get("Metadata") or {}),
        )

    def presign_get(self, bucket: str, key: str, ttl_seconds: int = 3600) -> str:
        with _sdk_errors():
            return self.s3.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=max(1, int(ttl_seconds)),
            )
