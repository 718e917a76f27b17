from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Tuple

from starlette.concurrency import run_in_threadpool

from core.errors import ConsoleError, ValidationError
from core.settings import StorageSettings
from providers.storage import StorageDriver

log = logging.getLogger(__name__)


def _unique(keys: List[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for k in keys:
        if k and k not in seen:
            seen.add(k)
            out.append(k)
    return out


def clamp_ttl(expiry: Optional[int], settings: StorageSettings) -> int:
    if expiry is None:
        return settings.presign_ttl_seconds
    return max(1, min(int(expiry), settings.presign_max_ttl_seconds))


def upload_key(prefix: str, filename: str) -> str:
    """Object key for an uploaded file: current prefix + the file's base name."""
    name = PurePosixPath((filename or "").replace("\\", "/")).name
    if not name:
        raise ValidationError("Uploaded file has no name")
    prefix = (prefix or "").lstrip("/")
    if prefix and not prefix.endswith("/"):
        prefix += "/"
    return f"{prefix}{name}"


def folder_key(folder_name: str) -> str:
    name = (folder_name or "").strip().lstrip("/")
    if not name.strip("/"):
        raise ValidationError("folderName is required")
    return name if name.endswith("/") else f"{name}/"


def guess_content_type(filename: str, declared: Optional[str] = None) -> str:
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or declared or "application/octet-stream"


def presign_existing(storage: StorageDriver, bucket: str, key: str, ttl_seconds: int) -> str:
    """
    Presign a GET for key after checking it exists.

    Presigning alone never touches the server, so a missing key would
    otherwise yield a URL that answers 404.
    """
    storage.stat_object(bucket, key)
    return storage.presign_get(bucket, key, ttl_seconds)


async def presign_many(
    storage: StorageDriver,
    bucket: str,
    keys: List[str],
    ttl_seconds: int,
) -> Dict[str, Optional[str]]:
    """
    Presign every key concurrently. A key that fails maps to None; the
    batch itself never fails.
    """

    async def _one(key: str) -> Tuple[str, Optional[str]]:
        try:
            url = await run_in_threadpool(presign_existing, storage, bucket, key, ttl_seconds)
        except ConsoleError as e:
            log.warning("Presign failed bucket=%s key=%s: %s", bucket, key, e.message)
            return key, None
        return key, url

    pairs = await asyncio.gather(*(_one(k) for k in _unique(keys)))
    return dict(pairs)


def delete_many(storage: StorageDriver, bucket: str, keys: List[str]) -> Tuple[int, Dict[str, str]]:
    """
    Delete keys in one SDK batch call.

    Returns (number deleted, {key: error}) so partial failures are visible
    per key instead of being reported as success.
    """
    unique = _unique(keys)
    if not unique:
        return 0, {}
    errors = storage.remove_objects(bucket, unique)
    for key, msg in errors.items():
        log.warning("Delete failed bucket=%s key=%s: %s", bucket, key, msg)
    deleted = len([k for k in unique if k not in errors])
    log.info("Batch delete bucket=%s deleted=%s failed=%s", bucket, deleted, len(errors))
    return deleted, errors
