from __future__ import annotations

import logging
from typing import Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from core.deps import SettingsDep, StorageDep, require_connection
from objects.service import (
    clamp_ttl,
    delete_many,
    folder_key,
    guess_content_type,
    presign_existing,
    presign_many,
    upload_key,
)
from providers.storage import StorageDriver
from schemas import (
    DeleteObjectsResponse,
    FolderRequest,
    KeysRequest,
    MessageResponse,
    ObjectEntryModel,
    ObjectStatModel,
    PresignBatchRequest,
    PresignResponse,
    UploadResponse,
)

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/buckets/{bucket}",
    tags=["objects"],
    dependencies=[Depends(require_connection)],
)

preview_router = APIRouter(
    prefix="/preview",
    tags=["objects"],
    dependencies=[Depends(require_connection)],
)


# ---------------------------------------------------------------------
# Streaming helper
# ---------------------------------------------------------------------

def _content_disposition(key: str) -> str:
    filename = key.rstrip("/").rsplit("/", 1)[-1] or "download"
    ascii_name = filename.encode("ascii", "ignore").decode("ascii").replace('"', "") or "download"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


def _stream_object(storage: StorageDriver, bucket: str, key: str, attachment: bool) -> StreamingResponse:
    stream = storage.get_object(bucket, key)
    headers = {"Content-Length": str(stream.stat.size)}
    if attachment:
        headers["Content-Disposition"] = _content_disposition(key)
    return StreamingResponse(
        stream.chunks,
        media_type=stream.stat.content_type,
        headers=headers,
        background=BackgroundTask(stream.close),
    )


# ---------------------------------------------------------------------
# GET /buckets/{bucket}/objects
# ---------------------------------------------------------------------
@router.get("/objects", response_model=List[ObjectEntryModel], response_model_exclude_none=True)
def list_objects(
    bucket: str,
    storage: StorageDep,
    prefix: str = Query(""),
    recursive: bool = Query(False),
):
    entries = storage.list_objects(bucket, prefix=prefix, recursive=recursive)
    return [ObjectEntryModel.from_entry(e) for e in entries]


# ---------------------------------------------------------------------
# POST /buckets/{bucket}/upload
# ---------------------------------------------------------------------
@router.post("/upload", response_model=UploadResponse)
async def upload_object(
    bucket: str,
    storage: StorageDep,
    file: UploadFile = File(...),
    prefix: str = Form(""),
):
    """One file per request; the body is buffered in memory before forwarding."""
    key = upload_key(prefix, file.filename or "")
    data = await file.read()
    content_type = guess_content_type(key, file.content_type)
    await run_in_threadpool(storage.put_object, bucket, key, data, len(data), content_type)
    log.info("Uploaded bucket=%s key=%s bytes=%s", bucket, key, len(data))
    return UploadResponse(objectName=key, message="File uploaded")


# ---------------------------------------------------------------------
# Download / stat / delete single object
# ---------------------------------------------------------------------
@router.get("/download/{key:path}")
def download_object(bucket: str, key: str, storage: StorageDep):
    return _stream_object(storage, bucket, key, attachment=True)


@router.get("/stat/{key:path}", response_model=ObjectStatModel)
def stat_object(bucket: str, key: str, storage: StorageDep):
    return ObjectStatModel.from_stat(storage.stat_object(bucket, key))


@router.delete("/delete/{key:path}", response_model=MessageResponse)
def delete_object(bucket: str, key: str, storage: StorageDep):
    storage.remove_object(bucket, key)
    log.info("Deleted bucket=%s key=%s", bucket, key)
    return MessageResponse(message="Object deleted")


# ---------------------------------------------------------------------
# POST /buckets/{bucket}/delete-objects
# ---------------------------------------------------------------------
@router.post("/delete-objects", response_model=DeleteObjectsResponse)
def delete_objects(bucket: str, body: KeysRequest, storage: StorageDep):
    deleted, errors = delete_many(storage, bucket, body.keys)
    return DeleteObjectsResponse(deleted=deleted, errors=errors)


# ---------------------------------------------------------------------
# Presigned URLs
# ---------------------------------------------------------------------
@router.get("/presigned/{key:path}", response_model=PresignResponse)
def presigned_url(
    bucket: str,
    key: str,
    storage: StorageDep,
    settings: SettingsDep,
    expiry: Optional[int] = Query(None),
):
    ttl = clamp_ttl(expiry, settings.storage)
    return PresignResponse(url=presign_existing(storage, bucket, key, ttl))


@router.post("/presigned-batch", response_model=Dict[str, Optional[str]])
async def presigned_batch(
    bucket: str,
    body: PresignBatchRequest,
    storage: StorageDep,
    settings: SettingsDep,
):
    ttl = clamp_ttl(body.expiry, settings.storage)
    return await presign_many(storage, bucket, body.keys, ttl)


# ---------------------------------------------------------------------
# POST /buckets/{bucket}/folder
# ---------------------------------------------------------------------
@router.post("/folder", response_model=MessageResponse)
def create_folder(bucket: str, body: FolderRequest, storage: StorageDep):
    """Folders are zero-byte objects whose key ends in "/"."""
    key = folder_key(body.folderName)
    storage.put_object(bucket, key, b"", 0, "application/x-directory")
    log.info("Created folder bucket=%s key=%s", bucket, key)
    return MessageResponse(message=f"Folder {key} created")


# ---------------------------------------------------------------------
# GET /preview/{bucket}/{key}
# ---------------------------------------------------------------------
@preview_router.get("/{bucket}/{key:path}")
def preview_object(bucket: str, key: str, storage: StorageDep):
    """Same bytes as download, served inline (no Content-Disposition)."""
    return _stream_object(storage, bucket, key, attachment=False)
