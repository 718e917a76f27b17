from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator

from providers.storage import BucketInfo, ObjectEntry, ObjectStat

AccessLevel = Literal["private", "public-read", "public-read-write"]

# -----------------------------------------------------
# Requests
# -----------------------------------------------------


class ConnectRequest(BaseModel):
    # Older clients send endPoint/useSSL
    endpoint: str = Field(validation_alias=AliasChoices("endpoint", "endPoint"))
    port: int = 9000
    accessKey: str
    secretKey: str
    useTLS: bool = Field(default=False, validation_alias=AliasChoices("useTLS", "useSSL"))
    region: Optional[str] = None

    @field_validator("endpoint", "accessKey", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("port", mode="before")
    @classmethod
    def _port(cls, v):
        if v in (None, ""):
            return 9000
        return v


class CreateBucketRequest(BaseModel):
    name: str = Field(validation_alias=AliasChoices("name", "bucketName"))
    region: Optional[str] = None


class PolicyRequest(BaseModel):
    policy: Union[str, Dict[str, Any], None] = ""

    def as_document(self) -> str:
        if isinstance(self.policy, dict):
            return json.dumps(self.policy)
        return (self.policy or "").strip()


class AccessRequest(BaseModel):
    access: AccessLevel


class KeysRequest(BaseModel):
    keys: List[str] = Field(validation_alias=AliasChoices("keys", "objects"))


class PresignBatchRequest(KeysRequest):
    expiry: Optional[int] = None


class FolderRequest(BaseModel):
    folderName: str


# -----------------------------------------------------
# Responses
# -----------------------------------------------------


class MessageResponse(BaseModel):
    success: bool = True
    message: str = ""


class StatusResponse(BaseModel):
    connected: bool
    config: Optional[Dict[str, Any]] = None


class BucketModel(BaseModel):
    name: str
    creationDate: Optional[datetime] = None

    @classmethod
    def from_info(cls, b: BucketInfo) -> "BucketModel":
        return cls(name=b.name, creationDate=b.creation_date)


class PolicyResponse(BaseModel):
    policy: str
    access: str


class ObjectEntryModel(BaseModel):
    """A file row (name set) or a folder marker (prefix set)."""

    name: Optional[str] = None
    prefix: Optional[str] = None
    size: int = 0
    lastModified: Optional[datetime] = None
    etag: Optional[str] = None

    @classmethod
    def from_entry(cls, e: ObjectEntry) -> "ObjectEntryModel":
        return cls(
            name=e.name,
            prefix=e.prefix,
            size=e.size,
            lastModified=e.last_modified,
            etag=e.etag,
        )


class ObjectStatModel(BaseModel):
    name: str
    size: int
    lastModified: Optional[datetime] = None
    etag: Optional[str] = None
    contentType: str = "application/octet-stream"
    metaData: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_stat(cls, s: ObjectStat) -> "ObjectStatModel":
        return cls(
            name=s.key,
            size=s.size,
            lastModified=s.last_modified,
            etag=s.etag,
            contentType=s.content_type,
            metaData=dict(s.metadata),
        )


class UploadResponse(MessageResponse):
    objectName: str


class DeleteObjectsResponse(BaseModel):
    deleted: int
    errors: Dict[str, str] = Field(default_factory=dict)


class PresignResponse(BaseModel):
    url: str
