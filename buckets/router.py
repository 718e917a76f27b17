from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends

from buckets.policy import parse_policy, policy_for_access, render_policy
from core.deps import SettingsDep, StorageDep, require_connection
from core.session import validate_bucket_name
from schemas import (
    AccessRequest,
    BucketModel,
    CreateBucketRequest,
    MessageResponse,
    PolicyRequest,
    PolicyResponse,
)

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/buckets",
    tags=["buckets"],
    dependencies=[Depends(require_connection)],
)


# ---------------------------------------------------------------------
# GET /buckets
# ---------------------------------------------------------------------
@router.get("", response_model=List[BucketModel])
def list_buckets(storage: StorageDep):
    return [BucketModel.from_info(b) for b in storage.list_buckets()]


# ---------------------------------------------------------------------
# POST /buckets
# ---------------------------------------------------------------------
@router.post("", response_model=MessageResponse)
def create_bucket(body: CreateBucketRequest, storage: StorageDep, settings: SettingsDep):
    name = validate_bucket_name(body.name)
    region = (body.region or "").strip() or settings.storage.default_region
    storage.make_bucket(name, region)
    log.info("Created bucket %s (region=%s)", name, region)
    return MessageResponse(message=f"Bucket {name} created")


# ---------------------------------------------------------------------
# DELETE /buckets/{name}
# ---------------------------------------------------------------------
@router.delete("/{name}", response_model=MessageResponse)
def delete_bucket(name: str, storage: StorageDep):
    """Fails with 409 when the bucket still holds objects."""
    storage.remove_bucket(name)
    log.info("Deleted bucket %s", name)
    return MessageResponse(message=f"Bucket {name} deleted")


# ---------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------
@router.get("/{name}/policy", response_model=PolicyResponse)
def get_policy(name: str, storage: StorageDep):
    document = storage.get_bucket_policy(name)
    return PolicyResponse(policy=document, access=parse_policy(document).access)


@router.put("/{name}/policy", response_model=MessageResponse)
def set_policy(name: str, storage: StorageDep, body: Optional[PolicyRequest] = Body(default=None)):
    """Replace the whole policy document; an empty or missing body clears it."""
    document = body.as_document() if body is not None else ""
    storage.set_bucket_policy(name, document)
    log.info("Policy %s for bucket %s", "replaced" if document else "cleared", name)
    return MessageResponse(message="Policy updated")


@router.put("/{name}/access", response_model=MessageResponse)
def set_access(name: str, body: AccessRequest, storage: StorageDep):
    policy = policy_for_access(body.access)
    storage.set_bucket_policy(name, render_policy(name, policy))
    log.info("Access for bucket %s set to %s", name, body.access)
    return MessageResponse(message=f"Access set to {body.access}")
