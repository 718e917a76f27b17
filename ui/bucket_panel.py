from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from buckets.policy import BucketPolicy, parse_policy
from client.api_client import ApiError

log = logging.getLogger(__name__)


class BucketPanel:
    """Bucket list, create/delete, and the canned-access policy editor."""

    def __init__(self, client: Any) -> None:
        self.client = client
        self.buckets: List[Dict[str, Any]] = []
        self.loading = False
        self.error: Optional[str] = None
        self.selected: Optional[str] = None

        # Policy editor, open for at most one bucket
        self.policy_bucket: Optional[str] = None
        self.policy_document = ""
        self.policy_loading = False

    @property
    def current_policy(self) -> BucketPolicy:
        return parse_policy(self.policy_document)

    @property
    def current_access(self) -> str:
        return self.current_policy.access

    def dismiss_error(self) -> None:
        self.error = None

    def select(self, name: Optional[str]) -> None:
        self.selected = name

    async def refresh(self) -> None:
        self.loading = True
        self.error = None
        try:
            self.buckets = list(await self.client.list_buckets() or [])
        except ApiError as e:
            self.error = e.message or "Failed to load buckets"
        finally:
            self.loading = False

    async def create(self, name: str, region: Optional[str] = None) -> bool:
        name = (name or "").strip()
        if not name:
            return False
        try:
            await self.client.create_bucket(name, region)
        except ApiError as e:
            self.error = e.message or "Failed to create bucket"
            return False
        await self.refresh()
        return True

    async def delete(self, name: str) -> bool:
        try:
            await self.client.delete_bucket(name)
        except ApiError as e:
            # The usual cause is a bucket that still holds objects
            self.error = e.message or "Failed to delete bucket (it must be empty)"
            return False
        if self.policy_bucket == name:
            self.close_policy()
        if self.selected == name:
            self.selected = None
        await self.refresh()
        return True

    # -----------------------------------------------------------------
    # Policy editor
    # -----------------------------------------------------------------

    async def open_policy(self, name: str) -> None:
        self.policy_bucket = name
        self.policy_loading = True
        try:
            data = await self.client.get_bucket_policy(name)
            self.policy_document = (data or {}).get("policy") or ""
        except ApiError:
            # Unreadable policy is shown as private
            self.policy_document = ""
        finally:
            self.policy_loading = False

    def close_policy(self) -> None:
        self.policy_bucket = None
        self.policy_document = ""

    async def set_access(self, access: str) -> bool:
        """Apply a canned level to the open bucket, then re-read its policy."""
        if self.policy_bucket is None:
            return False
        bucket = self.policy_bucket
        self.policy_loading = True
        try:
            await self.client.set_bucket_access(bucket, access)
            data = await self.client.get_bucket_policy(bucket)
            self.policy_document = (data or {}).get("policy") or ""
        except ApiError as e:
            self.error = e.message or "Failed to set access"
            return False
        finally:
            self.policy_loading = False
        log.info("Bucket %s access is now %s", bucket, self.current_access)
        return True
