from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from client.api_client import ApiError
from ui.listing import (
    BrowserItem,
    MediaFilter,
    breadcrumbs,
    folder_view,
    is_image,
    is_video,
    media_view,
)

log = logging.getLogger(__name__)

PAGE_SIZE = 100
SCROLL_THRESHOLD_PX = 200
THUMBNAIL_BATCH_SIZE = 20

PREVIEW_TTL_SECONDS = 3600
DOWNLOAD_TTL_SECONDS = 300
SHARE_TTL_SECONDS = 86400


class BrowserState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    LOADING_MORE = "loading_more"
    ERROR = "error"


class ObjectBrowser:
    """
    File browser for one bucket.

    The whole listing for the current (prefix, media filter) is fetched once
    and kept in `items`; `visible` is the window a renderer draws, grown one
    page at a time as the user scrolls. Every change of bucket, prefix or
    filter starts over with a fresh list request. Answers to a superseded
    request are dropped.

    `client` is anything with ConsoleApiClient's coroutine methods.
    """

    def __init__(
        self,
        client: Any,
        bucket: str,
        page_size: int = PAGE_SIZE,
        thumbnail_batch_size: int = THUMBNAIL_BATCH_SIZE,
        scroll_threshold: int = SCROLL_THRESHOLD_PX,
    ) -> None:
        self.client = client
        self.bucket = bucket
        self.page_size = max(1, page_size)
        self.thumbnail_batch_size = max(1, thumbnail_batch_size)
        self.scroll_threshold = scroll_threshold

        self.prefix = ""
        self.media_filter = MediaFilter.ALL
        self.state = BrowserState.IDLE
        self.items: List[BrowserItem] = []
        self.visible: List[BrowserItem] = []
        self.selected: List[str] = []
        self.thumbnails: Dict[str, Optional[str]] = {}
        self.error: Optional[str] = None

        self._busy = False
        self._generation = 0

    # -----------------------------------------------------------------
    # Derived state
    # -----------------------------------------------------------------

    @property
    def has_more(self) -> bool:
        return len(self.visible) < len(self.items)

    @property
    def total_count(self) -> int:
        return len(self.items)

    @property
    def image_count(self) -> int:
        return sum(1 for i in self.items if not i.is_folder and is_image(i.display_name))

    @property
    def video_count(self) -> int:
        return sum(1 for i in self.items if not i.is_folder and is_video(i.display_name))

    @property
    def breadcrumbs(self) -> List[Tuple[str, str]]:
        return breadcrumbs(self.prefix)

    def dismiss_error(self) -> None:
        self.error = None

    # -----------------------------------------------------------------
    # Listing
    # -----------------------------------------------------------------

    async def load(self) -> None:
        """Discard the current listing and fetch the one for the current selection."""
        self._generation += 1
        generation = self._generation

        self.state = BrowserState.LOADING
        self.error = None
        self.items = []
        self.visible = []
        self.selected = []
        self.thumbnails = {}

        media = self.media_filter.is_media
        try:
            entries = await self.client.list_objects(self.bucket, "" if media else self.prefix, media)
        except ApiError as e:
            if generation != self._generation:
                return
            log.warning("Listing %s/%s failed: %s", self.bucket, self.prefix, e.message)
            self.state = BrowserState.ERROR
            self.error = e.message or "Failed to load objects"
            return

        if generation != self._generation:
            return
        if not isinstance(entries, list):
            entries = []

        if media:
            self.items = media_view(entries, self.media_filter)
        else:
            self.items = folder_view(entries, self.prefix)

        first_page = self.items[:self.page_size]
        self.visible = list(first_page)
        self.state = BrowserState.READY
        await self._load_thumbnails(first_page, generation)

    async def load_more(self) -> bool:
        """
        Append the next page to the visible window.

        Returns False without doing anything when a load is already in flight,
        the listing is not ready, or nothing remains.
        """
        if self._busy or self.state is not BrowserState.READY or not self.has_more:
            return False

        self._busy = True
        generation = self._generation
        self.state = BrowserState.LOADING_MORE
        try:
            start = len(self.visible)
            new_items = self.items[start:start + self.page_size]
            self.visible.extend(new_items)
            self.state = BrowserState.READY
            await self._load_thumbnails(new_items, generation)
        finally:
            self._busy = False
        return True

    async def on_scroll(self, scroll_top: float, scroll_height: float, client_height: float) -> bool:
        if self._busy or not self.has_more:
            return False
        if scroll_height - scroll_top - client_height < self.scroll_threshold:
            return await self.load_more()
        return False

    async def _load_thumbnails(self, items: Iterable[BrowserItem], generation: int) -> None:
        keys = [i.name for i in items if not i.is_folder and is_image(i.display_name)]
        if not keys:
            return
        size = self.thumbnail_batch_size
        batches = [keys[i:i + size] for i in range(0, len(keys), size)]
        await asyncio.gather(*(self._load_thumbnail_batch(b, generation) for b in batches))

    async def _load_thumbnail_batch(self, keys: List[str], generation: int) -> None:
        try:
            urls = await self.client.presigned_urls(self.bucket, keys, PREVIEW_TTL_SECONDS)
        except ApiError as e:
            # Unresolved thumbnails render as placeholders
            log.warning("Thumbnail batch of %s failed: %s", len(keys), e.message)
            return
        if generation != self._generation:
            return
        self.thumbnails.update(urls or {})

    # -----------------------------------------------------------------
    # Navigation & selection
    # -----------------------------------------------------------------

    async def set_bucket(self, bucket: str) -> None:
        self.bucket = bucket
        self.prefix = ""
        self.media_filter = MediaFilter.ALL
        await self.load()

    async def go_to(self, prefix: str) -> None:
        prefix = (prefix or "").lstrip("/")
        if prefix and not prefix.endswith("/"):
            prefix += "/"
        self.prefix = prefix
        self.media_filter = MediaFilter.ALL
        await self.load()

    async def set_media_filter(self, media_filter: MediaFilter) -> None:
        media_filter = MediaFilter(media_filter)
        if media_filter is self.media_filter and self.state is not BrowserState.IDLE:
            return
        self.media_filter = media_filter
        await self.load()

    async def click(self, item: BrowserItem, modifier: bool = False) -> None:
        """Plain click opens folders; modifier-click toggles file selection."""
        if item.is_folder:
            await self.go_to(item.name)
        elif modifier:
            self.toggle_selection(item)

    def toggle_selection(self, item: BrowserItem) -> None:
        if item.name in self.selected:
            self.selected.remove(item.name)
        else:
            self.selected.append(item.name)

    # -----------------------------------------------------------------
    # Actions
    # -----------------------------------------------------------------

    async def upload(
        self,
        files: Iterable[Tuple[str, bytes, str]],
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> bool:
        """Upload (filename, data, content_type) tuples into the current prefix, then reload."""
        files = list(files)
        if not files:
            return False
        self.error = None
        for done, (filename, data, content_type) in enumerate(files, start=1):
            try:
                await self.client.upload_file(self.bucket, filename, data, self.prefix, content_type)
            except ApiError as e:
                self.error = e.message or "Upload failed"
                return False
            if on_progress is not None:
                on_progress(done, len(files))
        await self.load()
        return True

    async def delete_selected(self) -> int:
        if not self.selected:
            return 0
        try:
            result = await self.client.delete_objects(self.bucket, list(self.selected))
        except ApiError as e:
            self.error = e.message or "Delete failed"
            return 0
        errors = (result or {}).get("errors") or {}
        deleted = int((result or {}).get("deleted") or 0)
        await self.load()
        if errors:
            self.error = f"Failed to delete {len(errors)} object(s): " + ", ".join(sorted(errors))
        return deleted

    async def create_folder(self, name: str) -> bool:
        name = (name or "").strip()
        if not name:
            return False
        try:
            await self.client.create_folder(self.bucket, self.prefix + name)
        except ApiError as e:
            self.error = e.message or "Failed to create folder"
            return False
        await self.load()
        return True

    async def _presign(self, item: BrowserItem, ttl: int, failure: str) -> Optional[str]:
        try:
            return await self.client.presigned_url(self.bucket, item.name, ttl)
        except ApiError:
            self.error = failure
            return None

    async def preview(self, item: BrowserItem) -> Optional[str]:
        """URL for the image overlay; reuses the thumbnail URL when one is resolved."""
        if item.is_folder or not is_image(item.display_name):
            return None
        url = self.thumbnails.get(item.name)
        if url:
            return url
        url = await self._presign(item, PREVIEW_TTL_SECONDS, "Unable to get preview link")
        if url:
            self.thumbnails[item.name] = url
        return url

    async def download_link(self, item: BrowserItem) -> Optional[str]:
        return await self._presign(item, DOWNLOAD_TTL_SECONDS, "Download failed")

    async def share_link(self, item: BrowserItem) -> Optional[str]:
        """Long-lived link for copying to the clipboard."""
        return await self._presign(item, SHARE_TTL_SECONDS, "Failed to copy link")
