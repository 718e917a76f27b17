from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from ui.bucket_panel import BucketPanel
from ui.connection_panel import ConnectionForm, ConnectionPanel
from ui.object_browser import ObjectBrowser

log = logging.getLogger(__name__)


class Tab(str, Enum):
    CONNECTION = "connection"
    BUCKETS = "buckets"


class Console:
    """
    Top-level shell tying the panels together.

    Shows the connection tab until a server is connected, then the bucket
    list. Selecting a bucket opens the object browser on it; disconnecting
    drops the selection and returns to the connection tab.
    """

    def __init__(self, client: Any, form: Optional[ConnectionForm] = None) -> None:
        self.client = client
        self.connection = ConnectionPanel(client, form)
        self.buckets = BucketPanel(client)
        self.browser: Optional[ObjectBrowser] = None
        self.tab = Tab.CONNECTION
        self.checking = True

    @property
    def connected(self) -> bool:
        return self.connection.connected

    @property
    def selected_bucket(self) -> Optional[str]:
        return self.buckets.selected

    async def start(self) -> None:
        """Pick the opening tab from the server's current status."""
        self.checking = True
        try:
            await self.connection.refresh()
        finally:
            self.checking = False
        if self.connected:
            await self._on_connected()

    async def connect(self) -> bool:
        if not await self.connection.connect():
            return False
        await self._on_connected()
        return True

    async def disconnect(self) -> None:
        await self.connection.disconnect()
        if self.connected:
            return
        self.tab = Tab.CONNECTION
        self.back()

    async def select(self, bucket: str) -> None:
        self.buckets.select(bucket)
        if self.browser is None:
            self.browser = ObjectBrowser(self.client, bucket)
            await self.browser.load()
        else:
            await self.browser.set_bucket(bucket)
        log.debug("Browsing bucket %s", bucket)

    def back(self) -> None:
        """Close the browser and return to the bucket list."""
        self.buckets.select(None)
        self.browser = None

    def show_connection(self) -> None:
        self.tab = Tab.CONNECTION
        self.back()

    def show_buckets(self) -> None:
        if not self.connected:
            return
        self.tab = Tab.BUCKETS
        self.back()

    async def _on_connected(self) -> None:
        self.tab = Tab.BUCKETS
        await self.buckets.refresh()
