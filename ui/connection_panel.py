from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from client.api_client import ApiError


@dataclass
class ConnectionForm:
    endpoint: str = "localhost"
    port: int = 9000
    access_key: str = ""
    secret_key: str = ""
    use_tls: bool = False


class ConnectionPanel:
    """Connect/disconnect form and the server's current connection status."""

    def __init__(self, client: Any, form: Optional[ConnectionForm] = None) -> None:
        self.client = client
        self.form = form or ConnectionForm()
        self.connected = False
        self.config: Optional[Dict[str, Any]] = None
        self.busy = False
        self.error: Optional[str] = None

    def dismiss_error(self) -> None:
        self.error = None

    async def refresh(self) -> None:
        try:
            data = await self.client.status()
        except ApiError as e:
            self.error = e.message
            return
        self.connected = bool(data.get("connected"))
        self.config = data.get("config")

    async def connect(self) -> bool:
        self.busy = True
        self.error = None
        try:
            await self.client.connect(
                self.form.endpoint,
                self.form.port,
                self.form.access_key,
                self.form.secret_key,
                self.form.use_tls,
            )
        except ApiError as e:
            self.error = e.message or "Connection failed"
            return False
        finally:
            self.busy = False
        await self.refresh()
        return self.connected

    async def disconnect(self) -> None:
        try:
            await self.client.disconnect()
        except ApiError as e:
            self.error = e.message
            return
        self.connected = False
        self.config = None
