from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from core.settings import get_settings

log = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx answer from the console backend (or transport failure)."""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code


def _key_path(key: str) -> str:
    # Keys keep their "/" separators in the URL path
    return quote(key or "", safe="/")


class ConsoleApiClient:
    """
    Async client for the console REST API, one method per endpoint.

    base_url includes the API prefix, e.g. "http://localhost:3001/api".
    No retries; every request is bounded by the client timeout
    (CONSOLE_CLIENT_TIMEOUT_SECONDS unless given).
    """

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if timeout is None:
            timeout = get_settings().client.timeout_seconds
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ConsoleApiClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise ApiError(0, f"Request timed out: {method} {path}", "timeout") from exc
        except httpx.HTTPError as exc:
            raise ApiError(0, f"Request failed: {exc}", "transport_error") from exc

        if resp.is_error:
            message = resp.reason_phrase or f"HTTP {resp.status_code}"
            code = None
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = str(body.get("error") or body.get("detail") or message)
                code = body.get("code")
            log.debug("%s %s -> %s %s", method, path, resp.status_code, message)
            raise ApiError(resp.status_code, message, code)

        if not resp.content:
            return None
        return resp.json()

    # -----------------------------------------------------------------
    # Connection
    # -----------------------------------------------------------------

    async def connect(
        self,
        endpoint: str,
        port: int,
        access_key: str,
        secret_key: str,
        use_tls: bool = False,
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/connect",
            json={
                "endpoint": endpoint,
                "port": port,
                "accessKey": access_key,
                "secretKey": secret_key,
                "useTLS": use_tls,
            },
        )

    async def disconnect(self) -> Dict[str, Any]:
        return await self._request("POST", "/disconnect")

    async def status(self) -> Dict[str, Any]:
        return await self._request("GET", "/status")

    # -----------------------------------------------------------------
    # Buckets
    # -----------------------------------------------------------------

    async def list_buckets(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/buckets")

    async def create_bucket(self, name: str, region: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"name": name}
        if region:
            body["region"] = region
        return await self._request("POST", "/buckets", json=body)

    async def delete_bucket(self, name: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/buckets/{quote(name, safe='')}")

    async def get_bucket_policy(self, name: str) -> Dict[str, Any]:
        return await self._request("GET", f"/buckets/{quote(name, safe='')}/policy")

    async def set_bucket_policy(self, name: str, policy: str) -> Dict[str, Any]:
        return await self._request("PUT", f"/buckets/{quote(name, safe='')}/policy", json={"policy": policy})

    async def set_bucket_access(self, name: str, access: str) -> Dict[str, Any]:
        return await self._request("PUT", f"/buckets/{quote(name, safe='')}/access", json={"access": access})

    # -----------------------------------------------------------------
    # Objects
    # -----------------------------------------------------------------

    async def list_objects(self, bucket: str, prefix: str = "", recursive: bool = False) -> List[Dict[str, Any]]:
        return await self._request(
            "GET",
            f"/buckets/{quote(bucket, safe='')}/objects",
            params={"prefix": prefix, "recursive": "true" if recursive else "false"},
        )

    async def upload_file(
        self,
        bucket: str,
        filename: str,
        data: bytes,
        prefix: str = "",
        content_type: str = "application/octet-stream",
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/buckets/{quote(bucket, safe='')}/upload",
            files={"file": (filename, data, content_type)},
            data={"prefix": prefix},
        )

    async def delete_object(self, bucket: str, key: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/buckets/{quote(bucket, safe='')}/delete/{_key_path(key)}")

    async def delete_objects(self, bucket: str, keys: List[str]) -> Dict[str, Any]:
        return await self._request("POST", f"/buckets/{quote(bucket, safe='')}/delete-objects", json={"keys": list(keys)})

    async def stat_object(self, bucket: str, key: str) -> Dict[str, Any]:
        return await self._request("GET", f"/buckets/{quote(bucket, safe='')}/stat/{_key_path(key)}")

    async def presigned_url(self, bucket: str, key: str, expiry: int = 3600) -> str:
        data = await self._request(
            "GET",
            f"/buckets/{quote(bucket, safe='')}/presigned/{_key_path(key)}",
            params={"expiry": expiry},
        )
        return data["url"]

    async def presigned_urls(self, bucket: str, keys: List[str], expiry: int = 3600) -> Dict[str, Optional[str]]:
        return await self._request(
            "POST",
            f"/buckets/{quote(bucket, safe='')}/presigned-batch",
            json={"keys": list(keys), "expiry": expiry},
        )

    async def create_folder(self, bucket: str, folder_name: str) -> Dict[str, Any]:
        return await self._request("POST", f"/buckets/{quote(bucket, safe='')}/folder", json={"folderName": folder_name})

    # -----------------------------------------------------------------
    # Direct links (fetched by the browser itself)
    # -----------------------------------------------------------------

    def preview_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}/preview/{quote(bucket, safe='')}/{_key_path(key)}"

    def download_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}/buckets/{quote(bucket, safe='')}/download/{_key_path(key)}"
