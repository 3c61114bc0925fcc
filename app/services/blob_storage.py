"""Client for the external blob store (Vercel Blob REST API)."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from app.core.config import Settings
from app.exceptions.assistant import BlobStorageError

logger = logging.getLogger(__name__)

BLOB_API_VERSION = "7"


class BlobStorageClient:
    """Put, fetch and delete objects in blob storage over the shared HTTP client."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str | None,
        api_url: str = "https://blob.vercel-storage.com",
    ):
        self.client = client
        self.token = token
        self.api_url = api_url.rstrip("/")

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> "BlobStorageClient":
        return cls(client=client, token=settings.blob_read_write_token, api_url=settings.blob_api_url)

    @property
    def is_configured(self) -> bool:
        return bool(self.token)

    def _headers(self) -> dict[str, str]:
        if not self.token:
            raise BlobStorageError("Blob storage is not configured")
        return {"authorization": f"Bearer {self.token}", "x-api-version": BLOB_API_VERSION}

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BlobStorageError(
                f"Blob storage returned HTTP {e.response.status_code}",
                upstream_status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise BlobStorageError(f"Blob storage request failed: {e}") from e
        return response

    async def put(self, pathname: str, content: bytes, content_type: str | None) -> dict[str, Any]:
        """Store ``content`` under ``pathname``; returns the blob descriptor including ``url``."""
        headers = self._headers()
        headers["x-content-type"] = content_type or "application/octet-stream"
        headers["x-add-random-suffix"] = "1"
        response = await self._send(
            "PUT", f"{self.api_url}/{quote(pathname)}", content=content, headers=headers
        )
        blob = response.json()
        logger.info(f"Stored blob {blob.get('pathname', pathname)} ({len(content)} bytes)")
        return blob

    async def download(self, url: str) -> bytes:
        response = await self._send("GET", url)
        return response.content

    async def delete(self, url: str) -> None:
        await self._send("POST", f"{self.api_url}/delete", json={"urls": [url]}, headers=self._headers())
        logger.info(f"Deleted blob {url}")
