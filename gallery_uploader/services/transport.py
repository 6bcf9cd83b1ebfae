"""
Storage Transport - Single Responsibility: move bytes to object storage.

Talks to a Firebase-Storage-style REST endpoint:
    POST {base_url}/v0/b/{bucket}/o?name={key}
and builds a tokenized download URL from the response.
"""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Dict, Optional
from urllib.parse import quote

import httpx

from ..errors import TransportError
from ..protocols import ProgressCallback

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_URL = "https://firebasestorage.googleapis.com"


class TransferHandle:
    """Handle for one running transfer."""

    def __init__(self, key: str, task: asyncio.Task):
        self.key = key
        self._task = task
        self._cancelled = False

    @property
    def done(self) -> bool:
        return self._task.done()

    async def result(self) -> str:
        try:
            return await self._task
        except asyncio.CancelledError:
            if self._cancelled:
                raise TransportError(f"Transfer of {self.key} was cancelled")
            raise

    def cancel(self) -> None:
        self._cancelled = True
        if not self._task.done():
            self._task.cancel()


class ObjectStorageTransport:
    """
    HTTP transport for object storage uploads.

    Usage:
        async with ObjectStorageTransport(bucket, base_url=base_url, token=token) as transport:
            handle = transport.start_transfer(key, payload, "image/jpeg", on_progress)
            url = await handle.result()
    """

    PIECE_SIZE = 256 * 1024

    def __init__(
        self,
        bucket: str,
        base_url: str = DEFAULT_STORAGE_URL,
        token: Optional[str] = None,
        timeout: float = 60,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not bucket:
            raise ValueError("A storage bucket is required")
        self._bucket = bucket
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        if self._client is None:
            headers: Dict[str, str] = {}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=headers,
            )
        return self

    async def __aexit__(self, *args):
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    def download_url(self, key: str, token: Optional[str] = None) -> str:
        url = f"{self._base_url}/v0/b/{self._bucket}/o/{quote(key, safe='')}?alt=media"
        if token:
            url += f"&token={token}"
        return url

    def start_transfer(
        self,
        key: str,
        payload: bytes,
        content_type: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> TransferHandle:
        if not self._client:
            raise RuntimeError("ObjectStorageTransport not initialized. Use 'async with' context.")

        task = asyncio.get_running_loop().create_task(
            self._upload(key, payload, content_type, progress_callback)
        )
        return TransferHandle(key, task)

    async def _upload(
        self,
        key: str,
        payload: bytes,
        content_type: str,
        progress_callback: Optional[ProgressCallback],
    ) -> str:
        total = len(payload)

        async def body() -> AsyncIterator[bytes]:
            sent = 0
            for start in range(0, total, self.PIECE_SIZE):
                piece = payload[start:start + self.PIECE_SIZE]
                yield piece
                sent += len(piece)
                if progress_callback:
                    progress_callback(sent, total)

        try:
            response = await self._client.post(
                f"/v0/b/{self._bucket}/o",
                params={"name": key},
                content=body(),
                headers={"Content-Type": content_type, "Content-Length": str(total)},
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"Transfer of {key} failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            raise TransportError(
                f"Storage error {response.status_code} for {key}: {detail}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(f"Invalid storage response for {key}") from exc

        token = (data.get("downloadTokens") or "").split(",")[0]
        logger.debug(f"[transport] Stored {key} ({total} bytes)")
        return self.download_url(data.get("name") or key, token or None)
