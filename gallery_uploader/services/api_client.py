"""HTTP adapter for gallery API operations."""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx

from ..errors import APIError


class HTTPAPIClient:
    """
    HTTP client adapter for API calls.

    Implements IAPIClient protocol. Server errors and network failures are
    retried with a linear backoff; client errors are raised immediately.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        max_retries: int = 3,
        backoff: float = 0.5,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._max_retries = max_retries
        self._backoff = backoff
        self._token = token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=headers,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def post(self, endpoint: str, json: Dict) -> Any:
        return await self._request("POST", endpoint, json=json)

    async def get(self, endpoint: str) -> Any:
        return await self._request("GET", endpoint)

    async def _request(self, method: str, endpoint: str, json: Optional[Dict] = None) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPAPIClient not initialized. Use 'async with' context.")

        for attempt in range(self._max_retries):
            last_attempt = attempt == self._max_retries - 1
            try:
                response = await self._client.request(method, endpoint, json=json)
            except httpx.RequestError:
                if last_attempt:
                    raise
                await asyncio.sleep(self._backoff * (attempt + 1))
                continue

            if response.status_code >= 500 and not last_attempt:
                await asyncio.sleep(self._backoff * (attempt + 1))
                continue

            if response.status_code >= 400:
                try:
                    error_detail = response.json()
                except ValueError:
                    error_detail = response.text
                raise APIError(
                    f"API error {response.status_code} on {method} {endpoint}: {error_detail}",
                    status_code=response.status_code,
                )

            return response

        raise APIError(f"Failed to {method} {endpoint} after {self._max_retries} attempts")
