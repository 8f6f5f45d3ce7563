"""HTTP client service: managed httpx.AsyncClient plus the timeout/retry transport."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

# Headers to mimic a browser request
HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Connection": "keep-alive",
}

DEFAULT_TIMEOUT_MS = 10000


class HttpClientService:
    """Manages a global httpx.AsyncClient with connection pooling.

    *transport* is handed straight to httpx; tests pass an
    ``httpx.MockTransport`` to stand in for the upstream catalogs.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client: Optional[httpx.AsyncClient] = None
        self._transport = transport

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=HEADERS,
                timeout=httpx.Timeout(connect=30.0, read=60.0, write=30.0, pool=30.0),
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
            logger.info("Global HTTP client closed")

    async def fetch_with_timeout(
        self,
        url: str,
        headers: Optional[dict] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        retry: int = 0,
    ) -> httpx.Response:
        """GET *url*, aborting any attempt that runs longer than *timeout_ms*.

        A failed or aborted attempt is repeated unchanged, up to *retry* extra
        times, with no backoff.  When every attempt fails the last error is
        raised.  A non-2xx status is returned as-is; callers check it.
        """
        client = await self.get_client()
        timeout = max(timeout_ms, 1) / 1000
        attempts = max(retry, 0) + 1

        for attempt in range(attempts):
            try:
                return await asyncio.wait_for(client.get(url, headers=headers), timeout=timeout)
            except (httpx.HTTPError, asyncio.TimeoutError) as e:
                reason = "timeout" if isinstance(e, asyncio.TimeoutError) else f"{type(e).__name__}: {e}"
                remaining = attempts - attempt - 1
                if not remaining:
                    logger.warning(f"Request to {url} failed ({reason}), no retries left")
                    raise
                logger.warning(f"Request to {url} failed ({reason}), retrying ({remaining} left)")
