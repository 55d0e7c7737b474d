from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx

from webfetch_lib.config import DEFAULT_FETCH_TIMEOUT, DEFAULT_USER_AGENT
from webfetch_lib.errors import RetrievalError

LOGGER = logging.getLogger("webfetch.fetcher")


@dataclass(frozen=True)
class RetrievedPayload:
    url: str
    status_code: int
    text: str
    content_type: str | None = None


class ContentFetcher:
    """Single-attempt HTTP GET with an overall deadline. No retries."""

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    async def retrieve(self, url: str, timeout: float = DEFAULT_FETCH_TIMEOUT) -> RetrievedPayload:
        LOGGER.info("Fetching %s (timeout %.1fs)", url, timeout)
        try:
            async with self._client(timeout) as client:
                response = await asyncio.wait_for(client.get(url), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            LOGGER.warning("Fetch of %s timed out after %.1fs", url, timeout)
            raise RetrievalError(
                RetrievalError.TIMEOUT, f"Request timed out after {timeout:g} seconds"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            LOGGER.warning("Fetch of %s failed: %s", url, exc)
            raise RetrievalError(RetrievalError.NETWORK, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            LOGGER.warning("Fetch of %s returned HTTP %s", url, response.status_code)
            raise RetrievalError(
                RetrievalError.STATUS,
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
            )
        return RetrievedPayload(
            url=str(response.url),
            status_code=response.status_code,
            text=response.text,
            content_type=response.headers.get("content-type"),
        )
