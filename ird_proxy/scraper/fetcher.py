"""Async HTTP fetcher with per-call User-Agent rotation and a hard timeout."""

from __future__ import annotations

import asyncio
import random
import time
from typing import Optional, Sequence

import httpx
import structlog

from ird_proxy.errors import FetchTimeoutError, HttpStatusError, NetworkError
from ird_proxy.scraper.models import RawPage

logger = structlog.get_logger(__name__)

# Browser-like headers sent with every request; only the User-Agent rotates.
_BASE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
    "Referer": "https://www.google.com/",
}


class FetchClient:
    """Fetch one page per call.

    Args:
        timeout: Hard limit in seconds for the whole request, redirects
            included.  Exceeding it cancels the request.
        user_agents: Pool to pick a User-Agent from on every call.
        transport: Optional ``httpx`` transport (tests use ``httpx.MockTransport``).
        rng: Source of randomness for the User-Agent choice.
    """

    def __init__(
        self,
        timeout: float,
        user_agents: Sequence[str],
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        if not user_agents:
            raise ValueError("user_agents must not be empty")
        self.timeout = timeout
        self.user_agents = tuple(user_agents)
        self._transport = transport
        self._rng = rng or random.Random()

    def pick_user_agent(self) -> str:
        return self._rng.choice(self.user_agents)

    async def fetch(self, url: str) -> RawPage:
        """Fetch *url* and return a :class:`RawPage`.

        Redirects are followed; ``RawPage.final_url`` is where they ended.

        Raises:
            FetchTimeoutError: The request did not finish within ``timeout``.
            HttpStatusError: The final response was not 2xx.
            NetworkError: Any other transport failure.
        """
        user_agent = self.pick_user_agent()
        headers = {**_BASE_HEADERS, "User-Agent": user_agent}
        start = time.perf_counter()

        try:
            response = await asyncio.wait_for(self._get(url, headers), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning("fetch_timeout", url=url, timeout=self.timeout)
            raise FetchTimeoutError(
                f"Timeout: the page took longer than {self.timeout:g} seconds",
                self.timeout,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("fetch_network_error", url=url, error=str(exc))
            raise NetworkError(f"Network error: {exc}") from exc

        elapsed_ms = int((time.perf_counter() - start) * 1000)

        if not response.is_success:
            logger.warning("fetch_http_status", url=url, status_code=response.status_code)
            raise HttpStatusError(response.status_code, response.reason_phrase)

        logger.info(
            "fetch_ok",
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            size_bytes=len(response.content),
            elapsed_ms=elapsed_ms,
        )
        return RawPage(
            url=url,
            final_url=str(response.url),
            body=response.content,
            status_code=response.status_code,
            encoding=response.charset_encoding,
            user_agent=user_agent,
            elapsed_ms=elapsed_ms,
        )

    async def _get(self, url: str, headers: dict[str, str]) -> httpx.Response:
        # The client is closed on exit, including on cancellation by wait_for,
        # which releases the in-flight connection.
        async with httpx.AsyncClient(
            headers=headers,
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            return await client.get(url)
