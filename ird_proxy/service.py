"""Request orchestration: guard → cache → fetch → extract → cache.

:meth:`ProxyService.handle` never raises.  Every failure comes back as a
:class:`ProxyOutcome` with ``success=False`` and the error it carries.

Concurrent misses for the same URL are coalesced: the first caller fetches
and the others await its in-flight future, receiving the same result or the
same error.  A semaphore bounds how many outbound fetches run at once.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog

from ird_proxy.cache import Cache
from ird_proxy.config import Settings, settings as default_settings
from ird_proxy.errors import FetchTimeoutError, ProxyError
from ird_proxy.scraper.extractor import ExtractionPipeline
from ird_proxy.scraper.fetcher import FetchClient
from ird_proxy.scraper.models import ExtractionResult, RawPage
from ird_proxy.scraper.url_guard import UrlGuard

logger = structlog.get_logger(__name__)

HIT = "HIT"
MISS = "MISS"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ProxyOutcome:
    """Per-request envelope; built fresh for every call and never stored."""

    success: bool
    timestamp: str
    url: Optional[str] = None
    url_analyzed: Optional[str] = None
    result: Optional[ExtractionResult] = None
    error: Optional[ProxyError] = None
    cache_status: Optional[str] = None
    performance: dict[str, Any] = field(default_factory=dict)
    cache_info: dict[str, Any] = field(default_factory=dict)

    @property
    def status_code(self) -> int:
        if self.success:
            return 200
        return self.error.status_code if self.error is not None else 500

    def to_payload(self) -> dict[str, Any]:
        """Render the JSON body returned to API and CLI callers."""
        if self.success and self.result is not None:
            return {
                "success": True,
                "url": self.url,
                "data": self.result.to_data(url_analyzed=self.url_analyzed or self.url or ""),
                "cache": self.cache_status,
                "performance": self.performance,
                "cache_info": self.cache_info,
                "timestamp": self.timestamp,
            }

        error = self.error or ProxyError("Unknown error")
        payload: dict[str, Any] = {
            "success": False,
            "error": error.message,
            "error_type": error.kind,
            "recommendation": error.hint,
            "timestamp": self.timestamp,
        }
        details = error.details()
        if details:
            payload["error_details"] = details
        return payload


class ProxyService:
    """Serve normalized page summaries for one allowed domain."""

    def __init__(
        self,
        guard: UrlGuard,
        cache: Cache,
        fetcher: FetchClient,
        pipeline: Optional[ExtractionPipeline] = None,
        max_concurrent_fetches: int = 4,
        now: Callable[[], str] = utc_now,
    ) -> None:
        self.guard = guard
        self.cache = cache
        self.fetcher = fetcher
        self.pipeline = pipeline or ExtractionPipeline()
        self._fetch_slots = asyncio.Semaphore(max_concurrent_fetches)
        self._in_flight: dict[str, asyncio.Future[ExtractionResult]] = {}
        self._now = now

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "ProxyService":
        """Build a service wired from :data:`ird_proxy.config.settings`."""
        config = config or default_settings
        return cls(
            guard=UrlGuard(config.allowed_domain, allow_subdomains=config.allow_subdomains),
            cache=Cache(ttl_seconds=config.cache_ttl_seconds, max_size=config.cache_max_size),
            fetcher=FetchClient(timeout=config.request_timeout, user_agents=config.user_agents),
            max_concurrent_fetches=config.max_concurrent_fetches,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def handle(self, raw_url: object) -> ProxyOutcome:
        """Validate, serve from cache or fetch + extract, and wrap the result."""
        start = time.perf_counter()
        try:
            key = str(self.guard.validate(raw_url))
        except ProxyError as exc:
            logger.info("url_rejected", url=raw_url, error_type=exc.kind, error=exc.message)
            return self._failure(exc)

        try:
            return await self._serve(key, start)
        except ProxyError as exc:
            logger.warning("proxy_failed", url=key, error_type=exc.kind, error=exc.message)
            return self._failure(exc)
        except Exception as exc:
            logger.exception("proxy_unexpected_error", url=key)
            return self._failure(ProxyError(f"Unexpected error: {exc}"))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _serve(self, key: str, start: float) -> ProxyOutcome:
        entry = self.cache.get_entry(key)
        if entry is not None:
            logger.info("cache_hit", url=key, tier=entry.value.tier.value)
            return self._hit(key, entry.value, start)

        pending = self._in_flight.get(key)
        if pending is not None:
            # Share the in-flight fetch; its ProxyError is re-raised here.
            logger.info("fetch_joined", url=key)
            result = await asyncio.shield(pending)
            return self._hit(key, result, start)

        future: asyncio.Future[ExtractionResult] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            outcome = await self._fetch_and_store(key, start)
        except Exception as exc:
            future.set_exception(exc)
            # Mark the exception retrieved; there may be no waiters.
            future.exception()
            raise
        except asyncio.CancelledError:
            future.set_exception(ProxyError("The upstream fetch was cancelled"))
            future.exception()
            raise
        else:
            future.set_result(outcome.result)
            return outcome
        finally:
            del self._in_flight[key]

    def _hit(self, key: str, result: ExtractionResult, start: float) -> ProxyOutcome:
        return self._success(
            result,
            HIT,
            performance={
                "response_time_ms": self._elapsed_ms(start),
                "cache_status": HIT,
                "extraction_method": result.tier.value,
                "cached_at": result.fetched_at,
            },
            url_analyzed=key,
        )

    async def _fetch_page(self, key: str) -> RawPage:
        """Fetch *key* once a fetch slot is free.

        Waiting for the slot is bounded by the fetch timeout, so a queued
        request fails with :class:`FetchTimeoutError` instead of waiting
        behind an arbitrary number of slow fetches.
        """
        timeout = self.fetcher.timeout
        try:
            await asyncio.wait_for(self._fetch_slots.acquire(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("fetch_slot_timeout", url=key, timeout=timeout)
            raise FetchTimeoutError(
                f"Timeout: no fetch slot became free within {timeout:g} seconds",
                timeout,
            ) from exc
        try:
            return await self.fetcher.fetch(key)
        finally:
            self._fetch_slots.release()

    async def _fetch_and_store(self, key: str, start: float) -> ProxyOutcome:
        logger.info("cache_miss", url=key)
        page = await self._fetch_page(key)

        # Parsing is CPU-bound; keep it off the event loop.
        result = await asyncio.to_thread(self.pipeline.extract, page)
        result.fetched_at = self._now()
        self.cache.put(key, result)

        return self._success(
            result,
            MISS,
            performance={
                "response_time_ms": self._elapsed_ms(start),
                "fetch_time_ms": page.elapsed_ms,
                "user_agent_used": page.user_agent[:60],
                "cache_status": MISS,
                "extraction_method": result.tier.value,
            },
            url_analyzed=key,
        )

    def _success(
        self,
        result: ExtractionResult,
        cache_status: str,
        performance: dict[str, Any],
        url_analyzed: str,
    ) -> ProxyOutcome:
        return ProxyOutcome(
            success=True,
            timestamp=self._now(),
            url=result.final_url or url_analyzed,
            url_analyzed=url_analyzed,
            result=result,
            cache_status=cache_status,
            performance=performance,
            cache_info={
                "items_in_cache": len(self.cache),
                "ttl_minutes": round(self.cache.ttl_seconds / 60, 2),
            },
        )

    def _failure(self, error: ProxyError) -> ProxyOutcome:
        return ProxyOutcome(success=False, timestamp=self._now(), error=error)

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)
