"""Scraper package: URL guard, fetch & content extraction."""

from ird_proxy.scraper.extractor import ExtractionPipeline, extract_content
from ird_proxy.scraper.fetcher import FetchClient
from ird_proxy.scraper.models import ExtractionResult, NormalizedUrl, RawPage, Tier
from ird_proxy.scraper.url_guard import UrlGuard

__all__ = [
    "ExtractionPipeline",
    "ExtractionResult",
    "FetchClient",
    "NormalizedUrl",
    "RawPage",
    "Tier",
    "UrlGuard",
    "extract_content",
]
