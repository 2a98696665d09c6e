"""Data models for the fetch → extract pipeline."""

from __future__ import annotations

import codecs
import enum
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, List, Optional

from ird_proxy.errors import CorruptContentError


@dataclass(frozen=True)
class NormalizedUrl:
    """An absolute ``https`` URL known to belong to the allowed domain.

    Only :meth:`ird_proxy.scraper.url_guard.UrlGuard.validate` builds these.
    """

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass
class RawPage:
    """The raw HTTP response for a single URL fetch."""

    url: str
    final_url: str
    body: bytes
    status_code: int
    encoding: Optional[str] = None
    user_agent: str = ""
    elapsed_ms: int = 0

    @property
    def size_bytes(self) -> int:
        return len(self.body)

    @cached_property
    def text(self) -> str:
        """Decode :attr:`body` (once).

        Raises:
            CorruptContentError: If the bytes are not valid in the declared
                charset (or UTF-8 when none / an unknown one was declared).
        """
        encoding = self.encoding or "utf-8"
        try:
            codecs.lookup(encoding)
        except LookupError:
            encoding = "utf-8"
        try:
            return self.body.decode(encoding)
        except UnicodeDecodeError as exc:
            raise CorruptContentError(
                f"Response body is not valid {encoding}: {exc.reason}"
            ) from exc


class Tier(str, enum.Enum):
    """Which extraction strategy produced a result."""

    STRUCTURED = "structured"
    PATTERN_MATCHED = "pattern_matched"
    RAW_ONLY = "raw_only"


@dataclass
class Statistics:
    links: int = 0
    images: int = 0
    tables: int = 0
    lists: int = 0
    forms: int = 0
    size_bytes: int = 0
    size_kb: float = 0.0

    @classmethod
    def for_size(cls, size_bytes: int, **counts: int) -> "Statistics":
        return cls(size_bytes=size_bytes, size_kb=round(size_bytes / 1024, 2), **counts)


@dataclass
class LinkSample:
    text: str
    href: str


@dataclass
class TableSample:
    row_count: int
    sample_rows: List[List[str]] = field(default_factory=list)


@dataclass
class ExtractionResult:
    """Normalized summary of one page.

    ``page_type``, ``raw_html_preview``, ``text_preview`` and ``final_url``
    are filled in by the pipeline after a strategy succeeds, whichever one it
    was.  ``fetched_at`` is stamped by the service before caching.
    """

    tier: Tier
    title: str
    description: str
    statistics: Statistics
    important_links: List[LinkSample] = field(default_factory=list)
    tables: List[TableSample] = field(default_factory=list)
    page_type: str = "general"
    raw_html_preview: str = ""
    text_preview: str = ""
    note: Optional[str] = None
    final_url: str = ""
    fetched_at: str = ""

    def to_data(self, url_analyzed: str) -> dict[str, Any]:
        """Render the ``data`` block of the API response."""
        structured: dict[str, Any] = {
            "important_links": [
                {"text": link.text, "href": link.href} for link in self.important_links
            ],
            "tables": [
                {"row_count": t.row_count, "sample_rows": t.sample_rows}
                for t in self.tables
            ],
            "detected_page_type": self.page_type,
        }
        if self.note:
            structured["note"] = self.note
        stats = self.statistics
        return {
            "metadata": {
                "title": self.title,
                "description": self.description,
                "page_type": self.page_type,
                "extraction_method": self.tier.value,
                "url_analyzed": url_analyzed,
            },
            "statistics": {
                "links": stats.links,
                "images": stats.images,
                "tables": stats.tables,
                "lists": stats.lists,
                "forms": stats.forms,
                "size_bytes": stats.size_bytes,
                "size_kb": stats.size_kb,
            },
            "structured_data": structured,
            "raw_preview": {
                "html_first_500": self.raw_html_preview,
                "text_first_500": self.text_preview,
            },
        }


@dataclass(frozen=True)
class CacheEntry:
    """One cached result.  Replaced or deleted whole, never edited."""

    key: str
    value: ExtractionResult
    created_at: float
