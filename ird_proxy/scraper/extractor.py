"""Content extraction: turns a :class:`RawPage` into an :class:`ExtractionResult`.

Three strategies are tried in order:

1. :class:`StructuredStrategy`: BeautifulSoup DOM traversal.
2. :class:`PatternStrategy`: regular expressions over the raw markup.
3. :class:`RawOnlyStrategy`: size and previews only, never fails.

A strategy signals that it cannot handle a page by raising
:class:`ExtractionError`; the pipeline logs it and moves on.  Both parsing
strategies apply the same bounds so callers always see the same shape.
"""

from __future__ import annotations

import html as html_lib
import re
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup

from ird_proxy.errors import CorruptContentError, ExtractionError
from ird_proxy.scraper.classify import PREVIEW_CHARS, classify_page, html_preview, text_preview
from ird_proxy.scraper.models import (
    ExtractionResult,
    LinkSample,
    RawPage,
    Statistics,
    TableSample,
    Tier,
)

logger = structlog.get_logger(__name__)

MAX_LINKS = 10
MAX_TABLES = 3
MAX_TABLE_ROWS = 10
MAX_TITLE_CHARS = 200
MAX_DESCRIPTION_CHARS = 300
MAX_LINK_TEXT_CHARS = 80
UNTITLED = "Untitled"

_WS_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]*>")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _clean(text: Optional[str], limit: int) -> str:
    """Collapse whitespace, trim and truncate."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()[:limit]


def _strip_tags(fragment: str) -> str:
    return html_lib.unescape(_TAG_RE.sub(" ", fragment))


def _link_sample(text: str, href: str, base_url: str) -> Optional[LinkSample]:
    """Return a :class:`LinkSample` if the anchor is worth reporting.

    Kept when the visible text is between 4 and 99 characters and the href
    points somewhere other than a fragment or a ``javascript:`` handler.
    Relative hrefs are resolved against *base_url*.
    """
    text = _WS_RE.sub(" ", text).strip()
    href = href.strip()
    if not href or href.startswith("#") or href.lower().startswith(("javascript:", "mailto:")):
        return None
    if not 3 < len(text) < 100:
        return None
    return LinkSample(text=text[:MAX_LINK_TEXT_CHARS], href=urljoin(base_url, href))


def _collect_links(candidates: Iterable[tuple[str, str]], base_url: str) -> List[LinkSample]:
    """First :data:`MAX_LINKS` acceptable links, deduplicated by resolved href."""
    seen: set[str] = set()
    links: List[LinkSample] = []
    for text, href in candidates:
        sample = _link_sample(text, href, base_url)
        if sample is None or sample.href in seen:
            continue
        seen.add(sample.href)
        links.append(sample)
        if len(links) >= MAX_LINKS:
            break
    return links


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class ExtractionStrategy(ABC):
    """One tier of the extraction fallback chain."""

    tier: Tier

    def attempt(self, page: RawPage) -> ExtractionResult:
        """Extract *page* or raise :class:`ExtractionError`.

        :class:`CorruptContentError` is not an extraction failure and is
        re-raised unchanged.
        """
        try:
            return self._extract(page, page.text)
        except (ExtractionError, CorruptContentError):
            raise
        except Exception as exc:
            raise ExtractionError(f"{self.tier.value} extraction failed: {exc}") from exc

    @abstractmethod
    def _extract(self, page: RawPage, html: str) -> ExtractionResult:
        """Tier-specific extraction."""


class StructuredStrategy(ExtractionStrategy):
    """DOM traversal with BeautifulSoup."""

    tier = Tier.STRUCTURED

    def _extract(self, page: RawPage, html: str) -> ExtractionResult:
        soup = BeautifulSoup(html, "html.parser")
        if soup.find() is None:
            raise ExtractionError("document contains no elements")

        anchors = soup.find_all("a", href=True)
        statistics = Statistics.for_size(
            page.size_bytes,
            links=len(anchors),
            images=len(soup.find_all("img")),
            tables=len(soup.find_all("table")),
            lists=len(soup.find_all(["ul", "ol"])),
            forms=len(soup.find_all("form")),
        )
        links = _collect_links(
            ((a.get_text(" "), a["href"]) for a in anchors), page.final_url
        )
        tables = [self._table(t) for t in soup.find_all("table", limit=MAX_TABLES)]

        return ExtractionResult(
            tier=self.tier,
            title=self._title(soup) or UNTITLED,
            description=self._description(soup),
            statistics=statistics,
            important_links=links,
            tables=tables,
        )

    @staticmethod
    def _meta(soup: BeautifulSoup, attr: str, value: str) -> str:
        tag = soup.find("meta", attrs={attr: re.compile(rf"^{re.escape(value)}$", re.I)})
        if tag is None:
            return ""
        content = tag.get("content")
        return content if isinstance(content, str) else ""

    def _title(self, soup: BeautifulSoup) -> str:
        if soup.title is not None:
            title = _clean(soup.title.get_text(" "), MAX_TITLE_CHARS)
            if title:
                return title
        title = _clean(self._meta(soup, "property", "og:title"), MAX_TITLE_CHARS)
        if title:
            return title
        h1 = soup.find("h1")
        return _clean(h1.get_text(" "), MAX_TITLE_CHARS) if h1 is not None else ""

    def _description(self, soup: BeautifulSoup) -> str:
        return _clean(
            self._meta(soup, "name", "description")
            or self._meta(soup, "property", "og:description"),
            MAX_DESCRIPTION_CHARS,
        )

    @staticmethod
    def _table(table) -> TableSample:  # type: ignore[no-untyped-def]
        rows = table.find_all("tr")
        sample = [
            [_clean(cell.get_text(" "), 200) for cell in row.find_all(["th", "td"])]
            for row in rows[:MAX_TABLE_ROWS]
        ]
        return TableSample(row_count=len(rows), sample_rows=sample)


class PatternStrategy(ExtractionStrategy):
    """Regular-expression extraction over the raw markup."""

    tier = Tier.PATTERN_MATCHED

    _ANY_TAG = re.compile(r"<[a-zA-Z][^>]*>")
    _TITLE = re.compile(r"<title[^>]*>([\s\S]*?)</title>", re.I)
    _H1 = re.compile(r"<h1[^>]*>([\s\S]*?)</h1>", re.I)
    _META = re.compile(r"<meta\s[^>]*>", re.I)
    _META_ATTR = re.compile(r"""([a-zA-Z:-]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""")
    _ANCHOR = re.compile(r"""<a\s[^>]*?href\s*=\s*["']([^"']*)["'][^>]*>([\s\S]*?)</a>""", re.I)
    _TABLE = re.compile(r"<table[\s>][\s\S]*?</table>", re.I)
    _ROW = re.compile(r"<tr[\s>][\s\S]*?</tr>", re.I)
    _CELL = re.compile(r"<t[dh](?:\s[^>]*)?>([\s\S]*?)</t[dh]>", re.I)

    _COUNTS = {
        "links": re.compile(r"<a\s[^>]*href\s*=", re.I),
        "images": re.compile(r"<img[\s/>]", re.I),
        "tables": re.compile(r"<table[\s>]", re.I),
        "lists": re.compile(r"<(?:ul|ol)[\s>]", re.I),
        "forms": re.compile(r"<form[\s>]", re.I),
    }

    def _extract(self, page: RawPage, html: str) -> ExtractionResult:
        if not self._ANY_TAG.search(html):
            raise ExtractionError("no markup found")

        statistics = Statistics.for_size(
            page.size_bytes,
            **{name: len(pattern.findall(html)) for name, pattern in self._COUNTS.items()},
        )
        links = _collect_links(
            ((_strip_tags(m.group(2)), html_lib.unescape(m.group(1)))
             for m in self._ANCHOR.finditer(html)),
            page.final_url,
        )
        tables = [self._table(m.group(0)) for m in self._TABLE.finditer(html)][:MAX_TABLES]

        return ExtractionResult(
            tier=self.tier,
            title=self._title(html) or UNTITLED,
            description=self._description(html),
            statistics=statistics,
            important_links=links,
            tables=tables,
        )

    def _title(self, html: str) -> str:
        for pattern in (self._TITLE, self._H1):
            match = pattern.search(html)
            if match:
                title = _clean(_strip_tags(match.group(1)), MAX_TITLE_CHARS)
                if title:
                    return title
        return ""

    def _meta_content(self, html: str, attr: str, value: str) -> str:
        for tag in self._META.findall(html):
            attrs = {
                name.lower(): double if double else single
                for name, double, single in self._META_ATTR.findall(tag)
            }
            if attrs.get(attr, "").lower() == value:
                return html_lib.unescape(attrs.get("content", ""))
        return ""

    def _description(self, html: str) -> str:
        return _clean(
            self._meta_content(html, "name", "description")
            or self._meta_content(html, "property", "og:description"),
            MAX_DESCRIPTION_CHARS,
        )

    def _table(self, fragment: str) -> TableSample:
        rows = self._ROW.findall(fragment)
        sample = [
            [_clean(_strip_tags(cell), 200) for cell in self._CELL.findall(row)]
            for row in rows[:MAX_TABLE_ROWS]
        ]
        return TableSample(row_count=len(rows), sample_rows=sample)


class RawOnlyStrategy(ExtractionStrategy):
    """Last resort: report size and a preview of the undigested content."""

    tier = Tier.RAW_ONLY

    def _extract(self, page: RawPage, html: str) -> ExtractionResult:
        return ExtractionResult(
            tier=self.tier,
            title="unparsed",
            description="",
            statistics=Statistics.for_size(page.size_bytes),
            note=(
                "HTML parsing failed; only the raw content preview is available: "
                + html[:PREVIEW_CHARS]
            ),
        )


def default_strategies() -> List[ExtractionStrategy]:
    return [StructuredStrategy(), PatternStrategy(), RawOnlyStrategy()]


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class ExtractionPipeline:
    """Run strategies in order and return the first success.

    Never raises for parsing problems.  :class:`CorruptContentError` (the
    body cannot be decoded at all) does propagate; the caller turns it into
    an error response.
    """

    def __init__(self, strategies: Optional[Sequence[ExtractionStrategy]] = None) -> None:
        self.strategies: List[ExtractionStrategy] = (
            list(strategies) if strategies is not None else default_strategies()
        )

    def extract(self, page: RawPage) -> ExtractionResult:
        html = page.text

        result: Optional[ExtractionResult] = None
        for strategy in self.strategies:
            try:
                result = strategy.attempt(page)
                break
            except ExtractionError as exc:
                logger.warning(
                    "extraction_tier_failed",
                    tier=strategy.tier.value,
                    url=page.final_url,
                    error=str(exc),
                )
        if result is None:
            result = RawOnlyStrategy().attempt(page)

        result.page_type = classify_page(page.final_url, result.title)
        result.raw_html_preview = html_preview(html)
        result.text_preview = text_preview(html)
        result.final_url = page.final_url
        logger.debug("extraction_ok", tier=result.tier.value, url=page.final_url)
        return result


def extract_content(page: RawPage) -> ExtractionResult:
    """Extract *page* with the default strategy chain."""
    return ExtractionPipeline().extract(page)
