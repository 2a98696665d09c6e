"""Tier-independent derivations: page-type classification and raw previews."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

PREVIEW_CHARS = 500

# Checked in order; the first type with a keyword in the URL path or title wins.
_PAGE_TYPE_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("player", ("player", "jugador")),
    ("team", ("team", "equipo", "club")),
    ("tactic", ("tactic", "táctica", "tactica")),
    ("formation", ("formation", "formación", "formacion")),
    ("database", ("database", "/db", "base de datos")),
]

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def classify_page(url: str, title: str) -> str:
    """Return ``player``, ``team``, ``tactic``, ``formation``, ``database`` or ``general``."""
    path = urlsplit(url).path.lower() if url else ""
    haystack = f"{path} {title.lower()}"
    for page_type, keywords in _PAGE_TYPE_KEYWORDS:
        if any(keyword in haystack for keyword in keywords):
            return page_type
    return "general"


def html_preview(html: str, limit: int = PREVIEW_CHARS) -> str:
    return html[:limit]


def text_preview(html: str, limit: int = PREVIEW_CHARS) -> str:
    """First *limit* characters of visible-ish text: scripts, styles and tags removed."""
    text = _SCRIPT_STYLE_RE.sub(" ", html)
    text = _COMMENT_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    return _WS_RE.sub(" ", text).strip()[:limit]
