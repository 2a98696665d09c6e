"""Documentation descriptor for API consumers (including AI agents).

Routes
------
GET /api/ird/docs
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

from ird_proxy import __version__

router = APIRouter()


def build_documentation(allowed_domain: str, base_url: str = "") -> dict[str, Any]:
    """Return the documentation payload for a proxy restricted to *allowed_domain*."""
    proxy_url = f"{base_url}/api/ird/proxy"
    example_page = f"https://{allowed_domain}/players"
    return {
        "api_name": "I.R.D. Football Data Proxy",
        "description": f"Extracts structured summaries of pages on {allowed_domain}",
        "version": __version__,
        "endpoints": {
            "main": {
                "url": "/api/ird/proxy",
                "method": "POST",
                "request_format": {"url": f"string (e.g. {example_page})"},
                "response_structure": {
                    "success": "boolean",
                    "url": "string, the URL after redirects",
                    "data": {
                        "metadata": "title, description, page_type, extraction_method, url_analyzed",
                        "statistics": "element counts and size",
                        "structured_data": "important_links, tables, detected_page_type",
                        "raw_preview": "first 500 characters of HTML and of text",
                    },
                    "cache": "HIT or MISS",
                    "performance": "timings and the User-Agent used",
                    "timestamp": "ISO 8601 string",
                },
                "errors": {
                    "400": "url missing, malformed or outside the allowed domain",
                    "500": "timeout, network, upstream HTTP status or undecodable content",
                },
            },
            "describe": {"url": "/api/ird/proxy", "method": "GET"},
            "clear_cache": {"url": "/api/ird/proxy/cache", "method": "DELETE"},
            "health": {"url": "/api/health", "method": "GET"},
        },
        "extraction_methods": {
            "structured": "DOM traversal (preferred)",
            "pattern_matched": "regular expressions, used when DOM traversal fails",
            "raw_only": "size and preview only, used when both parsers fail",
        },
        "usage_examples": {
            "python": (
                "import httpx\n\n"
                f"resp = httpx.post('{proxy_url}', json={{'url': '{example_page}'}})\n"
                "data = resp.json()\n"
                "print(data['data']['metadata']['title'])\n"
            ),
            "curl": (
                f"curl -X POST {proxy_url} -H 'Content-Type: application/json' "
                f"-d '{{\"url\": \"{example_page}\"}}'"
            ),
        },
        "best_practices": [
            "Use 'structured_data' for quick analysis",
            "Check 'data.metadata.extraction_method' to know how reliable fields are",
            "Use the 'cache' field to tell fresh data from cached data",
        ],
    }


@router.get("")
def docs(request: Request) -> dict[str, Any]:
    base_url = str(request.base_url).rstrip("/")
    return build_documentation(request.app.state.service.guard.allowed_domain, base_url)
