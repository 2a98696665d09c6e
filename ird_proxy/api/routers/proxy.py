"""Proxy endpoints.

Routes
------
POST   /api/ird/proxy          Body: {"url": "https://efootballhub.net/..."}
GET    /api/ird/proxy          Capability descriptor
DELETE /api/ird/proxy/cache    Empty the result cache
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ird_proxy import __version__
from ird_proxy.service import ProxyService

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ProxyRequest(BaseModel):
    # Optional so a missing url gets the proxy's own 400 rather than a 422.
    url: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _service(request: Request) -> ProxyService:
    return request.app.state.service


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("")
async def proxy(body: ProxyRequest, request: Request) -> JSONResponse:
    """Fetch (or serve from cache) and summarise one page of the allowed domain.

    Returns 200 with the summary, 400 for a rejected URL and 500 for an
    upstream failure; the body always carries ``success`` and ``timestamp``.
    """
    outcome = await _service(request).handle(body.url)
    return JSONResponse(status_code=outcome.status_code, content=outcome.to_payload())


@router.get("")
def describe(request: Request) -> dict[str, Any]:
    """Static description of what the POST endpoint accepts and returns."""
    service = _service(request)
    domain = service.guard.allowed_domain
    return {
        "name": "I.R.D. Proxy API",
        "version": __version__,
        "status": "operational",
        "allowed_domain": domain,
        "endpoints": {
            "POST /api/ird/proxy": f"Extract a summary of a page on {domain}",
            "GET /api/ird/proxy": "This descriptor",
            "DELETE /api/ird/proxy/cache": "Empty the result cache",
        },
        "features": [
            "DOM extraction with pattern-matching and raw fallbacks",
            f"Result cache ({round(service.cache.ttl_seconds / 60, 2):g} minutes, "
            f"{service.cache.max_size} entries)",
            "Rotating User-Agent",
            f"Timeout {service.fetcher.timeout:g} seconds",
        ],
        "example": {"method": "POST", "body": {"url": f"https://{domain}/"}},
    }


@router.delete("/cache")
def clear_cache(request: Request) -> dict[str, Any]:
    """Drop every cached result."""
    removed = _service(request).cache.clear()
    return {"success": True, "removed": removed}
