"""Health endpoint.

Routes
------
GET /api/health
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

from ird_proxy import __version__
from ird_proxy.service import utc_now

router = APIRouter()


@router.get("")
def health(request: Request) -> dict[str, Any]:
    """Report liveness, cache occupancy and fetch limits."""
    service = request.app.state.service
    stats = service.cache.stats()
    return {
        "status": "healthy",
        "service": "I.R.D. Proxy System",
        "version": __version__,
        "timestamp": utc_now(),
        "endpoints": {
            "health": "/api/health",
            "proxy": "/api/ird/proxy",
            "docs": "/api/ird/docs",
        },
        "cache": {
            "size": stats["size"],
            "max_size": stats["max_size"],
            "ttl_seconds": stats["ttl_seconds"],
        },
        "limits": {
            "timeout_seconds": service.fetcher.timeout,
        },
    }
