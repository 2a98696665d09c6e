"""FastAPI application factory.

Lifespan
--------
On startup the app configures logging and builds one :class:`ProxyService`
(shared across all requests via ``request.app.state.service``).  Its cache
lives as long as the process does.

Routers
-------
    /api/ird/proxy   : POST extraction, GET capability descriptor,
                       DELETE /cache to empty the cache
    /api/ird/docs    : documentation descriptor
    /api/health      : liveness + cache statistics
"""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ird_proxy import __version__
from ird_proxy.config import settings
from ird_proxy.errors import MalformedUrlError
from ird_proxy.logging_config import configure_logging
from ird_proxy.service import ProxyOutcome, ProxyService, utc_now

from ird_proxy.api.routers import docs as docs_router
from ird_proxy.api.routers import health as health_router
from ird_proxy.api.routers import proxy as proxy_router

logger = structlog.get_logger(__name__)


def create_app(service: Optional[ProxyService] = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance.

    Args:
        service: Pre-built service to serve requests with.  Tests pass one
            wired to fakes; by default it is built from ``settings``.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level)
        app.state.service = service or ProxyService.from_settings(settings)
        logger.info(
            "proxy_started",
            allowed_domain=app.state.service.guard.allowed_domain,
            cache_ttl_seconds=app.state.service.cache.ttl_seconds,
        )
        try:
            yield
        finally:
            app.state.service.cache.clear()

    app = FastAPI(
        title="I.R.D. Proxy API",
        description=(
            "Fetches pages from a single allowed domain and returns a "
            "normalized summary: title, description, element counts, "
            "important links and table samples.  Results are cached."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next: Callable) -> Response:
        """Bind a request id into the log context and log each response."""
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=str(uuid.uuid4()),
            method=request.method,
            path=request.url.path,
        )
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        log_fn = logger.warning if response.status_code >= 400 else logger.info
        log_fn("request_completed", status_code=response.status_code, duration_ms=elapsed_ms)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Answer malformed request bodies with the proxy's 400 error shape."""
        error = MalformedUrlError("Request body must be JSON like {\"url\": \"https://...\"}")
        outcome = ProxyOutcome(success=False, timestamp=utc_now(), error=error)
        return JSONResponse(status_code=400, content=outcome.to_payload())

    app.include_router(proxy_router.router, prefix="/api/ird/proxy", tags=["proxy"])
    app.include_router(docs_router.router, prefix="/api/ird/docs", tags=["docs"])
    app.include_router(health_router.router, prefix="/api/health", tags=["health"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn ird_proxy.api.app:app --reload
app = create_app()
