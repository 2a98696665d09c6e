"""Error taxonomy for the proxy.

Every failure that can reach a caller is a :class:`ProxyError` subclass with
a stable ``kind`` tag, the HTTP status the API layer should answer with, and
a short remediation hint.  :class:`ExtractionError` is different: it is
raised by extraction strategies and always handled inside the pipeline.
"""

from __future__ import annotations

from typing import Any


class ProxyError(Exception):
    """Base class for errors surfaced to proxy callers."""

    kind = "internal"
    status_code = 500
    hint = "Check the URL and retry later."

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, Any]:
        """Extra machine-readable context for the error payload."""
        return {}


# ---------------------------------------------------------------------------
# Validation errors (rejected before any network call)
# ---------------------------------------------------------------------------

class MalformedUrlError(ProxyError):
    kind = "malformed_url"
    status_code = 400
    hint = "Send a JSON body like {\"url\": \"https://<allowed domain>/...\"}."


class InvalidDomainError(ProxyError):
    kind = "invalid_domain"
    status_code = 400

    def __init__(self, message: str, allowed_domain: str) -> None:
        super().__init__(message)
        self.allowed_domain = allowed_domain
        self.hint = f"Only URLs on {allowed_domain} are accepted, e.g. https://{allowed_domain}/"

    def details(self) -> dict[str, Any]:
        return {"allowed_domain": self.allowed_domain}


# ---------------------------------------------------------------------------
# Fetch errors
# ---------------------------------------------------------------------------

class FetchTimeoutError(ProxyError):
    kind = "timeout"
    hint = "The upstream page is slow; retrying later may succeed."

    def __init__(self, message: str, timeout: float) -> None:
        super().__init__(message)
        self.timeout = timeout

    def details(self) -> dict[str, Any]:
        return {"timeout_seconds": self.timeout}


class NetworkError(ProxyError):
    kind = "network"
    hint = "The upstream host could not be reached; retrying later may succeed."


class HttpStatusError(ProxyError):
    kind = "http_status"

    def __init__(self, status_code: int, reason: str = "") -> None:
        message = f"HTTP {status_code}" + (f": {reason}" if reason else "")
        super().__init__(message)
        self.upstream_status = status_code
        if 400 <= status_code < 500:
            self.hint = "The upstream page rejected the request; verify the URL exists."
        else:
            self.hint = "The upstream server failed; retrying later may succeed."

    def details(self) -> dict[str, Any]:
        return {"status_code": self.upstream_status}


class CorruptContentError(ProxyError):
    kind = "corrupt_content"
    hint = "The upstream response could not be decoded as text."


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------

class ExtractionError(Exception):
    """Raised by an extraction strategy that cannot handle a page."""
