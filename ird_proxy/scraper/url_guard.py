"""URL validation: only the configured domain may be proxied."""

from __future__ import annotations

import re
from urllib.parse import urlsplit, urlunsplit

from ird_proxy.errors import InvalidDomainError, MalformedUrlError
from ird_proxy.scraper.models import NormalizedUrl

_ACCEPTED_SCHEMES = {"http", "https"}
# Dot-separated labels of letters, digits and hyphens; no empty labels.
_HOST_RE = re.compile(r"[a-z0-9-]+(?:\.[a-z0-9-]+)*")


class UrlGuard:
    """Validate raw URLs against a single allowed domain.

    The host must equal ``allowed_domain`` or, when ``allow_subdomains`` is
    set, end with ``.<allowed_domain>``.  Accepted URLs are rewritten to
    ``https`` with a lower-cased host, no default port, no fragment and ``/``
    for an empty path; path and query are otherwise kept as sent.
    """

    def __init__(self, allowed_domain: str, allow_subdomains: bool = True) -> None:
        self.allowed_domain = allowed_domain.strip().lower().rstrip(".")
        self.allow_subdomains = allow_subdomains

    def host_allowed(self, host: str) -> bool:
        host = host.lower().rstrip(".")
        if host == self.allowed_domain:
            return True
        return self.allow_subdomains and host.endswith("." + self.allowed_domain)

    def validate(self, raw_url: object) -> NormalizedUrl:
        """Return the normalized form of *raw_url*.

        Raises:
            MalformedUrlError: Empty, non-string, non-http(s) or unparsable input,
                or a host that is not a valid hostname.
            InvalidDomainError: The host is not the allowed domain.
        """
        if not isinstance(raw_url, str) or not raw_url.strip():
            raise MalformedUrlError("A non-empty 'url' string is required")

        candidate = raw_url.strip()
        if "://" not in candidate:
            candidate = "https://" + candidate.lstrip("/")

        try:
            parts = urlsplit(candidate)
            port = parts.port
        except ValueError as exc:
            raise MalformedUrlError(f"Could not parse URL: {exc}") from exc

        if parts.scheme.lower() not in _ACCEPTED_SCHEMES:
            raise MalformedUrlError(f"Unsupported URL scheme {parts.scheme!r}")
        if parts.username is not None or parts.password is not None:
            raise MalformedUrlError("URLs with embedded credentials are not accepted")

        host = (parts.hostname or "").rstrip(".")
        if not host:
            raise MalformedUrlError("URL has no host")
        if not _HOST_RE.fullmatch(host):
            raise MalformedUrlError(f"URL host {host!r} is not a valid hostname")
        if not self.host_allowed(host):
            raise InvalidDomainError(
                f"Only URLs from {self.allowed_domain} are allowed (got {host})",
                self.allowed_domain,
            )

        netloc = host if port in (None, 80, 443) else f"{host}:{port}"
        path = parts.path or "/"
        return NormalizedUrl(urlunsplit(("https", netloc, path, parts.query, "")))
