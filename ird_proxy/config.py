"""Centralised settings for the I.R.D. proxy.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

_DEFAULT_USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
)


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: tuple[str, ...], sep: str) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if not raw:
        return default
    items = tuple(item.strip() for item in raw.split(sep) if item.strip())
    return items or default


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Target domain
    # ------------------------------------------------------------------
    allowed_domain: str = field(
        default_factory=lambda: os.environ.get("IRD_ALLOWED_DOMAIN", "efootballhub.net")
    )
    allow_subdomains: bool = field(
        default_factory=lambda: _env_bool("IRD_ALLOW_SUBDOMAINS", "true")
    )

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------
    cache_ttl_seconds: float = field(
        default_factory=lambda: float(os.environ.get("IRD_CACHE_TTL_SECONDS", "1800"))
    )
    cache_max_size: int = field(
        default_factory=lambda: int(os.environ.get("IRD_CACHE_MAX_SIZE", "100"))
    )

    # ------------------------------------------------------------------
    # Fetcher
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("IRD_REQUEST_TIMEOUT", "10.0"))
    )
    user_agents: tuple[str, ...] = field(
        default_factory=lambda: _env_list("IRD_USER_AGENTS", _DEFAULT_USER_AGENTS, "|")
    )
    max_concurrent_fetches: int = field(
        default_factory=lambda: int(os.environ.get("IRD_MAX_CONCURRENT_FETCHES", "4"))
    )

    # ------------------------------------------------------------------
    # API / logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("IRD_LOG_LEVEL", "INFO")
    )
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: _env_list("IRD_CORS_ORIGINS", ("*",), ",")
    )


# Module-level singleton, import this everywhere:
#   from ird_proxy.config import settings
settings = Settings()
