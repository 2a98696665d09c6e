"""Tests for environment-driven settings and logging setup."""

from __future__ import annotations

import logging

import structlog

from ird_proxy.config import Settings
from ird_proxy.logging_config import configure_logging
from ird_proxy.service import ProxyService


def test_defaults(monkeypatch):
    for name in ("IRD_ALLOWED_DOMAIN", "IRD_CACHE_TTL_SECONDS", "IRD_CACHE_MAX_SIZE",
                 "IRD_REQUEST_TIMEOUT", "IRD_USER_AGENTS", "IRD_ALLOW_SUBDOMAINS"):
        monkeypatch.delenv(name, raising=False)
    s = Settings()
    assert s.allowed_domain == "efootballhub.net"
    assert s.cache_ttl_seconds == 1800
    assert s.cache_max_size == 100
    assert s.request_timeout == 10.0
    assert s.allow_subdomains is True
    assert len(s.user_agents) >= 2


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("IRD_ALLOWED_DOMAIN", "example.org")
    monkeypatch.setenv("IRD_CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("IRD_CACHE_MAX_SIZE", "5")
    monkeypatch.setenv("IRD_REQUEST_TIMEOUT", "8")
    monkeypatch.setenv("IRD_USER_AGENTS", "UA-1 | UA-2")
    monkeypatch.setenv("IRD_ALLOW_SUBDOMAINS", "false")
    monkeypatch.setenv("IRD_CORS_ORIGINS", "https://a.example, https://b.example")
    s = Settings()
    assert s.allowed_domain == "example.org"
    assert s.cache_ttl_seconds == 60
    assert s.cache_max_size == 5
    assert s.request_timeout == 8.0
    assert s.user_agents == ("UA-1", "UA-2")
    assert s.allow_subdomains is False
    assert s.cors_origins == ("https://a.example", "https://b.example")


def test_service_from_settings(monkeypatch):
    monkeypatch.setenv("IRD_ALLOWED_DOMAIN", "example.org")
    monkeypatch.setenv("IRD_CACHE_MAX_SIZE", "3")
    service = ProxyService.from_settings(Settings())
    assert service.guard.allowed_domain == "example.org"
    assert service.cache.max_size == 3
    assert service.fetcher.timeout == Settings().request_timeout


def test_configure_logging_is_idempotent(capsys):
    configure_logging("INFO")
    configure_logging("INFO")
    assert len(logging.getLogger().handlers) == 1
    structlog.get_logger("test").info("hello_event", answer=42)
    out = capsys.readouterr().out
    assert "hello_event" in out
    assert "42" in out
    logging.getLogger().handlers.clear()
