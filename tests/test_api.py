"""Tests for the HTTP layer.

The FastAPI ``TestClient`` drives the app; outbound page fetches go through a
real ``FetchClient`` whose ``httpx`` traffic is intercepted by ``respx``.
"""

from __future__ import annotations

from typing import Generator

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from ird_proxy.api.app import create_app
from ird_proxy.cache import Cache
from ird_proxy.scraper.fetcher import FetchClient
from ird_proxy.scraper.url_guard import UrlGuard
from ird_proxy.service import ProxyService

_HOME_HTML = """\
<html>
<head><title>Home</title><meta name="description" content="eFootball hub"></head>
<body>
  <a href="/players">Players list</a>
  <a href="/teams">Teams list</a>
  <a href="/tactics">Tactics guide</a>
  <a href="/formations">Formations</a>
  <a href="/database">Database</a>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def service() -> ProxyService:
    return ProxyService(
        guard=UrlGuard("efootballhub.net"),
        cache=Cache(ttl_seconds=1800, max_size=100),
        fetcher=FetchClient(timeout=5, user_agents=["TestAgent/1.0"]),
    )


@pytest.fixture()
def client(service: ProxyService) -> Generator[TestClient, None, None]:
    app = create_app(service=service)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


# ---------------------------------------------------------------------------
# POST /api/ird/proxy
# ---------------------------------------------------------------------------

class TestProxyPost:
    def test_home_scenario(self, client: TestClient) -> None:
        with respx.mock:
            route = respx.get("https://efootballhub.net/").mock(
                return_value=httpx.Response(200, html=_HOME_HTML)
            )
            first = client.post("/api/ird/proxy", json={"url": "https://efootballhub.net/"})
            second = client.post("/api/ird/proxy", json={"url": "https://efootballhub.net/"})

        assert first.status_code == 200
        body = first.json()
        assert body["success"] is True
        assert body["url"] == "https://efootballhub.net/"
        assert body["cache"] == "MISS"
        assert body["data"]["metadata"]["title"] == "Home"
        assert body["data"]["metadata"]["description"] == "eFootball hub"
        assert body["data"]["metadata"]["extraction_method"] == "structured"
        assert body["data"]["statistics"]["links"] == 5
        assert len(body["data"]["structured_data"]["important_links"]) == 5
        assert set(body["data"]) == {"metadata", "statistics", "structured_data", "raw_preview"}
        assert "timestamp" in body

        assert second.status_code == 200
        assert second.json()["cache"] == "HIT"
        assert second.json()["data"] == body["data"]
        assert route.call_count == 1

    def test_off_domain_is_400_without_fetch(self, client: TestClient) -> None:
        with respx.mock(assert_all_called=False) as mock:
            resp = client.post("/api/ird/proxy", json={"url": "https://example.com/"})
            assert mock.calls.call_count == 0

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["error_type"] == "invalid_domain"
        assert "efootballhub.net" in body["error"]

    def test_missing_url_is_400(self, client: TestClient) -> None:
        resp = client.post("/api/ird/proxy", json={})
        assert resp.status_code == 400
        assert resp.json()["error_type"] == "malformed_url"

    def test_non_string_url_is_400(self, client: TestClient) -> None:
        resp = client.post("/api/ird/proxy", json={"url": 123})
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_invalid_json_is_400(self, client: TestClient) -> None:
        resp = client.post(
            "/api/ird/proxy", content=b"not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert resp.json()["error_type"] == "malformed_url"

    def test_upstream_404_is_500_with_details(self, client: TestClient) -> None:
        with respx.mock:
            respx.get("https://efootballhub.net/gone").mock(return_value=httpx.Response(404))
            resp = client.post("/api/ird/proxy", json={"url": "https://efootballhub.net/gone"})

        assert resp.status_code == 500
        body = resp.json()
        assert body["error_type"] == "http_status"
        assert body["error_details"] == {"status_code": 404}
        assert body["recommendation"]

    def test_upstream_timeout_is_distinguishable(self, client: TestClient) -> None:
        with respx.mock:
            respx.get("https://efootballhub.net/slow").mock(side_effect=httpx.ReadTimeout("slow"))
            resp = client.post("/api/ird/proxy", json={"url": "https://efootballhub.net/slow"})

        assert resp.status_code == 500
        assert resp.json()["error_type"] == "timeout"

    def test_network_error(self, client: TestClient) -> None:
        with respx.mock:
            respx.get("https://efootballhub.net/").mock(side_effect=httpx.ConnectError("down"))
            resp = client.post("/api/ird/proxy", json={"url": "https://efootballhub.net/"})

        assert resp.status_code == 500
        assert resp.json()["error_type"] == "network"


# ---------------------------------------------------------------------------
# Other endpoints
# ---------------------------------------------------------------------------

class TestDescriptorEndpoints:
    def test_get_proxy_descriptor(self, client: TestClient) -> None:
        resp = client.get("/api/ird/proxy")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "operational"
        assert body["allowed_domain"] == "efootballhub.net"
        assert body["example"]["body"] == {"url": "https://efootballhub.net/"}

    def test_docs(self, client: TestClient) -> None:
        resp = client.get("/api/ird/docs")
        assert resp.status_code == 200
        body = resp.json()
        assert body["endpoints"]["main"]["method"] == "POST"
        assert "efootballhub.net" in body["description"]

    def test_health_reports_cache(self, client: TestClient, service: ProxyService) -> None:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["cache"] == {"size": 0, "max_size": 100, "ttl_seconds": 1800}
        assert body["limits"]["timeout_seconds"] == 5

    def test_clear_cache(self, client: TestClient, service: ProxyService) -> None:
        with respx.mock:
            respx.get("https://efootballhub.net/").mock(
                return_value=httpx.Response(200, html=_HOME_HTML)
            )
            client.post("/api/ird/proxy", json={"url": "https://efootballhub.net/"})
        assert len(service.cache) == 1

        resp = client.delete("/api/ird/proxy/cache")
        assert resp.json() == {"success": True, "removed": 1}
        assert len(service.cache) == 0
