"""Unit tests for the HTTP endpoints."""

import asyncio

import aiohttp
import pytest
from fastapi.testclient import TestClient

from conftest import SAMPLE_RSS, make_item
from tldrit.api import proxy
from tldrit.ingestion.interfaces import FetcherInterface, url_hash
from tldrit.storage.database import NewsStorage

FEED_URL = "https://feeds.bbci.co.uk/news/world/rss.xml"


@pytest.fixture
def client():
    return TestClient(proxy.app)


def upstream(status=200, content_type="application/rss+xml", body=SAMPLE_RSS, error=None):
    async def fake_fetch(url):
        if error is not None:
            raise error
        return status, content_type, body
    return fake_fetch


class StubFetcher(FetcherInterface):
    """One distinct item per feed URL."""

    def __init__(self, *args, **kwargs):
        self.calls = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False

    async def fetch_and_parse_feed(self, url):
        self.calls.append(url)
        return [make_item(f"{url_hash(url)[:8]} headline story", url=f"https://news.test/{url_hash(url)}")]


class BrokenFetcher(StubFetcher):

    async def fetch_and_parse_feed(self, url):
        raise RuntimeError("fetcher exploded")


class TestRssProxy:
    """Tests for the /rss-proxy endpoint."""

    def test_missing_url(self, client):
        response = client.get("/rss-proxy")
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required parameter"

    def test_invalid_url(self, client):
        response = client.get("/rss-proxy", params={"url": "not a url"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid URL format"

    def test_domain_not_allowed(self, client):
        response = client.get("/rss-proxy", params={"url": "https://evil.test/rss"})
        assert response.status_code == 403

    def test_success(self, client, monkeypatch):
        """Allowed feeds should come back wrapped as JSON contents."""
        monkeypatch.setattr(proxy, "fetch_upstream", upstream())

        response = client.get("/rss-proxy", params={"url": FEED_URL})

        assert response.status_code == 200
        data = response.json()
        assert data["contents"] == SAMPLE_RSS
        assert data["status"]["http_code"] == 200
        assert data["status"]["url"] == FEED_URL
        assert data["status"]["content_length"] == len(SAMPLE_RSS)
        assert response.headers["cache-control"] == "public, max-age=300"

    def test_upstream_http_error(self, client, monkeypatch):
        monkeypatch.setattr(proxy, "fetch_upstream", upstream(status=500, body="oops"))

        response = client.get("/rss-proxy", params={"url": FEED_URL})

        assert response.status_code == 502
        assert response.json()["url"] == FEED_URL

    def test_timeout(self, client, monkeypatch):
        monkeypatch.setattr(proxy, "fetch_upstream", upstream(error=asyncio.TimeoutError()))
        assert client.get("/rss-proxy", params={"url": FEED_URL}).status_code == 408

    def test_network_error(self, client, monkeypatch):
        monkeypatch.setattr(proxy, "fetch_upstream", upstream(error=aiohttp.ClientConnectionError("refused")))
        assert client.get("/rss-proxy", params={"url": FEED_URL}).status_code == 503

    def test_empty_body(self, client, monkeypatch):
        monkeypatch.setattr(proxy, "fetch_upstream", upstream(body="  "))

        response = client.get("/rss-proxy", params={"url": FEED_URL})

        assert response.status_code == 500
        assert response.json()["message"] == "Empty response content"

    def test_not_a_feed(self, client, monkeypatch):
        monkeypatch.setattr(proxy, "fetch_upstream", upstream(content_type="text/html", body="<html>Login</html>"))
        assert client.get("/rss-proxy", params={"url": FEED_URL}).status_code == 500

    def test_subdomains_allowed(self):
        assert proxy.is_allowed_domain("https://www.reuters.com/rss")
        assert proxy.is_allowed_domain("https://feeds.npr.org/1001/rss.xml")
        assert not proxy.is_allowed_domain("https://notreuters.com/rss")
        assert not proxy.is_allowed_domain("https://a.test/rss", allowed=[])


class TestNewsEndpoint:
    """Tests for the /news endpoint."""

    def test_parse_categories(self):
        assert proxy.parse_categories(None) == ["technology", "world", "business", "science"]
        assert proxy.parse_categories("Tech, ,Sports") == ["tech", "sports"]

    def test_default_categories_are_configured(self):
        """A bare /news request should only ask for categories that have feeds."""
        sources = proxy.FeedIngestionPipeline(StubFetcher()).feed_sources
        assert [c for c in proxy.parse_categories(None) if c not in sources] == []

    def test_bare_request_fetches_every_default_category(self, client, monkeypatch):
        monkeypatch.setattr(proxy, "FeedFetcher", StubFetcher)

        data = client.get("/news").json()

        assert data["count"] == 4
        assert {item["category"] for item in data["newsItems"]} == set(proxy.DEFAULT_CATEGORIES)

    def test_news(self, client, monkeypatch):
        monkeypatch.setattr(proxy, "FeedFetcher", StubFetcher)

        response = client.get("/news", params={"categories": "technology,science"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["count"] == 2
        assert {item["category"] for item in data["newsItems"]} == {"technology", "science"}
        assert all("sourceUrl" in item for item in data["newsItems"])

    def test_news_persist(self, client, monkeypatch, temp_db):
        """persist=true should store items and record feed stats."""
        storage = NewsStorage(temp_db)
        monkeypatch.setattr(proxy, "FeedFetcher", StubFetcher)
        monkeypatch.setattr(proxy, "get_news_storage", lambda: storage)

        response = client.get("/news", params={"categories": "technology", "persist": "true"})

        assert response.json()["count"] == 1
        assert storage.get_stats()["total_news_items"] == 1
        first_feed = proxy.FeedIngestionPipeline(StubFetcher()).feed_sources["technology"][0]
        assert storage.get_feed_stats(first_feed)["total_items"] == 1

    def test_news_failure(self, client, monkeypatch):
        monkeypatch.setattr(proxy, "FeedFetcher", BrokenFetcher)

        response = client.get("/news", params={"categories": "technology"})

        assert response.status_code == 500
        assert response.json()["success"] is False


class TestHealth:

    def test_healthy(self, client, monkeypatch, temp_db):
        storage = NewsStorage(temp_db)
        monkeypatch.setattr(proxy, "get_news_storage", lambda: storage)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["news_items"] == 0

    def test_unhealthy(self, client, monkeypatch):
        def broken():
            raise RuntimeError("database unavailable")
        monkeypatch.setattr(proxy, "get_news_storage", broken)

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
