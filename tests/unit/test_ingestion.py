"""Unit tests for ingestion module."""

import asyncio
from datetime import datetime, timezone

import aiohttp
import pytest

from conftest import SAMPLE_RSS, SINGLE_ITEM_RSS, make_item
from tldrit.config.settings import settings
from tldrit.ingestion.errors import FeedError, FormatError, HttpError
from tldrit.ingestion.fetcher import FeedFetcher
from tldrit.ingestion.interfaces import NewsItem, parse_iso, to_iso, url_hash


class FakeResponse:
    """Stands in for aiohttp's ClientResponse inside ``async with``."""

    def __init__(self, status=200, body=b"", data=None, reason="OK"):
        self.status = status
        self.reason = reason
        self._body = body
        self._data = data

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False

    async def read(self):
        return self._body

    async def json(self, content_type="application/json"):
        if isinstance(self._data, Exception):
            raise self._data
        return self._data


class FakeSession:
    """Records GET calls and replays queued responses or errors."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, headers=None):
        self.calls.append((url, headers))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class TestNewsItem:
    """Tests for NewsItem."""

    def test_to_dict_camel_case(self, sample_news_item):
        """Should emit the web client's field names."""
        data = sample_news_item.to_dict()
        assert data["sourceUrl"] == "https://techcrunch.com/2025/01/01/test-article/"
        assert data["publishedAt"] == "2025-01-01T12:00:00.000Z"
        assert data["imageUrl"] == "https://img.test/a.jpg"
        assert data["category"] == "technology"

    def test_to_dict_omits_unset_optionals(self):
        data = make_item("Plain").to_dict()
        assert "imageUrl" not in data
        assert "audioUrl" not in data
        assert "bookmarked" not in data

    def test_to_dict_keeps_false_flags(self):
        data = make_item("Flagged", bookmarked=False, in_playlist=True).to_dict()
        assert data["bookmarked"] is False
        assert data["inPlaylist"] is True

    def test_url_hash(self, sample_news_item):
        """url_hash should be the md5 of the article URL."""
        assert sample_news_item.url_hash == url_hash(sample_news_item.source_url)
        assert len(sample_news_item.url_hash) == 32
        assert url_hash("https://a.test/1") == url_hash("https://a.test/1")
        assert url_hash("https://a.test/1") != url_hash("https://a.test/2")

    def test_published_datetime(self):
        item = make_item("Dated", published_at="2025-06-10T14:30:00.000Z")
        assert item.published_datetime == datetime(2025, 6, 10, 14, 30, tzinfo=timezone.utc)


class TestIsoHelpers:

    def test_to_iso_milliseconds(self):
        dt = datetime(2025, 6, 10, 14, 30, 5, 123456, tzinfo=timezone.utc)
        assert to_iso(dt) == "2025-06-10T14:30:05.123Z"

    def test_to_iso_naive_is_utc(self):
        assert to_iso(datetime(2025, 1, 1)) == "2025-01-01T00:00:00.000Z"

    def test_parse_iso(self):
        assert parse_iso("2025-06-10T14:30:05.123Z") == datetime(2025, 6, 10, 14, 30, 5, 123000, tzinfo=timezone.utc)


class TestErrors:

    def test_http_error(self):
        error = HttpError(500, "https://a.test/rss", "Internal Server Error")
        assert isinstance(error, FeedError)
        assert error.status == 500
        assert error.url == "https://a.test/rss"
        assert "HTTP error 500" in str(error)


@pytest.mark.asyncio
class TestFeedFetcher:
    """Tests for FeedFetcher."""

    async def test_fetch_and_parse(self):
        """Should fetch a feed and return normalized items."""
        session = FakeSession(FakeResponse(body=SAMPLE_RSS.encode("utf-8")))
        fetcher = FeedFetcher(session=session)

        items = await fetcher.fetch_and_parse_feed("https://example.com/rss")

        assert [i.title for i in items] == [
            "Chipmaker & Partner Unveil New GPU",
            "Startup Raises Seed Round For Robots",
        ]
        assert all(isinstance(i, NewsItem) for i in items)

    async def test_sends_identifying_headers(self):
        """Requests should carry the reader's User-Agent and feed Accept types."""
        session = FakeSession(FakeResponse(body=SINGLE_ITEM_RSS.encode("utf-8")))
        fetcher = FeedFetcher(session=session)

        await fetcher.fetch_and_parse_feed("https://a.test/rss")

        url, headers = session.calls[0]
        assert url == "https://a.test/rss"
        assert headers["User-Agent"] == settings.user_agent
        assert "application/rss+xml" in headers["Accept"]

    async def test_http_error_status(self):
        """Non-2xx responses should raise HttpError."""
        session = FakeSession(FakeResponse(status=500, reason="Internal Server Error"))
        fetcher = FeedFetcher(session=session)

        with pytest.raises(HttpError) as exc_info:
            await fetcher.fetch_and_parse_feed("https://a.test/rss")
        assert exc_info.value.status == 500

    async def test_not_a_feed(self):
        session = FakeSession(FakeResponse(body=b"<html><body>Blocked</body></html>"))
        fetcher = FeedFetcher(session=session)

        with pytest.raises(FormatError):
            await fetcher.fetch_and_parse_feed("https://a.test/rss")

    async def test_transport_error_propagates(self):
        session = FakeSession(aiohttp.ClientConnectionError("refused"))
        fetcher = FeedFetcher(session=session, max_attempts=1)

        with pytest.raises(aiohttp.ClientError):
            await fetcher.fetch_and_parse_feed("https://a.test/rss")
        assert len(session.calls) == 1

    async def test_transport_error_retried(self):
        """Transport errors should be retried when more attempts are allowed."""
        session = FakeSession(
            asyncio.TimeoutError(),
            FakeResponse(body=SINGLE_ITEM_RSS.encode("utf-8")),
        )
        fetcher = FeedFetcher(session=session, max_attempts=2)

        items = await fetcher.fetch_and_parse_feed("https://a.test/rss")

        assert len(items) == 1
        assert len(session.calls) == 2

    async def test_http_error_not_retried(self):
        session = FakeSession(FakeResponse(status=503), FakeResponse(body=b""))
        fetcher = FeedFetcher(session=session, max_attempts=3)

        with pytest.raises(HttpError):
            await fetcher.fetch_and_parse_feed("https://a.test/rss")
        assert len(session.calls) == 1

    async def test_via_proxy(self):
        """Proxy mode should request the encoded URL and read 'contents'."""
        session = FakeSession(FakeResponse(data={"contents": SINGLE_ITEM_RSS, "status": {"http_code": 200}}))
        fetcher = FeedFetcher(session=session, proxy_url="https://proxy.test/get?url={url}")

        items = await fetcher.fetch_and_parse_feed("https://a.test/rss?x=1")

        assert items[0].title == "Big News"
        url, headers = session.calls[0]
        assert url == "https://proxy.test/get?url=https%3A%2F%2Fa.test%2Frss%3Fx%3D1"
        assert headers["Accept"] == "application/json"

    async def test_proxy_missing_contents(self):
        session = FakeSession(FakeResponse(data={"status": {"http_code": 404}}))
        fetcher = FeedFetcher(session=session, proxy_url="https://proxy.test/get?url={url}")

        with pytest.raises(FormatError):
            await fetcher.fetch_and_parse_feed("https://a.test/rss")

    async def test_proxy_invalid_json(self):
        session = FakeSession(FakeResponse(data=ValueError("bad json")))
        fetcher = FeedFetcher(session=session, proxy_url="https://proxy.test/get?url={url}")

        with pytest.raises(FormatError):
            await fetcher.fetch_and_parse_feed("https://a.test/rss")

    async def test_requires_session(self):
        fetcher = FeedFetcher()
        with pytest.raises(RuntimeError):
            await fetcher.fetch_and_parse_feed("https://a.test/rss")

    async def test_context_manager_owns_session(self):
        """The fetcher should open and close its own session."""
        async with FeedFetcher() as fetcher:
            assert isinstance(fetcher.session, aiohttp.ClientSession)
            session = fetcher.session
        assert session.closed
        assert fetcher.session is None
