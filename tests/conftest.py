"""Pytest configuration and shared fixtures."""

import pytest
import tempfile
import os
from pathlib import Path

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from tldrit.ingestion.errors import HttpError
from tldrit.ingestion.interfaces import FetcherInterface, NewsItem
from tldrit.ingestion.parser import parse_feed


SAMPLE_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:media="http://search.yahoo.com/mrss/"
     xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>Example Tech</title>
    <link>https://example.com</link>
    <item>
      <title>Chipmaker &amp; Partner Unveil New GPU</title>
      <link>https://example.com/articles/gpu</link>
      <description><![CDATA[<p>The <b>new</b> GPU is fast.</p>]]></description>
      <pubDate>Tue, 10 Jun 2025 14:30:00 GMT</pubDate>
      <category>Hardware</category>
      <media:content url="https://img.example.com/gpu.jpg" medium="image"/>
    </item>
    <item>
      <title>Startup Raises Seed Round For Robots</title>
      <link>https://example.com/articles/robots</link>
      <description>Robots, funded.</description>
      <pubDate>Tue, 10 Jun 2025 16:00:00 GMT</pubDate>
      <content:encoded><![CDATA[<div><img src="https://img.example.com/robot.png" alt=""></div>]]></content:encoded>
    </item>
    <item>
      <title></title>
      <link>https://example.com/articles/untitled</link>
    </item>
  </channel>
</rss>
"""

SAMPLE_ATOM = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Example Science</title>
  <entry>
    <title type="html">Telescope Spots Distant Galaxy</title>
    <link rel="alternate" href="https://science.example.org/galaxy"/>
    <summary>Astronomers report a record.</summary>
    <published>2025-06-09T08:00:00Z</published>
  </entry>
</feed>
"""

SINGLE_ITEM_RSS = """<rss version="2.0"><channel><title>One</title>
<item><title>Big News</title><link>https://a.test/1</link></item>
</channel></rss>"""


class FakeFetcher(FetcherInterface):
    """Fetcher returning canned results per URL.

    A value may be an exception (raised), feed XML (parsed) or a list of
    NewsItems (returned as-is). Unknown URLs raise HttpError(404).
    """

    def __init__(self, responses: dict):
        self.responses = responses
        self.calls = []

    async def fetch_and_parse_feed(self, url):
        self.calls.append(url)
        result = self.responses.get(url)
        if result is None:
            raise HttpError(404, url)
        if isinstance(result, Exception):
            raise result
        if isinstance(result, (str, bytes)):
            return parse_feed(result, url)
        return list(result)


def make_item(title, published_at="2025-06-10T12:00:00.000Z", category="general", url=None, **kwargs):
    """Build a NewsItem with sensible defaults."""
    url = url or "https://news.test/" + title.lower().replace(" ", "-")
    return NewsItem(
        id=f"{url}-0-0",
        title=title,
        source_url=url,
        category=category,
        summary=kwargs.pop("summary", "Summary of " + title),
        published_at=published_at,
        **kwargs
    )


@pytest.fixture
def temp_db():
    """Provide a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    # Cleanup
    try:
        os.unlink(db_path)
    except FileNotFoundError:
        pass


@pytest.fixture
def sample_rss():
    return SAMPLE_RSS


@pytest.fixture
def sample_atom():
    return SAMPLE_ATOM


@pytest.fixture
def sample_news_item():
    """Provide a sample NewsItem."""
    return make_item(
        "Test Company Raises $50M Series B",
        published_at="2025-01-01T12:00:00.000Z",
        category="technology",
        url="https://techcrunch.com/2025/01/01/test-article/",
        image_url="https://img.test/a.jpg",
    )
