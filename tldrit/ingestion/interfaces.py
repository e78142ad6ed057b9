"""Interface definitions for news ingestion and its collaborators."""

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

DEFAULT_CATEGORY = "general"


def url_hash(url: str) -> str:
    """Stable identity for an article: md5 hex digest of its URL."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def to_iso(dt: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> datetime:
    """Parse a timestamp produced by :func:`to_iso` (or any ISO-8601 string)."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class NewsItem:
    """A normalized news item produced by one ingestion run."""
    id: str
    title: str
    source_url: str
    category: str = DEFAULT_CATEGORY
    summary: str = ""
    published_at: str = ""
    image_url: Optional[str] = None

    # Filled from persistence / AI collaborators, never by the feed parser
    tldr: Optional[str] = None
    audio_url: Optional[str] = None
    in_playlist: Optional[bool] = None
    bookmarked: Optional[bool] = None

    @property
    def url_hash(self) -> str:
        return url_hash(self.source_url)

    @property
    def published_datetime(self) -> datetime:
        return parse_iso(self.published_at)

    def to_dict(self) -> dict:
        """Convert to the camelCase shape the web client consumes."""
        data = {
            "id": self.id,
            "title": self.title,
            "sourceUrl": self.source_url,
            "category": self.category,
            "summary": self.summary,
            "publishedAt": self.published_at,
        }
        optional = {
            "imageUrl": self.image_url,
            "tldr": self.tldr,
            "audioUrl": self.audio_url,
            "inPlaylist": self.in_playlist,
            "bookmarked": self.bookmarked,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


class FetcherInterface:
    """Interface for feed fetching."""

    async def fetch_and_parse_feed(self, url: str) -> List[NewsItem]:
        """Fetch a single feed URL and return its normalized items."""
        raise NotImplementedError


class SummarizationService:
    """Takes article text and returns AI-generated summary text."""

    async def summarize(
        self,
        content: str,
        summary_level: int = 2,
        eli5_age: Optional[int] = None,
        is_news_article: bool = False,
    ) -> str:
        raise NotImplementedError


class SpeechSynthesisService:
    """Takes text and returns a hosted audio URL."""

    async def synthesize(
        self,
        text: str,
        plan: str = "free",
        title: Optional[str] = None,
        subdir: str = "news",
    ) -> str:
        raise NotImplementedError


class PersistenceService:
    """Stores news items, summaries, audio URLs and per-user flags."""

    def upsert_news_items(self, items: Iterable[NewsItem]) -> int:
        """Save items keyed by URL hash, return count of new rows."""
        raise NotImplementedError

    def get_audio_urls(self, url_hashes: Sequence[str]) -> Dict[str, str]:
        """Map url_hash -> stored audio URL for the hashes that have one."""
        raise NotImplementedError

    def set_tldr(self, source_url: str, tldr: str) -> bool:
        raise NotImplementedError

    def set_audio_url(self, source_url: str, audio_url: str) -> bool:
        raise NotImplementedError

    def set_bookmarked(self, user_id: str, source_url: str, bookmarked: bool) -> None:
        raise NotImplementedError

    def set_in_playlist(self, user_id: str, source_url: str, in_playlist: bool) -> None:
        raise NotImplementedError
