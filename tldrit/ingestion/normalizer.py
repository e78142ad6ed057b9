"""Convert raw feed items (dict trees) into NewsItem records."""

import calendar
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import urljoin

import structlog
# Private API; feedparser is pinned to 6.x in pyproject.toml
from feedparser.datetimes import _parse_date

from .entities import clean_summary, decode_html_entities
from .errors import ItemParseError
from .fields import resolve_category, resolve_first_text, resolve_link, resolve_text
from .images import extract_image_url
from .interfaces import DEFAULT_CATEGORY, NewsItem, to_iso, url_hash

logger = structlog.get_logger()

DATE_KEYS = ("pubDate", "published", "updated", "dc:date")
DESCRIPTION_KEYS = ("description", "summary")
CONTENT_KEYS = ("content:encoded", "content")


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse RFC 822 / W3C-DTF / ISO dates to an aware UTC datetime."""
    if not value:
        return None
    parsed = _parse_date(value)
    if not parsed:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        return None


def make_item_id(source_url: str, index: int, now: datetime) -> str:
    """Per-run item id: feed URL, item position and ingestion time in ms."""
    return f"{source_url}-{index}-{int(now.timestamp() * 1000)}"


def normalize_item(
    raw: Any,
    index: int,
    source_url: str,
    now: Optional[datetime] = None,
    summary_max_chars: int = 300,
    stable_ids: bool = False,
) -> Optional[NewsItem]:
    """Build a NewsItem from one raw RSS ``item`` / Atom ``entry``.

    Returns None when the item has no title or no link. Raises
    ItemParseError when the item is not an element at all.
    """
    if not isinstance(raw, dict):
        raise ItemParseError(f"Item {index} is not an element", source_url)
    now = now or datetime.now(timezone.utc)

    title = resolve_text(raw.get("title"))
    if title:
        title = decode_html_entities(title).strip()
    if not title:
        logger.debug("item_missing_title", feed=source_url, index=index)
        return None

    link = resolve_link(raw.get("link"))
    if link:
        link = urljoin(source_url, link.strip())
    if not link:
        logger.debug("item_missing_link", feed=source_url, index=index)
        return None

    description = resolve_first_text(raw, DESCRIPTION_KEYS) or ""
    content = resolve_first_text(raw, CONTENT_KEYS) or ""

    published = parse_date(resolve_first_text(raw, DATE_KEYS)) or now

    category = resolve_category(raw.get("category"))
    category = category.strip().lower() if category else DEFAULT_CATEGORY

    return NewsItem(
        id=url_hash(link) if stable_ids else make_item_id(source_url, index, now),
        title=title,
        source_url=link,
        category=category,
        summary=clean_summary(description, summary_max_chars),
        published_at=to_iso(published),
        image_url=extract_image_url(raw, content, description, base_url=link),
    )
