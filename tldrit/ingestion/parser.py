"""Locate items in an RSS or Atom tree and normalize them."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog

from .errors import FormatError
from .interfaces import NewsItem
from .normalizer import normalize_item
from .tree import as_list, parse_xml

logger = structlog.get_logger()


def extract_raw_items(tree: Dict[str, Any], url: str = None) -> List[Any]:
    """Raw item nodes from ``rss.channel.item`` or Atom ``feed.entry``.

    Raises FormatError if the document is neither RSS nor Atom.
    """
    rss = tree.get("rss")
    if isinstance(rss, dict) and "channel" in rss:
        channel = as_list(rss["channel"])[0]
        if not isinstance(channel, dict):
            return []
        return as_list(channel.get("item"))

    feed = tree.get("feed")
    if feed is not None:
        if not isinstance(feed, dict):
            return []
        return as_list(feed.get("entry"))

    root = next(iter(tree), None)
    raise FormatError(f"Unrecognized feed format (root <{root}>)", url)


def parse_feed(
    body: Union[str, bytes],
    source_url: str,
    now: Optional[datetime] = None,
    summary_max_chars: int = 300,
    stable_ids: bool = False,
) -> List[NewsItem]:
    """Parse a feed document into NewsItems.

    A failing item is logged and skipped; its siblings are still returned.
    """
    now = now or datetime.now(timezone.utc)
    tree = parse_xml(body, source_url)
    raw_items = extract_raw_items(tree, source_url)

    items = []
    for index, raw in enumerate(raw_items):
        try:
            item = normalize_item(
                raw,
                index,
                source_url,
                now=now,
                summary_max_chars=summary_max_chars,
                stable_ids=stable_ids,
            )
        except Exception as e:
            logger.warning("item_skipped", feed=source_url, index=index, error=str(e))
            continue
        if item:
            items.append(item)

    logger.debug("feed_parsed", feed=source_url, raw_items=len(raw_items), items=len(items))
    return items
