"""Feed source configuration: category -> ordered candidate feed URLs."""

import json
from pathlib import Path
from typing import Dict, List, Mapping, Optional

# Candidates are tried in order; the first one that parses wins.
DEFAULT_FEED_SOURCES: Dict[str, List[str]] = {
    "technology": [
        "https://feeds.feedburner.com/TechCrunch",
        "https://www.theverge.com/rss/index.xml",
        "https://feeds.arstechnica.com/arstechnica/index",
    ],
    "crypto": [
        "https://cointelegraph.com/rss",
        "https://www.coindesk.com/arc/outboundfeeds/rss/",
    ],
    "ai": [
        "https://feeds.feedburner.com/venturebeat/SZYF",
        "https://www.artificialintelligence-news.com/feed/",
    ],
    "entertainment": [
        "https://feeds.feedburner.com/variety/headlines",
        "https://www.hollywoodreporter.com/feed/",
    ],
    "science": [
        "https://rss.cnn.com/rss/edition.rss",
        "https://feeds.sciencedaily.com/sciencedaily",
    ],
    "politics": [
        "https://feeds.npr.org/1001/rss.xml",
        "https://rss.cnn.com/rss/cnn_allpolitics.rss",
    ],
    "sports": [
        "https://rss.espn.com/rss/news",
        "https://www.cbssports.com/rss/headlines",
    ],
    "world": [
        "https://feeds.bbci.co.uk/news/world/rss.xml",
    ],
    "business": [
        "https://www.cnbc.com/id/100003114/device/rss/rss.xml",
    ],
    "health": [
        "https://www.medicalnewstoday.com/rss",
    ],
}

# Stock images used only when Settings.fallback_images is on
CATEGORY_IMAGES: Dict[str, str] = {
    "technology": "https://images.unsplash.com/photo-1518709268805-4e9042af2176?w=400&h=200&fit=crop",
    "world": "https://images.unsplash.com/photo-1506905925346-21bda4d32df4?w=400&h=200&fit=crop",
    "business": "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=400&h=200&fit=crop",
    "science": "https://images.unsplash.com/photo-1532094349884-543bc11b234d?w=400&h=200&fit=crop",
    "crypto": "https://images.unsplash.com/photo-1639762681485-074b7f938ba0?w=400&h=200&fit=crop",
    "health": "https://images.unsplash.com/photo-1559757148-5c350d0d3c56?w=400&h=200&fit=crop",
    "entertainment": "https://images.unsplash.com/photo-1489599856641-b2d54d0b0b78?w=400&h=200&fit=crop",
    "sports": "https://images.unsplash.com/photo-1461896836934-ffe607ba8211?w=400&h=200&fit=crop",
    "politics": "https://images.unsplash.com/photo-1529107386315-e1a2ed48a620?w=400&h=200&fit=crop",
    "ai": "https://images.unsplash.com/photo-1677442136019-21780ecad995?w=400&h=200&fit=crop",
}
DEFAULT_CATEGORY_IMAGE = "https://images.unsplash.com/photo-1504711434969-e33886168f5c?w=400&h=200&fit=crop"


def category_image(category: str) -> str:
    """Stock image for a category, or the generic news image."""
    return CATEGORY_IMAGES.get(category.lower(), DEFAULT_CATEGORY_IMAGE)


def load_feed_sources(config_path: Optional[str] = None) -> Dict[str, List[str]]:
    """Load the category -> feed URL mapping.

    Reads ``{"categories": {"technology": ["https://...", ...]}}`` from a JSON
    file. Without a path the built-in mapping is returned. Category names are
    lowercased; categories with no URLs are dropped.
    """
    if config_path is None:
        return {k: list(v) for k, v in DEFAULT_FEED_SOURCES.items()}

    with open(Path(config_path)) as f:
        data = json.load(f)

    return normalize_feed_sources(data.get("categories", {}))


def normalize_feed_sources(sources: Mapping[str, List[str]]) -> Dict[str, List[str]]:
    """Lowercase category keys and drop empty candidate lists."""
    normalized = {}
    for category, urls in sources.items():
        urls = [u.strip() for u in urls if isinstance(u, str) and u.strip()]
        if urls:
            normalized[category.strip().lower()] = urls
    return normalized
