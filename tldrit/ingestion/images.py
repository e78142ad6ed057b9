"""Image extraction for feed items.

Attribute-based sources are checked first, then regex scraping of the
item's HTML:

1. ``media:content`` ``url`` (also inside ``media:group``)
2. ``media:thumbnail`` ``url``
3. ``enclosure`` whose ``type`` starts with ``image/``
4. ``<meta property="og:image" content="...">`` or ``name="twitter:image"``
5. ``src`` of the first ``<img>`` tag, double- or single-quoted
"""

import re
from typing import Any, Dict, Optional
from urllib.parse import urljoin, urlparse

from .entities import decode_html_entities
from .fields import attr_of, shape_of
from .tree import as_list

META_IMAGE_PATTERNS = [
    re.compile(
        r"""<meta[^>]+(?:property|name)=["'](?:og:image|twitter:image)["'][^>]*?content=["']([^"']+)["']""",
        re.IGNORECASE,
    ),
    re.compile(
        r"""<meta[^>]+content=["']([^"']+)["'][^>]*?(?:property|name)=["'](?:og:image|twitter:image)["']""",
        re.IGNORECASE,
    ),
]

IMG_SRC_PATTERNS = [
    re.compile(r'<img[^>]+src="([^">]+)"', re.IGNORECASE),
    re.compile(r"<img[^>]+src='([^'>]+)'", re.IGNORECASE),
]


def absolute_url(url: Optional[str], base: Optional[str] = None) -> Optional[str]:
    """Resolve ``url`` against ``base``; only http(s) results are kept."""
    if not url:
        return None
    url = url.strip()
    if base:
        url = urljoin(base, url)
    elif url.startswith("//"):
        url = "https:" + url
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return url


def find_meta_image(html: str) -> Optional[str]:
    """URL from an Open Graph or Twitter image meta tag."""
    if not html:
        return None
    for pattern in META_IMAGE_PATTERNS:
        match = pattern.search(html)
        if match:
            return decode_html_entities(match.group(1).strip())
    return None


def find_img_src(html: str) -> Optional[str]:
    """``src`` of the first ``<img>`` tag."""
    if not html:
        return None
    for pattern in IMG_SRC_PATTERNS:
        match = pattern.search(html)
        if match:
            return decode_html_entities(match.group(1).strip())
    return None


def _media_url(raw: Dict[str, Any], key: str) -> Optional[str]:
    for node in as_list(raw.get(key)):
        url = attr_of(shape_of(node), "url")
        if url:
            return url
    for group in as_list(raw.get("media:group")):
        if isinstance(group, dict):
            url = _media_url(group, key)
            if url:
                return url
    return None


def _enclosure_image(raw: Dict[str, Any]) -> Optional[str]:
    for node in as_list(raw.get("enclosure")):
        shape = shape_of(node)
        mime = (attr_of(shape, "type") or "").lower()
        if mime.startswith("image/"):
            url = attr_of(shape, "url")
            if url:
                return url
    return None


def extract_image_url(
    raw: Dict[str, Any],
    content: str = "",
    description: str = "",
    base_url: Optional[str] = None,
) -> Optional[str]:
    """Best image URL for a raw feed item, or None."""
    html = f"{content or ''} {description or ''}"
    candidates = (
        lambda: _media_url(raw, "media:content"),
        lambda: _media_url(raw, "media:thumbnail"),
        lambda: _enclosure_image(raw),
        lambda: find_meta_image(html),
        lambda: find_img_src(html),
    )
    for candidate in candidates:
        url = absolute_url(candidate(), base_url)
        if url:
            return url
    return None
