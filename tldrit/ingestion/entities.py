"""HTML entity decoding and tag stripping for feed text."""

import html
import re
from html.entities import html5

_TAG_RE = re.compile(r"<[^>]*>")
_ENTITY_RE = re.compile(r"&(#\d+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);")


def _decode_entity(match: re.Match) -> str:
    ref = match.group(1)
    if ref.startswith("#"):
        return html.unescape(match.group(0))
    # Only complete names; html.unescape would also match legacy prefixes
    # ("&copyright;" -> "©right;")
    return html5.get(ref + ";", match.group(0))


def decode_html_entities(text: str) -> str:
    """Decode named, decimal (``&#39;``) and hex (``&#x2019;``) entities.

    Runs a single pass: ``&amp;lt;`` becomes ``&lt;``, not ``<``. Unknown
    named entities are left as they are. Non-breaking spaces come back as
    plain spaces.
    """
    if not text or "&" not in text:
        return text
    return _ENTITY_RE.sub(_decode_entity, text).replace("\xa0", " ")


def strip_html(text: str) -> str:
    """Remove anything that looks like a tag."""
    if not text:
        return ""
    return _TAG_RE.sub("", text)


def truncate(text: str, limit: int, marker: str = "...") -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def clean_summary(description: str, limit: int = 300) -> str:
    """Visible summary: tags stripped, entities decoded, trimmed, truncated."""
    text = decode_html_entities(strip_html(description or "")).strip()
    return truncate(text, limit)
