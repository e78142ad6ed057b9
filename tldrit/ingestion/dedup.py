"""Near-duplicate filtering by title prefix."""

from typing import Iterable, List

from .interfaces import NewsItem


def is_near_duplicate(first: str, second: str, prefix_chars: int = 20) -> bool:
    """True if either lowercase title contains the other's leading ``prefix_chars``."""
    a, b = first.lower(), second.lower()
    return a[:prefix_chars] in b or b[:prefix_chars] in a


def deduplicate_by_title(items: Iterable[NewsItem], prefix_chars: int = 20) -> List[NewsItem]:
    """Keep the first of each group of near-duplicate titles, preserving order."""
    accepted: List[NewsItem] = []
    for item in items:
        if any(is_near_duplicate(prev.title, item.title, prefix_chars) for prev in accepted):
            continue
        accepted.append(item)
    return accepted
