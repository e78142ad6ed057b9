"""News ingestion - fetching, parsing and normalizing RSS/Atom feeds."""

from .errors import FeedError, HttpError, FormatError, ItemParseError
from .interfaces import (
    NewsItem, FetcherInterface, SummarizationService,
    SpeechSynthesisService, PersistenceService,
)
from .entities import decode_html_entities
from .normalizer import normalize_item
from .parser import parse_feed
from .fetcher import FeedFetcher

__all__ = [
    "FeedError", "HttpError", "FormatError", "ItemParseError",
    "NewsItem", "FetcherInterface", "SummarizationService",
    "SpeechSynthesisService", "PersistenceService",
    "decode_html_entities", "normalize_item", "parse_feed", "FeedFetcher",
]
