"""Feed ingestion errors."""

from typing import Optional


class FeedError(Exception):
    """Base class for failures while fetching or reading a feed."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class HttpError(FeedError):
    """Feed request returned a status outside 200-299."""

    def __init__(self, status: int, url: Optional[str] = None, reason: str = ""):
        message = f"HTTP error {status}"
        if reason:
            message += f" {reason}"
        if url:
            message += f" for {url}"
        super().__init__(message, url)
        self.status = status


class FormatError(FeedError):
    """Response body is not an RSS or Atom document."""


class ItemParseError(FeedError):
    """A single feed item could not be turned into a NewsItem."""
