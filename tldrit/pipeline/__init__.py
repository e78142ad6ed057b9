"""Pipeline orchestration."""

from .news import FeedIngestionPipeline, fetch_news

__all__ = ["FeedIngestionPipeline", "fetch_news"]
