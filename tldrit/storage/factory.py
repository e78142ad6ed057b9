"""Factory functions to create storage instances.

The database URL comes from DATABASE_URL (cloud platforms), then
TLDRIT_DATABASE_URL, then the SQLite default in settings.
"""

import os
from functools import lru_cache

import structlog

logger = structlog.get_logger()


def get_database_url() -> str:
    """Get database URL from environment, with fallback to SQLite."""
    # Check for DATABASE_URL first (standard for cloud platforms)
    url = os.environ.get('DATABASE_URL')
    if url:
        return url

    # Check for TLDRIT_ prefixed version
    url = os.environ.get('TLDRIT_DATABASE_URL')
    if url:
        return url

    # Default to SQLite for local development
    from ..config.settings import settings
    return settings.database_url


@lru_cache(maxsize=1)
def get_news_storage():
    """Get the shared NewsStorage instance."""
    from .database import NewsStorage

    url = get_database_url()
    logger.info("using_news_storage", url=url[:40] + "...")
    return NewsStorage(url)


def clear_cache():
    """Clear cached instances (useful for testing)."""
    get_news_storage.cache_clear()
