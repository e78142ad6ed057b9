"""Configuration: settings and feed sources."""

from .settings import Settings, settings
from .feeds import DEFAULT_FEED_SOURCES, load_feed_sources

__all__ = ["Settings", "settings", "DEFAULT_FEED_SOURCES", "load_feed_sources"]
