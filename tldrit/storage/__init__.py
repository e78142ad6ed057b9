"""Database storage and models."""

from .database import NewsStorage
from .models import NewsItemModel, UserNewsFlagModel, FeedStatsModel, init_db

__all__ = ["NewsStorage", "NewsItemModel", "UserNewsFlagModel", "FeedStatsModel", "init_db"]
