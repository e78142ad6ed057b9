"""SQLAlchemy models for the TLDRit news database."""

from datetime import datetime

from sqlalchemy import create_engine, Column, Integer, String, Text, Boolean, DateTime, Float, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class NewsItemModel(Base):
    """Database model for news items, keyed by URL hash."""
    __tablename__ = "news_items"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Identity
    url_hash = Column(String(32), unique=True, nullable=False)
    source_url = Column(String(2048), nullable=False)

    # Content
    title = Column(Text, nullable=False)
    category = Column(String(50), default="general")
    summary = Column(Text)
    image_url = Column(String(2048))
    published_at = Column(DateTime)

    # Generated later, on demand
    tldr = Column(Text)
    audio_url = Column(String(2048))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('idx_news_category', 'category'),
        Index('idx_news_published', 'published_at'),
    )


class UserNewsFlagModel(Base):
    """Per-user bookmark and playlist flags for a news item."""
    __tablename__ = "user_news_flags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    url_hash = Column(String(32), nullable=False)

    bookmarked = Column(Boolean, default=False)
    in_playlist = Column(Boolean, default=False)
    playlist_position = Column(Integer)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('user_id', 'url_hash', name='uq_user_news'),
        Index('idx_flags_user', 'user_id'),
    )


class FeedStatsModel(Base):
    """Statistics for each feed URL."""
    __tablename__ = "feed_stats"

    feed_url = Column(String(2048), primary_key=True)
    category = Column(String(50))
    last_fetch_at = Column(DateTime)
    total_items = Column(Integer, default=0)
    last_error = Column(Text)
    consecutive_failures = Column(Integer, default=0)
    success_rate = Column(Float, default=1.0)
    avg_fetch_time_ms = Column(Integer, default=0)
    fetch_count = Column(Integer, default=0)


def init_db(database_url: str):
    """Initialize database and create all tables."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return engine
