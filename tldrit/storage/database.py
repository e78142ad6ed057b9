"""Database operations for news item storage."""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence
from pathlib import Path

from sqlalchemy import func
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import IntegrityError
import structlog

from .models import NewsItemModel, UserNewsFlagModel, FeedStatsModel, init_db
from ..ingestion.interfaces import NewsItem, PersistenceService, parse_iso, to_iso, url_hash
from ..config.settings import settings

logger = structlog.get_logger()


class NewsStorage(PersistenceService):
    """SQL storage for news items, generated content and per-user flags."""

    def __init__(self, database_url: str = None):
        if database_url is None:
            database_url = settings.database_url

        # Ensure data directory exists
        if database_url.startswith("sqlite:///"):
            db_path = database_url.replace("sqlite:///", "")
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.engine = init_db(database_url)
        self.Session = sessionmaker(bind=self.engine)

    def save_news_item(self, item: NewsItem) -> Optional[int]:
        """Save item, return row ID or None if its URL is already stored."""
        session = self.Session()
        try:
            model = NewsItemModel(
                url_hash=item.url_hash,
                source_url=item.source_url,
                title=item.title,
                category=item.category,
                summary=item.summary,
                image_url=item.image_url,
                published_at=_to_db_datetime(item.published_at),
                tldr=item.tldr,
                audio_url=item.audio_url,
            )
            session.add(model)
            session.commit()
            logger.debug("news_item_saved", id=model.id, url=item.source_url[:50])
            return model.id
        except IntegrityError:
            session.rollback()
            logger.debug("news_item_duplicate", url=item.source_url[:50])
            return None
        finally:
            session.close()

    def upsert_news_items(self, items: Iterable[NewsItem]) -> int:
        """Save items, skipping URLs already stored. Return count of new rows."""
        items = list(items)
        saved_count = 0
        for item in items:
            if self.save_news_item(item) is not None:
                saved_count += 1
        logger.info("news_items_saved", count=saved_count, total=len(items))
        return saved_count

    def get_by_url(self, source_url: str) -> Optional[NewsItem]:
        """Get news item by source URL."""
        session = self.Session()
        try:
            model = session.query(NewsItemModel)\
                .filter(NewsItemModel.url_hash == url_hash(source_url))\
                .first()
            return self._model_to_item(model) if model else None
        finally:
            session.close()

    def get_news(self, category: str = None, limit: int = 50) -> List[NewsItem]:
        """Most recent stored news items, optionally for one category."""
        session = self.Session()
        try:
            query = session.query(NewsItemModel)
            if category:
                query = query.filter(NewsItemModel.category == category.lower())
            models = query.order_by(NewsItemModel.published_at.desc()).limit(limit).all()
            return [self._model_to_item(m) for m in models]
        finally:
            session.close()

    def get_audio_urls(self, url_hashes: Sequence[str]) -> Dict[str, str]:
        """Map url_hash -> audio URL for stored items that have audio."""
        if not url_hashes:
            return {}
        session = self.Session()
        try:
            rows = session.query(NewsItemModel.url_hash, NewsItemModel.audio_url)\
                .filter(NewsItemModel.url_hash.in_(list(url_hashes)))\
                .filter(NewsItemModel.audio_url.isnot(None))\
                .all()
            return {h: audio for h, audio in rows}
        finally:
            session.close()

    def attach_audio_urls(self, items: List[NewsItem]) -> int:
        """Fill ``audio_url`` on items from storage. Return count filled."""
        audio = self.get_audio_urls([item.url_hash for item in items])
        for item in items:
            if item.url_hash in audio:
                item.audio_url = audio[item.url_hash]
        return sum(1 for item in items if item.url_hash in audio)

    def set_tldr(self, source_url: str, tldr: str) -> bool:
        """Store a generated TLDR. Returns False if the item is unknown."""
        return self._update_item(source_url, tldr=tldr)

    def set_audio_url(self, source_url: str, audio_url: str) -> bool:
        """Store a generated audio URL. Returns False if the item is unknown."""
        return self._update_item(source_url, audio_url=audio_url)

    def _update_item(self, source_url: str, **fields) -> bool:
        session = self.Session()
        try:
            model = session.query(NewsItemModel)\
                .filter(NewsItemModel.url_hash == url_hash(source_url))\
                .first()
            if not model:
                logger.warning("news_item_not_found", url=source_url[:50])
                return False
            for key, value in fields.items():
                setattr(model, key, value)
            session.commit()
            logger.debug("news_item_updated", url=source_url[:50], fields=list(fields))
            return True
        finally:
            session.close()

    def set_bookmarked(self, user_id: str, source_url: str, bookmarked: bool) -> None:
        """Bookmark or un-bookmark an item for a user."""
        session = self.Session()
        try:
            flags = self._get_or_create_flags(session, user_id, url_hash(source_url))
            flags.bookmarked = bookmarked
            session.commit()
        finally:
            session.close()

    def set_in_playlist(self, user_id: str, source_url: str, in_playlist: bool) -> None:
        """Add an item to the end of a user's playlist, or remove it."""
        session = self.Session()
        try:
            flags = self._get_or_create_flags(session, user_id, url_hash(source_url))
            if in_playlist and not flags.in_playlist:
                last = session.query(func.max(UserNewsFlagModel.playlist_position))\
                    .filter(UserNewsFlagModel.user_id == user_id)\
                    .filter(UserNewsFlagModel.in_playlist == True)\
                    .scalar()
                flags.playlist_position = (last if last is not None else -1) + 1
            elif not in_playlist:
                flags.playlist_position = None
            flags.in_playlist = in_playlist
            session.commit()
        finally:
            session.close()

    def reorder_playlist(self, user_id: str, source_urls: Sequence[str]) -> None:
        """Set playlist order. URLs not in the playlist are ignored; playlist
        items missing from ``source_urls`` keep their relative order after them."""
        session = self.Session()
        try:
            entries = session.query(UserNewsFlagModel)\
                .filter(UserNewsFlagModel.user_id == user_id)\
                .filter(UserNewsFlagModel.in_playlist == True)\
                .order_by(UserNewsFlagModel.playlist_position)\
                .all()
            by_hash = {e.url_hash: e for e in entries}
            ordered = []
            for url in source_urls:
                entry = by_hash.pop(url_hash(url), None)
                if entry is not None:
                    ordered.append(entry)
            ordered.extend(e for e in entries if e.url_hash in by_hash)
            for position, entry in enumerate(ordered):
                entry.playlist_position = position
            session.commit()
        finally:
            session.close()

    def get_playlist(self, user_id: str) -> List[NewsItem]:
        """A user's playlist items in play order."""
        return self._get_flagged(user_id, UserNewsFlagModel.in_playlist, UserNewsFlagModel.playlist_position)

    def get_bookmarks(self, user_id: str) -> List[NewsItem]:
        """A user's bookmarked items, most recently changed first."""
        return self._get_flagged(user_id, UserNewsFlagModel.bookmarked, UserNewsFlagModel.updated_at.desc())

    def _get_flagged(self, user_id: str, flag, order) -> List[NewsItem]:
        session = self.Session()
        try:
            rows = session.query(NewsItemModel, UserNewsFlagModel)\
                .join(UserNewsFlagModel, UserNewsFlagModel.url_hash == NewsItemModel.url_hash)\
                .filter(UserNewsFlagModel.user_id == user_id)\
                .filter(flag == True)\
                .order_by(order)\
                .all()
            return [self._model_to_item(m, f) for m, f in rows]
        finally:
            session.close()

    def get_user_flags(self, user_id: str) -> Dict[str, dict]:
        """Map url_hash -> {"bookmarked", "in_playlist"} for a user."""
        session = self.Session()
        try:
            flags = session.query(UserNewsFlagModel)\
                .filter(UserNewsFlagModel.user_id == user_id)\
                .all()
            return {
                f.url_hash: {"bookmarked": bool(f.bookmarked), "in_playlist": bool(f.in_playlist)}
                for f in flags
            }
        finally:
            session.close()

    def _get_or_create_flags(self, session, user_id: str, item_hash: str) -> UserNewsFlagModel:
        flags = session.query(UserNewsFlagModel)\
            .filter(UserNewsFlagModel.user_id == user_id)\
            .filter(UserNewsFlagModel.url_hash == item_hash)\
            .first()
        if not flags:
            flags = UserNewsFlagModel(user_id=user_id, url_hash=item_hash, bookmarked=False, in_playlist=False)
            session.add(flags)
        return flags

    def update_feed_stats(
        self,
        feed_url: str,
        category: str = None,
        items: int = 0,
        error: str = None,
        fetch_time_ms: int = 0
    ) -> None:
        """Update feed statistics after a fetch."""
        session = self.Session()
        try:
            stats = session.get(FeedStatsModel, feed_url)
            if not stats:
                stats = FeedStatsModel(feed_url=feed_url)
                session.add(stats)

            stats.category = category or stats.category
            stats.last_fetch_at = datetime.utcnow()
            stats.total_items = (stats.total_items or 0) + items
            stats.fetch_count = (stats.fetch_count or 0) + 1

            if error:
                stats.last_error = error
                stats.consecutive_failures = (stats.consecutive_failures or 0) + 1
            else:
                stats.last_error = None
                stats.consecutive_failures = 0

            # Rolling averages
            success = 0 if error else 1
            old_rate = stats.success_rate if stats.success_rate is not None else 1.0
            stats.success_rate = (old_rate * 0.9) + (success * 0.1)

            old_avg = stats.avg_fetch_time_ms or 0
            stats.avg_fetch_time_ms = int((old_avg * 0.9) + (fetch_time_ms * 0.1))

            session.commit()
            logger.debug("feed_stats_updated", feed=feed_url, items=items)
        finally:
            session.close()

    def get_feed_stats(self, feed_url: str) -> Optional[dict]:
        """Get statistics for a specific feed URL."""
        session = self.Session()
        try:
            stats = session.get(FeedStatsModel, feed_url)
            if not stats:
                return None
            return {
                "feed_url": stats.feed_url,
                "category": stats.category,
                "last_fetch_at": stats.last_fetch_at,
                "total_items": stats.total_items or 0,
                "last_error": stats.last_error,
                "consecutive_failures": stats.consecutive_failures or 0,
                "success_rate": stats.success_rate if stats.success_rate is not None else 1.0,
                "avg_fetch_time_ms": stats.avg_fetch_time_ms or 0,
                "fetch_count": stats.fetch_count or 0,
            }
        finally:
            session.close()

    def get_stats(self) -> dict:
        """Get database statistics."""
        session = self.Session()
        try:
            total = session.query(NewsItemModel).count()
            with_audio = session.query(NewsItemModel)\
                .filter(NewsItemModel.audio_url.isnot(None)).count()
            with_tldr = session.query(NewsItemModel)\
                .filter(NewsItemModel.tldr.isnot(None)).count()

            return {
                "total_news_items": total,
                "with_audio": with_audio,
                "with_tldr": with_tldr,
            }
        finally:
            session.close()

    def _model_to_item(self, model: NewsItemModel, flags: UserNewsFlagModel = None) -> NewsItem:
        """Convert database model to NewsItem. The stored id is the URL hash."""
        published = model.published_at or model.created_at or datetime.utcnow()
        return NewsItem(
            id=model.url_hash,
            title=model.title,
            source_url=model.source_url,
            category=model.category,
            summary=model.summary or "",
            published_at=to_iso(published),
            image_url=model.image_url,
            tldr=model.tldr,
            audio_url=model.audio_url,
            in_playlist=bool(flags.in_playlist) if flags else None,
            bookmarked=bool(flags.bookmarked) if flags else None,
        )


def _to_db_datetime(value: str) -> Optional[datetime]:
    """ISO string -> naive UTC datetime (SQLite has no timezone support)."""
    if not value:
        return None
    try:
        return parse_iso(value).astimezone(timezone.utc).replace(tzinfo=None)
    except ValueError:
        return None
