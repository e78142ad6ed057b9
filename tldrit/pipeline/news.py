"""News feed ingestion pipeline."""

import asyncio
import time
from datetime import datetime
from typing import Callable, List, Mapping, Optional, Sequence

import structlog

from ..config.settings import settings
from ..config.feeds import category_image, load_feed_sources, normalize_feed_sources
from ..ingestion.dedup import deduplicate_by_title
from ..ingestion.fallback import CandidatesExhausted, first_success
from ..ingestion.interfaces import (
    DEFAULT_CATEGORY, FetcherInterface, NewsItem, PersistenceService,
    SpeechSynthesisService, SummarizationService,
)

logger = structlog.get_logger()


class FeedIngestionPipeline:
    """Fetch categories of news, merge, sort newest first, drop near-duplicates.

    ``feed_sources`` maps a category to its ordered candidate feed URLs. For
    each category the first candidate that fetches and parses wins, even
    with zero items.
    """

    def __init__(
        self,
        fetcher: FetcherInterface,
        feed_sources: Mapping[str, Sequence[str]] = None,
        storage: PersistenceService = None,
        max_items: int = None,
        dedup_prefix_chars: int = None,
        concurrent: bool = None,
        fallback_images: bool = None,
        on_fetch_complete: Callable = None,
    ):
        if feed_sources is None:
            feed_sources = load_feed_sources(settings.feeds_path)
        self.fetcher = fetcher
        self.feed_sources = normalize_feed_sources(feed_sources)
        self.storage = storage
        self.max_items = max_items or settings.max_items
        self.dedup_prefix_chars = dedup_prefix_chars or settings.dedup_prefix_chars
        self.concurrent = settings.concurrent_categories if concurrent is None else concurrent
        self.fallback_images = settings.fallback_images if fallback_images is None else fallback_images
        self.on_fetch_complete = on_fetch_complete  # Callback for stats

    async def fetch_category(self, category: str) -> List[NewsItem]:
        """Items from the first working feed for ``category``.

        Unknown categories and categories whose feeds all fail give [].
        """
        candidates = self.feed_sources.get(category.strip().lower(), [])
        if not candidates:
            logger.info("category_unknown", category=category)
            return []

        async def attempt(url: str) -> List[NewsItem]:
            start_time = time.time()
            try:
                items = await self.fetcher.fetch_and_parse_feed(url)
            except Exception as e:
                self._report(url, category, start_time, error=str(e) or type(e).__name__)
                raise
            self._report(url, category, start_time, items=len(items))
            return items

        try:
            source, items = await first_success(candidates, attempt)
        except CandidatesExhausted as e:
            logger.warning("category_exhausted", category=category, candidates=len(e.failures))
            return []

        logger.info("category_fetched", category=category, source=source, items=len(items))
        return items

    def _report(self, url: str, category: str, start_time: float, **kwargs) -> None:
        if self.on_fetch_complete:
            self.on_fetch_complete(
                feed_url=url,
                category=category,
                fetch_time_ms=int((time.time() - start_time) * 1000),
                **kwargs
            )

    async def fetch_news_for_categories(self, categories: Sequence[str]) -> List[NewsItem]:
        """Merged, sorted (newest first), de-duplicated and bounded news list."""
        if self.concurrent:
            results = await asyncio.gather(*(self.fetch_category(c) for c in categories))
        else:
            results = [await self.fetch_category(c) for c in categories]

        merged: List[NewsItem] = []
        for category, items in zip(categories, results):
            for item in items:
                # Only the parser's default is replaced; feed categories stay
                if item.category == DEFAULT_CATEGORY:
                    item.category = category.strip().lower()
                merged.append(item)

        # Stable: equal timestamps keep category/feed order
        merged.sort(key=lambda item: item.published_datetime, reverse=True)

        unique = deduplicate_by_title(merged, self.dedup_prefix_chars)
        result = unique[: self.max_items]

        if self.fallback_images:
            for item in result:
                if not item.image_url:
                    item.image_url = category_image(item.category)

        logger.info(
            "news_fetched",
            categories=len(categories),
            merged=len(merged),
            duplicates=len(merged) - len(unique),
            returned=len(result),
        )
        return result

    async def refresh(self, categories: Sequence[str]) -> dict:
        """Fetch news, store new items and attach stored audio URLs."""
        start = datetime.now()
        items = await self.fetch_news_for_categories(categories)

        saved = 0
        with_audio = 0
        if self.storage is not None and items:
            saved = self.storage.upsert_news_items(items)
            audio = self.storage.get_audio_urls([item.url_hash for item in items])
            for item in items:
                if item.url_hash in audio:
                    item.audio_url = audio[item.url_hash]
                    with_audio += 1

        stats = {
            "categories": list(categories),
            "fetched_items": len(items),
            "saved_items": saved,
            "items_with_audio": with_audio,
            "elapsed_seconds": (datetime.now() - start).total_seconds(),
            "news_items": items,
        }
        logger.info("news_refreshed", fetched=len(items), saved=saved, with_audio=with_audio)
        return stats

    async def generate_tldr(
        self,
        item: NewsItem,
        summarizer: SummarizationService,
        summary_level: int = 2,
        eli5_age: Optional[int] = None,
    ) -> str:
        """AI TLDR for an item, stored when storage is configured."""
        content = f"{item.title}\n\n{item.summary}"
        item.tldr = await summarizer.summarize(
            content,
            summary_level=summary_level,
            eli5_age=eli5_age,
            is_news_article=True,
        )
        if self.storage is not None:
            self.storage.set_tldr(item.source_url, item.tldr)
        return item.tldr

    async def generate_audio(
        self,
        item: NewsItem,
        speech: SpeechSynthesisService,
        plan: str = "free",
    ) -> str:
        """Narrate an item (its TLDR if present, else its summary)."""
        item.audio_url = await speech.synthesize(
            item.tldr or item.summary,
            plan=plan,
            title=item.title,
            subdir="news",
        )
        if self.storage is not None:
            self.storage.set_audio_url(item.source_url, item.audio_url)
        return item.audio_url


async def fetch_news(
    categories: Sequence[str],
    feed_sources: Mapping[str, Sequence[str]] = None,
) -> List[NewsItem]:
    """One-shot helper: fetch news for ``categories`` with default settings."""
    from ..ingestion.fetcher import FeedFetcher

    async with FeedFetcher() as fetcher:
        pipeline = FeedIngestionPipeline(fetcher, feed_sources=feed_sources)
        return await pipeline.fetch_news_for_categories(categories)
