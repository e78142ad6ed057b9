#!/usr/bin/env python3
"""Fetch news for categories and print it (or store it)."""

import argparse
import asyncio
import json
import logging

import structlog

from tldrit.config.settings import settings
from tldrit.config.feeds import load_feed_sources
from tldrit.ingestion.fetcher import FeedFetcher
from tldrit.pipeline.news import FeedIngestionPipeline
from tldrit.storage.database import NewsStorage


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Fetch TLDRit news feeds")
    parser.add_argument("categories", nargs="*", default=["technology"],
                        help="categories to fetch (default: technology)")
    parser.add_argument("--feeds", help="JSON file with category -> feed URLs")
    parser.add_argument("--json", action="store_true", help="print items as JSON")
    parser.add_argument("--save", action="store_true", help="store items in the database")
    parser.add_argument("--limit", type=int, help="maximum number of items")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser.parse_args(argv)


async def run(args) -> dict:
    feed_sources = load_feed_sources(args.feeds or settings.feeds_path)
    storage = NewsStorage() if args.save else None

    async with FeedFetcher() as fetcher:
        pipeline = FeedIngestionPipeline(
            fetcher,
            feed_sources=feed_sources,
            storage=storage,
            max_items=args.limit,
            on_fetch_complete=storage.update_feed_stats if storage else None,
        )
        return await pipeline.refresh(args.categories)


def main(argv=None):
    args = parse_args(argv)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if args.verbose else logging.WARNING
        )
    )

    stats = asyncio.run(run(args))
    items = stats["news_items"]

    if args.json:
        print(json.dumps([item.to_dict() for item in items], indent=2))
        return

    print("\n" + "=" * 50)
    print("TLDRIT NEWS")
    print("=" * 50 + "\n")
    for item in items:
        print(f"[{item.category}] {item.published_at[:16].replace('T', ' ')}  {item.title}")
        print(f"    {item.source_url}")

    print(f"\n{stats['fetched_items']} items, {stats['saved_items']} new, "
          f"{stats['elapsed_seconds']:.1f}s\n")


if __name__ == "__main__":
    main()
