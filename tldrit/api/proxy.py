"""HTTP endpoints: RSS CORS proxy, news refresh and health check."""

import asyncio
import time
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import aiohttp
import structlog
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config.settings import settings
from ..ingestion.fetcher import FeedFetcher
from ..pipeline.news import FeedIngestionPipeline
from ..storage.factory import get_news_storage

logger = structlog.get_logger()

DEFAULT_CATEGORIES = ["technology", "world", "business", "science"]
PROXY_CACHE_HEADERS = {"Cache-Control": "public, max-age=300"}

app = FastAPI(title="TLDRit")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(status_code: int, error: str, message: str, url: str = None) -> JSONResponse:
    content = {"error": error, "message": message}
    if url:
        content.update({"url": url, "timestamp": _now_iso()})
    return JSONResponse(status_code=status_code, content=content)


def is_allowed_domain(url: str, allowed: Sequence[str] = None) -> bool:
    """Host must equal an allowed domain or be a subdomain of one."""
    allowed = settings.proxy_allowed_domains if allowed is None else allowed
    host = (urlparse(url).hostname or "").lower()
    return any(host == d or host.endswith("." + d) for d in allowed)


def looks_like_feed(content: str) -> bool:
    return "<rss" in content or "<feed" in content or "<?xml" in content


async def fetch_upstream(url: str) -> Tuple[int, str, str]:
    """GET a feed, returning ``(status, content_type, body)``."""
    timeout = aiohttp.ClientTimeout(total=settings.fetch_timeout_seconds)
    headers = {
        "User-Agent": settings.user_agent,
        "Accept": settings.accept_header,
        "Cache-Control": "no-cache",
    }
    async with aiohttp.ClientSession(timeout=timeout) as session:
        async with session.get(url, headers=headers) as response:
            body = await response.text()
            return response.status, response.headers.get("content-type", ""), body


@app.get("/rss-proxy")
async def rss_proxy(url: Optional[str] = Query(None)):
    """Fetch an allow-listed feed and return it wrapped as JSON ``contents``."""
    if not url:
        return _error(400, "Missing required parameter", "URL parameter is required")

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return _error(400, "Invalid URL format", "The provided URL is not valid")

    if not is_allowed_domain(url):
        logger.warning("proxy_domain_blocked", host=parsed.hostname)
        return _error(403, "Domain not allowed", "RSS feeds are only allowed from authorized news sources")

    start_time = time.time()
    try:
        status, content_type, content = await fetch_upstream(url)
    except asyncio.TimeoutError:
        logger.error("proxy_timeout", url=url)
        return _error(408, "Failed to fetch RSS feed", "Request timed out", url)
    except aiohttp.ClientError as e:
        logger.error("proxy_network_error", url=url, error=str(e))
        return _error(503, "Failed to fetch RSS feed", f"network error: {e}", url)
    fetch_time_ms = int((time.time() - start_time) * 1000)

    if not 200 <= status < 300:
        logger.error("proxy_upstream_error", url=url, status=status)
        return _error(502, "Failed to fetch RSS feed", f"HTTP error! status: {status}", url)

    if not any(t in content_type for t in ("xml", "rss", "atom")):
        logger.warning("proxy_unexpected_content_type", url=url, content_type=content_type)

    if not content or not content.strip():
        return _error(500, "Failed to fetch RSS feed", "Empty response content", url)
    if not looks_like_feed(content):
        return _error(500, "Failed to fetch RSS feed", "Response does not appear to be valid RSS/XML content", url)

    logger.info("proxy_fetched", url=url, bytes=len(content), time_ms=fetch_time_ms)
    return JSONResponse(
        content={
            "contents": content,
            "status": {
                "url": url,
                "content_type": content_type or None,
                "http_code": status,
                "content_length": len(content),
                "fetch_time_ms": fetch_time_ms,
                "timestamp": _now_iso(),
            },
        },
        headers=PROXY_CACHE_HEADERS,
    )


def parse_categories(value: Optional[str]) -> List[str]:
    if not value:
        return list(DEFAULT_CATEGORIES)
    return [c.strip().lower() for c in value.split(",") if c.strip()]


@app.get("/news")
async def news(categories: Optional[str] = Query(None), persist: bool = Query(False)):
    """Run the ingestion pipeline; with ``persist`` store items and attach audio."""
    storage = get_news_storage() if persist else None
    try:
        async with FeedFetcher() as fetcher:
            pipeline = FeedIngestionPipeline(
                fetcher,
                storage=storage,
                on_fetch_complete=storage.update_feed_stats if storage else None,
            )
            stats = await pipeline.refresh(parse_categories(categories))
    except Exception as e:
        logger.error("news_fetch_failed", error=str(e))
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to fetch news", "details": str(e)},
        )

    items = stats["news_items"]
    return {
        "success": True,
        "newsItems": [item.to_dict() for item in items],
        "count": len(items),
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers."""
    try:
        stats = get_news_storage().get_stats()
        return {
            "status": "healthy",
            "timestamp": _now_iso(),
            "database": "connected",
            "news_items": stats.get("total_news_items", 0),
        }
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "error": str(e)}
        )


def main():
    import os
    import uvicorn
    from dotenv import load_dotenv
    load_dotenv()

    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
