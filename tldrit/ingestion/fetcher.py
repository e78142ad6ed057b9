"""Async RSS/Atom feed fetcher."""

import asyncio
import time
from typing import List, Optional, Union
from urllib.parse import quote

import aiohttp
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .errors import FormatError, HttpError
from .interfaces import FetcherInterface, NewsItem
from .parser import parse_feed
from ..config.settings import settings

logger = structlog.get_logger()

TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


class FeedFetcher(FetcherInterface):
    """Fetch a feed URL (directly or through a JSON CORS proxy) and parse it."""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_seconds: float = None,
        user_agent: str = None,
        accept: str = None,
        proxy_url: str = None,
        max_attempts: int = None,
        summary_max_chars: int = None,
        stable_ids: bool = None,
    ):
        self.session = session
        self._owns_session = False
        self.timeout_seconds = timeout_seconds or settings.fetch_timeout_seconds
        self.user_agent = user_agent or settings.user_agent
        self.accept = accept or settings.accept_header
        self.proxy_url = proxy_url if proxy_url is not None else settings.proxy_url
        self.max_attempts = max(1, max_attempts or settings.fetch_max_attempts)
        self.summary_max_chars = summary_max_chars or settings.summary_max_chars
        self.stable_ids = settings.stable_ids if stable_ids is None else stable_ids

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
            )
            self._owns_session = True
        return self

    async def __aexit__(self, *args):
        if self._owns_session and self.session:
            await self.session.close()
            self.session = None
            self._owns_session = False

    @property
    def headers(self) -> dict:
        return {"User-Agent": self.user_agent, "Accept": self.accept}

    async def fetch_raw(self, url: str) -> Union[str, bytes]:
        """Fetch the feed body. Transport errors are retried up to max_attempts."""
        if self.session is None:
            raise RuntimeError("FeedFetcher must be used as an async context manager")

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(TRANSPORT_ERRORS),
            reraise=True,
        ):
            with attempt:
                if self.proxy_url:
                    return await self._fetch_via_proxy(url)
                return await self._fetch_direct(url)

    async def _fetch_direct(self, url: str) -> bytes:
        async with self.session.get(url, headers=self.headers) as response:
            if not 200 <= response.status < 300:
                raise HttpError(response.status, url, response.reason or "")
            return await response.read()

    async def _fetch_via_proxy(self, url: str) -> str:
        proxied = self.proxy_url.format(url=quote(url, safe=""))
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        async with self.session.get(proxied, headers=headers) as response:
            if not 200 <= response.status < 300:
                raise HttpError(response.status, url, response.reason or "")
            try:
                data = await response.json(content_type=None)
            except ValueError as e:
                raise FormatError(f"Proxy returned invalid JSON: {e}", url) from e

        contents = data.get("contents") if isinstance(data, dict) else None
        if not contents:
            raise FormatError("No content received from proxy", url)
        return contents

    async def fetch_and_parse_feed(self, url: str) -> List[NewsItem]:
        """Fetch one feed and return its normalized items.

        Raises HttpError, FormatError or a transport error on failure.
        """
        start_time = time.time()
        body = await self.fetch_raw(url)
        items = parse_feed(
            body,
            url,
            summary_max_chars=self.summary_max_chars,
            stable_ids=self.stable_ids,
        )

        logger.info(
            "feed_fetched",
            url=url,
            items=len(items),
            time_ms=int((time.time() - start_time) * 1000),
        )
        return items
