"""Try candidates in order and stop at the first one that succeeds."""

import asyncio
from typing import Awaitable, Callable, Iterable, List, Tuple, Type, TypeVar

import aiohttp
import structlog

from .errors import FeedError

logger = structlog.get_logger()

T = TypeVar("T")

# Failures that move on to the next candidate. Anything else propagates.
RECOVERABLE_ERRORS: Tuple[Type[BaseException], ...] = (
    FeedError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
)


class CandidatesExhausted(Exception):
    """Every candidate failed (or there were none)."""

    def __init__(self, failures: List[Tuple[str, BaseException]]):
        super().__init__(f"All {len(failures)} candidates failed")
        self.failures = failures


async def first_success(
    candidates: Iterable[str],
    attempt: Callable[[str], Awaitable[T]],
    recoverable: Tuple[Type[BaseException], ...] = RECOVERABLE_ERRORS,
) -> Tuple[str, T]:
    """Return ``(candidate, result)`` for the first candidate whose attempt
    does not raise a recoverable error.

    An attempt that succeeds with an empty result still counts as a
    success; later candidates are not tried.
    """
    failures: List[Tuple[str, BaseException]] = []
    for candidate in candidates:
        try:
            return candidate, await attempt(candidate)
        except recoverable as e:
            logger.warning("feed_candidate_failed", url=candidate, error=str(e) or type(e).__name__)
            failures.append((candidate, e))
    raise CandidatesExhausted(failures)
