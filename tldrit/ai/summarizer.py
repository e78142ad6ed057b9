"""TLDR summarization for news items and arbitrary text."""

import asyncio
from typing import List, Optional

import structlog

from .llm_client import LLMClient
from ..ingestion.interfaces import NewsItem, SummarizationService

logger = structlog.get_logger()

# Summary slider level (1-5) -> target word count
SUMMARY_WORDS = {
    1: 50,    # Very short
    2: 100,   # Short
    3: 200,   # Medium
    4: 350,   # Detailed
    5: 500,   # Comprehensive
}
DEFAULT_SUMMARY_WORDS = 200

MARKDOWN_INSTRUCTIONS = """
- Use markdown for ALL structure.
- For every list of facts, key points, or steps, use markdown bullet points (lines starting with '- ').
- Add exactly one blank line between each paragraph, heading, and bullet point for readability.
- Use markdown headings (##, ###) for sections.
- Use short paragraphs for explanations.
- Do NOT repeat the title or headline.
- Do NOT include any heading like 'TLDR Summary' or similar in your output."""


class SummarizationError(Exception):
    """The AI service returned no usable summary."""


def summary_length_for_level(level: int) -> int:
    return SUMMARY_WORDS.get(level, DEFAULT_SUMMARY_WORDS)


def eli5_prompt(age: int) -> str:
    if age <= 5:
        return "Explain this like I'm 5 years old."
    if age <= 8:
        return "Explain this like I'm 8 years old."
    if age <= 12:
        return "Explain this like I'm 12 years old."
    if age <= 16:
        return "Explain this like I'm a teenager."
    return "Explain this clearly but thoroughly for an adult."


def build_prompts(
    content: str,
    summary_level: int = 2,
    eli5_age: Optional[int] = None,
    is_news_article: bool = False,
) -> tuple:
    """Return ``(system, user, max_tokens)`` for a summarization request."""
    words = summary_length_for_level(summary_level)

    system = (
        "You are a professional summarizer who creates clear, concise, and accurate summaries.\n"
        + MARKDOWN_INSTRUCTIONS
    )
    if eli5_age:
        system += (
            "\nYou specialize in explaining complex topics in simple terms "
            f"that a {eli5_age}-year-old can understand."
        )

    if is_news_article:
        task = (
            "Create a TLDR summary of the following news article content.\n\n"
            "- Do NOT include or repeat the title/headline.\n"
            "- Focus on the main facts, events, and key details from the article body.\n"
            f"- Provide context and insights in about {words} words."
        )
    else:
        task = f"Summarize the following in about {words} words."

    if eli5_age:
        user = (
            f"{eli5_prompt(eli5_age)} The higher the age, the more advanced and "
            f"detailed the explanation should be. {task}\n\n{content}"
        )
    else:
        user = f"{task}\n\n{content}"

    return system, user, words * 4


class NewsSummarizer(SummarizationService):
    """Summarize text through an LLM."""

    def __init__(self, llm_client: LLMClient = None, max_concurrency: int = 4):
        self.llm = llm_client or LLMClient()
        self.max_concurrency = max_concurrency

    async def summarize(
        self,
        content: str,
        summary_level: int = 2,
        eli5_age: Optional[int] = None,
        is_news_article: bool = False,
    ) -> str:
        if not content or not content.strip():
            raise SummarizationError("No content to summarize")

        system, user, max_tokens = build_prompts(content, summary_level, eli5_age, is_news_article)
        summary = await self.llm.complete(user, system=system, max_tokens=max_tokens)
        if not summary or not summary.strip():
            raise SummarizationError("Invalid response from AI service")
        return summary.strip()

    async def summarize_items(self, items: List[NewsItem], summary_level: int = 2) -> int:
        """Fill ``tldr`` on items that lack one. Returns how many succeeded.

        A failed item keeps ``tldr=None``; the others are unaffected.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _one(item: NewsItem) -> bool:
            async with semaphore:
                try:
                    item.tldr = await self.summarize(
                        f"{item.title}\n\n{item.summary}",
                        summary_level=summary_level,
                        is_news_article=True,
                    )
                    return True
                except Exception as e:
                    logger.warning("tldr_failed", url=item.source_url, error=str(e))
                    return False

        results = await asyncio.gather(*(_one(i) for i in items if not i.tldr))
        done = sum(1 for ok in results if ok)
        logger.info("tldrs_generated", requested=len(results), succeeded=done)
        return done
