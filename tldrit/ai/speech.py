"""Text-to-speech for summaries and news items."""

import re
import time
from pathlib import Path
from typing import Optional

import structlog
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from ..config.settings import settings
from ..ingestion.interfaces import SpeechSynthesisService

logger = structlog.get_logger()

PAID_PLANS = ("pro", "premium")

_MARKDOWN_RULES = [
    (re.compile(r"#{1,6}\s*"), ""),                          # headers
    (re.compile(r"\*{1,2}([^*]+)\*{1,2}"), r"\1"),          # bold / italic
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),          # links
    (re.compile(r"^\s*[-*+]\s+", re.MULTILINE), ""),        # bullets
    (re.compile(r"^\s*\d+\.\s+", re.MULTILINE), ""),        # numbered lists
    (re.compile(r"`{1,3}[^`]*`{1,3}"), ""),                  # code
    (re.compile(r"^\s*---+\s*$", re.MULTILINE), ""),        # rules
    (re.compile(r"\s+"), " "),
]


class SpeechError(Exception):
    """The speech provider failed to produce audio."""


class TTSLimitError(SpeechError):
    """Text is longer than the caller's plan allows."""


def strip_markdown_for_tts(text: str) -> str:
    """Flatten markdown into plain prose for narration."""
    for pattern, replacement in _MARKDOWN_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


class SpeechSynthesizer(SpeechSynthesisService):
    """OpenAI speech synthesis, saved under ``audio_dir`` and served from ``base_url``."""

    def __init__(
        self,
        client=None,
        audio_dir: Path = None,
        base_url: str = None,
        model: str = None,
        voice: str = None,
        free_char_limit: int = None,
    ):
        self._client = client
        self.audio_dir = Path(audio_dir or settings.audio_dir)
        self.base_url = (base_url if base_url is not None else settings.audio_base_url).rstrip("/")
        self.model = model or settings.tts_model
        self.voice = voice or settings.tts_voice
        self.free_char_limit = free_char_limit or settings.free_tts_char_limit

    def _get_client(self):
        if self._client is None:
            import openai
            if not settings.openai_api_key:
                raise ValueError("OpenAI API key not configured. Set TLDRIT_OPENAI_API_KEY environment variable.")
            self._client = openai.AsyncOpenAI(api_key=settings.openai_api_key)
        return self._client

    def prepare_text(self, text: str, title: Optional[str] = None) -> str:
        clean = strip_markdown_for_tts(text or "")
        if title:
            return f"{title}. {clean}"
        return clean

    async def synthesize(
        self,
        text: str,
        plan: str = "free",
        title: Optional[str] = None,
        subdir: str = "news",
    ) -> str:
        """Generate speech and return its public URL."""
        audio_text = self.prepare_text(text, title)
        if not audio_text:
            raise SpeechError("No text to synthesize")
        if plan not in PAID_PLANS and len(audio_text) > self.free_char_limit:
            raise TTSLimitError(
                f"Free users are limited to {self.free_char_limit} characters for text-to-speech"
            )

        audio = await self._create_speech(audio_text)

        relative = Path(subdir) / f"{int(time.time() * 1000)}.mp3"
        path = self.audio_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(audio)

        url = f"{self.base_url}/{relative.as_posix()}"
        logger.info("audio_generated", chars=len(audio_text), bytes=len(audio), url=url)
        return url

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_not_exception_type((ValueError, SpeechError)),
        reraise=True,
    )
    async def _create_speech(self, text: str) -> bytes:
        client = self._get_client()
        try:
            response = await client.audio.speech.create(model=self.model, voice=self.voice, input=text)
        except Exception as e:
            logger.error("tts_call_failed", model=self.model, error=str(e))
            raise
        audio = response.content
        if not audio:
            raise SpeechError("Failed to generate audio")
        return audio
