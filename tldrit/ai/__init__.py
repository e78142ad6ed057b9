"""AI collaborators - summarization and speech synthesis."""

from .llm_client import LLMClient
from .summarizer import NewsSummarizer, SummarizationError
from .speech import SpeechSynthesizer, SpeechError, TTSLimitError, strip_markdown_for_tts

__all__ = [
    "LLMClient", "NewsSummarizer", "SummarizationError",
    "SpeechSynthesizer", "SpeechError", "TTSLimitError", "strip_markdown_for_tts",
]
