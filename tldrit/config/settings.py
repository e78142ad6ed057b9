"""Application settings with environment variable support."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from pathlib import Path


# Compute base_dir at module level
_BASE_DIR = Path(__file__).parent.parent.parent.resolve()


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TLDRIT_",  # TLDRIT_DATABASE_URL, TLDRIT_OPENAI_API_KEY, etc.
    )

    # Paths - computed from base_dir
    base_dir: Path = _BASE_DIR
    data_dir: Path = _BASE_DIR / "data"
    audio_dir: Path = _BASE_DIR / "data" / "audio"
    feeds_path: Optional[Path] = None

    # Database
    database_url: str = f"sqlite:///{_BASE_DIR / 'data' / 'tldrit.db'}"

    # Feed fetching
    fetch_timeout_seconds: float = 15.0
    fetch_max_attempts: int = 1  # per candidate URL, transport errors only
    user_agent: str = "TLDRit RSS Reader/1.0 (https://tldrit.netlify.app)"
    accept_header: str = "application/rss+xml, application/xml, text/xml, application/atom+xml"
    proxy_url: Optional[str] = None  # e.g. "https://api.allorigins.win/get?url={url}"

    # Normalization
    max_items: int = 50
    summary_max_chars: int = 300
    dedup_prefix_chars: int = 20
    stable_ids: bool = False
    concurrent_categories: bool = False
    fallback_images: bool = False

    # LLM
    llm_provider: str = "openai"  # "openai" or "openrouter"
    openai_api_key: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    llm_model: str = "gpt-3.5-turbo"
    llm_temperature: float = 0.7

    # Text-to-speech
    tts_model: str = "tts-1"
    tts_voice: str = "alloy"
    audio_base_url: str = "/audio"
    free_tts_char_limit: int = 300

    # RSS proxy endpoint
    proxy_allowed_domains: List[str] = [
        "feeds.feedburner.com",
        "feeds.bbci.co.uk",
        "rss.cnn.com",
        "cointelegraph.com",
        "feeds.npr.org",
        "rss.espn.com",
        "techcrunch.com",
        "variety.com",
        "reuters.com",
        "venturebeat.com",
    ]


settings = Settings()
