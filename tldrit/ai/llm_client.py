"""LLM API client wrapper with provider abstraction."""

import structlog
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from ..config.settings import settings

logger = structlog.get_logger()


class LLMClient:
    """Chat completion client for OpenAI or OpenRouter (OpenAI-compatible API)."""

    def __init__(self, provider: str = None, api_key: str = None, model: str = None):
        self.provider = provider or settings.llm_provider
        self.model = model or settings.llm_model
        self._api_key = api_key
        self._client = None

    def _get_client(self):
        """Lazy initialization of the client."""
        if self._client is not None:
            return self._client

        import openai

        if self.provider == "openai":
            api_key = self._api_key or settings.openai_api_key
            if not api_key:
                raise ValueError("OpenAI API key not configured. Set TLDRIT_OPENAI_API_KEY environment variable.")
            self._client = openai.AsyncOpenAI(api_key=api_key)

        elif self.provider == "openrouter":
            api_key = self._api_key or settings.openrouter_api_key
            if not api_key:
                raise ValueError("OpenRouter API key not configured. Set TLDRIT_OPENROUTER_API_KEY environment variable.")
            self._client = openai.AsyncOpenAI(api_key=api_key, base_url=settings.openrouter_base_url)

        else:
            raise ValueError(f"Unknown LLM provider: {self.provider}")

        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_not_exception_type(ValueError),
        reraise=True,
    )
    async def complete(
        self,
        prompt: str,
        system: str = None,
        max_tokens: int = None,
        temperature: float = None
    ) -> str:
        """Generate a completion from the LLM."""
        client = self._get_client()
        temperature = temperature if temperature is not None else settings.llm_temperature

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs = {"model": self.model, "temperature": temperature, "messages": messages}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        try:
            response = await client.chat.completions.create(**kwargs)
        except Exception as e:
            logger.error("llm_call_failed", provider=self.provider, error=str(e))
            raise

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
