"""LiteLLM-backed catch-all backend for any model LiteLLM can route to."""

from typing import Optional

from contracts import GenerationResult

from .base import SYSTEM_PROMPT, LLMBackend
from .openai_provider import classify_openai_error


class LiteLLMProvider(LLMBackend):
    """Single backend that delegates to litellm.completion().

    LiteLLM reads provider credentials from the environment, so the backend
    counts as configured as soon as a model string is set.
    """

    def __init__(
        self,
        default_model: str,
        timeout: float = 60.0,
        max_tokens: int = 2048,
        temperature: float = 0.5,
        metadata: Optional[dict] = None,
    ):
        """Initialize with the LiteLLM model string to use.

        Args:
            default_model: LiteLLM model string (e.g. gpt-4o-mini, anthropic/claude-sonnet-4-20250514).
            metadata: Optional dict passed to litellm for its callbacks.
        """
        self._default_model = default_model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._metadata = metadata or {}

    @property
    def name(self) -> str:
        return "litellm"

    @property
    def priority(self) -> int:
        return 7

    @property
    def default_model(self) -> str:
        return self._default_model

    def generate(self, prompt: str, context: Optional[str] = None) -> GenerationResult:
        import litellm

        kwargs = {
            "model": self._default_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self._user_message(prompt, context)},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "timeout": self.timeout,
            "num_retries": 0,
            "metadata": {**self._metadata},
        }
        try:
            response = litellm.completion(**kwargs)
        except Exception as exc:
            raise classify_openai_error(self.name, exc) from exc

        content = response.choices[0].message.content if response.choices else None
        usage = getattr(response, "usage", None)
        return self._result(content, token_count=getattr(usage, "completion_tokens", None))

    def is_available(self) -> bool:
        return bool(self._default_model)
