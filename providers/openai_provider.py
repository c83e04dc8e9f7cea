"""OpenAI and OpenAI-compatible (Groq, Deepseek) backends."""

import os
from typing import Optional

from contracts import FailureKind, GenerationResult

from .base import SYSTEM_PROMPT, BackendError, LLMBackend, kind_for_status


def classify_openai_error(backend: str, exc: Exception) -> BackendError:
    """Map an openai SDK exception to a BackendError.

    litellm raises subclasses of the same exception types, so its backend
    shares this mapping.
    """
    import openai

    if isinstance(exc, openai.APIConnectionError):
        # Includes APITimeoutError
        return BackendError(backend, FailureKind.NETWORK, str(exc))
    if isinstance(exc, openai.APIStatusError):
        return BackendError(backend, kind_for_status(exc.status_code), str(exc), status_code=exc.status_code)
    return BackendError(backend, FailureKind.UNKNOWN, str(exc))


class OpenAIProvider(LLMBackend):
    """Backend for OpenAI chat models."""

    BASE_URL: Optional[str] = None
    API_KEY_ENV = "OPENAI_API_KEY"
    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 60.0,
        max_tokens: int = 2048,
        temperature: float = 0.5,
    ):
        """Initialize the backend.

        Args:
            api_key: API key. Uses the provider's standard env var if not provided.
            model: Model name (defaults to the backend's default)
            timeout: Seconds before a call is abandoned
            max_tokens: Maximum tokens in the completion
            temperature: Sampling temperature
        """
        self.api_key = api_key or os.environ.get(self.API_KEY_ENV)
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = None

    @property
    def name(self) -> str:
        return "openai"

    @property
    def priority(self) -> int:
        return 3

    @property
    def default_model(self) -> str:
        return self.model

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI
            # Retries are owned by the orchestrator
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.BASE_URL,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def generate(self, prompt: str, context: Optional[str] = None) -> GenerationResult:
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": self._user_message(prompt, context)},
                ],
            )
        except Exception as exc:
            raise classify_openai_error(self.name, exc) from exc

        if not response.choices:
            raise BackendError(self.name, FailureKind.UNKNOWN, "No choices in completion")
        usage = getattr(response, "usage", None)
        return self._result(
            response.choices[0].message.content,
            token_count=getattr(usage, "completion_tokens", None),
        )

    def is_available(self) -> bool:
        return bool(self.api_key)


class GroqProvider(OpenAIProvider):
    """Backend for Groq-hosted models (OpenAI-compatible API)."""

    BASE_URL = "https://api.groq.com/openai/v1"
    API_KEY_ENV = "GROQ_API_KEY"
    DEFAULT_MODEL = "llama-3.3-70b-versatile"

    @property
    def name(self) -> str:
        return "groq"

    @property
    def priority(self) -> int:
        return 1


class DeepseekProvider(OpenAIProvider):
    """Backend for Deepseek models (OpenAI-compatible API)."""

    BASE_URL = "https://api.deepseek.com/v1"
    API_KEY_ENV = "DEEPSEEK_API_KEY"
    DEFAULT_MODEL = "deepseek-chat"

    @property
    def name(self) -> str:
        return "deepseek"

    @property
    def priority(self) -> int:
        return 5
