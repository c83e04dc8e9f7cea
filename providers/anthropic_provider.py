"""Anthropic (Claude) backend implementation."""

import os
from typing import Optional

from contracts import FailureKind, GenerationResult

from .base import SYSTEM_PROMPT, BackendError, LLMBackend, kind_for_status


class AnthropicProvider(LLMBackend):
    """Backend for Anthropic Claude models."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 60.0,
        max_tokens: int = 2048,
        temperature: float = 0.5,
    ):
        """Initialize Anthropic backend.

        Args:
            api_key: Anthropic API key. Uses ANTHROPIC_API_KEY env var if not provided.
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model or "claude-sonnet-4-20250514"
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = None

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def priority(self) -> int:
        return 4

    @property
    def default_model(self) -> str:
        return self.model

    def _get_client(self):
        if self._client is None:
            from anthropic import Anthropic
            self._client = Anthropic(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def _classify(self, exc: Exception) -> BackendError:
        import anthropic

        if isinstance(exc, anthropic.APIConnectionError):
            return BackendError(self.name, FailureKind.NETWORK, str(exc))
        if isinstance(exc, anthropic.APIStatusError):
            return BackendError(self.name, kind_for_status(exc.status_code), str(exc), status_code=exc.status_code)
        return BackendError(self.name, FailureKind.UNKNOWN, str(exc))

    def generate(self, prompt: str, context: Optional[str] = None) -> GenerationResult:
        client = self._get_client()
        try:
            response = client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": self._user_message(prompt, context)}],
            )
        except Exception as exc:
            raise self._classify(exc) from exc

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )
        return self._result(text, token_count=response.usage.output_tokens)

    def is_available(self) -> bool:
        return bool(self.api_key)
