"""Base generation backend interface."""

from abc import ABC, abstractmethod
from typing import Optional

from contracts import FailureKind, GenerationResult


SYSTEM_PROMPT = (
    "You are a technical writer producing README documentation. "
    "Write clear, accurate GitHub-flavored Markdown. Never invent commands, "
    "environment variables or features that are not supported by the given context."
)

_STATUS_KINDS = {
    429: FailureKind.RATE_LIMITED,
    408: FailureKind.TRANSIENT_OVERLOAD,
    500: FailureKind.TRANSIENT_OVERLOAD,
    502: FailureKind.TRANSIENT_OVERLOAD,
    503: FailureKind.TRANSIENT_OVERLOAD,
    504: FailureKind.TRANSIENT_OVERLOAD,
    529: FailureKind.TRANSIENT_OVERLOAD,
    400: FailureKind.PERMANENT,
    401: FailureKind.PERMANENT,
    403: FailureKind.PERMANENT,
    404: FailureKind.PERMANENT,
    413: FailureKind.PERMANENT,
    422: FailureKind.PERMANENT,
}


def kind_for_status(status_code: Optional[int]) -> FailureKind:
    """Classify an HTTP status returned by a backend."""
    if status_code is None:
        return FailureKind.UNKNOWN
    return _STATUS_KINDS.get(int(status_code), FailureKind.UNKNOWN)


class BackendError(Exception):
    """Failure of a single backend call, classified for the retry policy."""

    def __init__(
        self,
        backend: str,
        kind: FailureKind,
        message: str,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.backend = backend
        self.kind = FailureKind(kind)
        self.message = message
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __str__(self) -> str:
        status = f" (HTTP {self.status_code})" if self.status_code is not None else ""
        return f"{self.backend}: {self.kind.value}{status}: {self.message}"


class LLMBackend(ABC):
    """Abstract base class for generation backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend tag (groq, gemini, openai, anthropic, deepseek, ollama, litellm)."""
        pass

    @property
    @abstractmethod
    def priority(self) -> int:
        """Fallback order; lower is tried first."""
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used for every call of this backend."""
        pass

    @abstractmethod
    def generate(self, prompt: str, context: Optional[str] = None) -> GenerationResult:
        """Generate text for a prompt.

        Args:
            prompt: Section instructions
            context: Optional project context prepended to the prompt

        Returns:
            GenerationResult tagged with this backend's name

        Raises:
            BackendError: classified failure of the call
        """
        pass

    def is_available(self) -> bool:
        """Check if this backend is configured (API key set, etc.)."""
        return True

    def _user_message(self, prompt: str, context: Optional[str]) -> str:
        if context:
            return f"{context}\n\n{prompt}"
        return prompt

    def _result(self, content: Optional[str], token_count: Optional[int] = None) -> GenerationResult:
        text = (content or "").strip()
        if not text:
            raise BackendError(self.name, FailureKind.UNKNOWN, "Empty completion")
        return GenerationResult(
            content=text,
            provider=self.name,
            model=self.default_model,
            token_count=token_count,
        )
