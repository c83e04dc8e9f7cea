"""Google Gemini backend implementation."""

import os
from typing import Optional

from contracts import FailureKind, GenerationResult

from .base import SYSTEM_PROMPT, BackendError, LLMBackend, kind_for_status


class GeminiProvider(LLMBackend):
    """Backend for Google Gemini models."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 60.0,
        max_tokens: int = 2048,
        temperature: float = 0.5,
    ):
        """Initialize Gemini backend.

        Args:
            api_key: Google API key. Uses GOOGLE_API_KEY or GEMINI_API_KEY env var if not provided.
        """
        self.api_key = api_key or os.environ.get("GOOGLE_API_KEY") or os.environ.get("GEMINI_API_KEY")
        self.model = model or "gemini-2.5-flash"
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._configured = False

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def priority(self) -> int:
        return 2

    @property
    def default_model(self) -> str:
        return self.model

    def _configure(self):
        if not self._configured and self.api_key:
            import google.generativeai as genai
            genai.configure(api_key=self.api_key)
            self._configured = True

    def _classify(self, exc: Exception) -> BackendError:
        from google.api_core import exceptions as google_exceptions

        if isinstance(exc, (ConnectionError, TimeoutError, google_exceptions.RetryError)):
            return BackendError(self.name, FailureKind.NETWORK, str(exc))
        if isinstance(exc, google_exceptions.GoogleAPICallError):
            status = exc.code if isinstance(exc.code, int) else None
            return BackendError(self.name, kind_for_status(status), str(exc), status_code=status)
        return BackendError(self.name, FailureKind.UNKNOWN, str(exc))

    def generate(self, prompt: str, context: Optional[str] = None) -> GenerationResult:
        import google.generativeai as genai

        self._configure()
        gen_model = genai.GenerativeModel(
            model_name=self.model,
            system_instruction=SYSTEM_PROMPT,
        )
        try:
            response = gen_model.generate_content(
                self._user_message(prompt, context),
                generation_config=genai.types.GenerationConfig(
                    max_output_tokens=self.max_tokens,
                    temperature=self.temperature,
                ),
                request_options={"timeout": self.timeout},
            )
            # .text raises ValueError when the candidate was blocked or empty
            text = response.text
        except ValueError as exc:
            raise BackendError(self.name, FailureKind.UNKNOWN, f"No usable candidate: {exc}") from exc
        except Exception as exc:
            raise self._classify(exc) from exc

        usage = getattr(response, "usage_metadata", None)
        return self._result(text, token_count=getattr(usage, "candidates_token_count", None))

    def is_available(self) -> bool:
        return bool(self.api_key)
