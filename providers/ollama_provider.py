"""Ollama backend for locally hosted models."""

from typing import Optional

import requests

from contracts import FailureKind, GenerationResult

from .base import SYSTEM_PROMPT, BackendError, LLMBackend, kind_for_status


class OllamaProvider(LLMBackend):
    """Backend talking to an Ollama server over its HTTP API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 60.0,
        max_tokens: int = 2048,
        temperature: float = 0.5,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.model = model or "llama3"
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return "ollama"

    @property
    def priority(self) -> int:
        return 6

    @property
    def default_model(self) -> str:
        return self.model

    def generate(self, prompt: str, context: Optional[str] = None) -> GenerationResult:
        payload = {
            "model": self.model,
            "system": SYSTEM_PROMPT,
            "prompt": self._user_message(prompt, context),
            "stream": False,
            "options": {"temperature": self.temperature, "num_predict": self.max_tokens},
        }
        try:
            response = self._session.post(
                f"{self.base_url}/api/generate",
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise BackendError(self.name, FailureKind.NETWORK, str(exc)) from exc
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise BackendError(self.name, kind_for_status(status), str(exc), status_code=status) from exc
        except ValueError as exc:
            raise BackendError(self.name, FailureKind.UNKNOWN, f"Invalid JSON from Ollama: {exc}") from exc

        return self._result(data.get("response"), token_count=data.get("eval_count"))

    def is_available(self) -> bool:
        return bool(self.base_url)
