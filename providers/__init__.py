"""Generation backend abstraction for multi-provider fallback."""

from .base import LLMBackend, BackendError, SYSTEM_PROMPT, kind_for_status
from .factory import build_backends, get_backend, list_providers

__all__ = [
    "LLMBackend",
    "BackendError",
    "SYSTEM_PROMPT",
    "kind_for_status",
    "build_backends",
    "get_backend",
    "list_providers",
]
